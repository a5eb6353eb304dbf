from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import openai
from openai import OpenAI

from daily_wrap.config.settings import Settings, get_settings
from daily_wrap.errors import GenerationFormatError, GenerationServiceError

log = logging.getLogger(__name__)

_FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")


@dataclass(frozen=True)
class GenerationRequest:
    system: str
    message: str
    max_tokens: int = 1024
    temperature: float = 0.3
    model: str | None = None
    # canned answer returned by the offline client, templated from the input
    offline_response: str = ""


def extract_json(text: str) -> Any:
    """
    Pull the JSON payload out of a model answer: a ```json fenced block if there
    is one, otherwise the whole text.
    """
    m = _FENCED_JSON_RE.search(text)
    payload = m.group(1) if m else text
    try:
        return json.loads(payload.strip())
    except json.JSONDecodeError as e:
        raise GenerationFormatError(f"Couldn't parse JSON from model response:\n{text[:2000]}") from e


class GenerationClient:
    offline = False

    def generate(self, request: GenerationRequest) -> str:
        raise NotImplementedError

    def generate_json(self, request: GenerationRequest) -> Any:
        return extract_json(self.generate(request))


class OfflineGenerationClient(GenerationClient):
    """Deterministic stand-in: echoes the request's canned response, no network."""

    offline = True

    def generate(self, request: GenerationRequest) -> str:
        return request.offline_response


class OpenAIGenerationClient(GenerationClient):
    def __init__(self, settings: Settings | None = None, client: OpenAI | None = None) -> None:
        s = settings or get_settings()
        self.model = s.openai_model
        self.client = client or OpenAI(
            api_key=s.openai_api_key,
            base_url=s.openai_base_url or None,
            timeout=s.generation_timeout_seconds,
        )

    def generate(self, request: GenerationRequest) -> str:
        messages = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        messages.append({"role": "user", "content": request.message})

        try:
            response = self.client.chat.completions.create(
                model=request.model or self.model,
                max_tokens=request.max_tokens,
                temperature=request.temperature,
                messages=messages,
            )
        except openai.OpenAIError as e:
            raise GenerationServiceError(f"generation request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GenerationServiceError("No text content in generation response")
        return content


def build_generation_client(settings: Settings | None = None) -> GenerationClient:
    s = settings or get_settings()
    if s.offline:
        log.info("[Generate] Dry run mode - using offline client (api key present: %s)", bool(s.openai_api_key))
        return OfflineGenerationClient()
    log.info("[Generate] Using OpenAI model %s", s.openai_model)
    return OpenAIGenerationClient(s)
