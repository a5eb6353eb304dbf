from __future__ import annotations

import logging

import requests

from daily_wrap.config.settings import Settings, get_settings

log = logging.getLogger(__name__)


def trigger_revalidation(settings: Settings | None = None) -> bool:
    """
    Ask the site to drop its cached pages after a publish.
    Best effort: never raises, returns whether the endpoint accepted the call.
    """
    s = settings or get_settings()
    if not s.revalidate_url or not s.revalidation_secret:
        log.info("[Revalidate] Skipping - no URL or secret configured")
        return False

    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {s.revalidation_secret}",
    }
    payload = {"paths": list(s.revalidate_paths)}

    try:
        r = requests.post(s.revalidate_url, json=payload, headers=headers, timeout=30)
    except requests.RequestException as e:
        log.warning("[Revalidate] Error: %s", e)
        return False

    if not r.ok:
        log.warning("[Revalidate] Failed with status %s: %s", r.status_code, r.text[:500])
        return False

    log.info("[Revalidate] Successfully triggered revalidation")
    return True
