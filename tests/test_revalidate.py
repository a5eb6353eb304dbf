import requests

import daily_wrap.services.revalidate as rv
from daily_wrap.services.revalidate import trigger_revalidation


class _Resp:
    def __init__(self, status: int):
        self.status_code = status
        self.ok = status < 400
        self.text = "nope" if status >= 400 else "ok"


def test_skips_without_config(settings, monkeypatch):
    def fail(*a, **k):
        raise AssertionError("should not be called")

    monkeypatch.setattr(rv.requests, "post", fail)
    assert trigger_revalidation(settings) is False


def test_posts_paths_with_bearer_token(settings, monkeypatch):
    settings.revalidate_url = "https://site.example.com/api/revalidate"
    settings.revalidation_secret = "s3cret"
    seen = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        seen.update(url=url, json=json, headers=headers)
        return _Resp(200)

    monkeypatch.setattr(rv.requests, "post", fake_post)

    assert trigger_revalidation(settings) is True
    assert seen["url"] == "https://site.example.com/api/revalidate"
    assert seen["json"] == {"paths": ["/", "/archive"]}
    assert seen["headers"]["Authorization"] == "Bearer s3cret"


def test_failures_are_swallowed(settings, monkeypatch):
    settings.revalidate_url = "https://site.example.com/api/revalidate"
    settings.revalidation_secret = "s3cret"

    monkeypatch.setattr(rv.requests, "post", lambda *a, **k: _Resp(500))
    assert trigger_revalidation(settings) is False

    def boom(*a, **k):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(rv.requests, "post", boom)
    assert trigger_revalidation(settings) is False
