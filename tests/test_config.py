from __future__ import annotations

from medibook.shared.config import get_settings


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("PROFILE_FETCH_MAX_RETRIES", "3")
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "2.5")
    monkeypatch.delenv("PROFILE_IMAGE_BUCKET", raising=False)

    settings = get_settings()

    assert settings.supabase_url == "https://project.supabase.co"
    assert settings.profile_fetch_max_retries == 3
    assert settings.request_timeout_seconds == 2.5
    assert settings.profile_image_bucket == "profile-images"
