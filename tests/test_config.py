import pytest
from pydantic import ValidationError

from slackr.config import Settings, get_settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SLACKR_MAX_ITERATIONS", raising=False)
    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.max_iterations == 5
    assert settings.context_top_k == 5
    assert settings.message_limit == settings.channel_limit == settings.member_limit == 10
    assert settings.exchange_timeout_seconds is None


def test_env_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SLACKR_MAX_ITERATIONS", "3")
    monkeypatch.setenv("SLACKR_MODEL", "openai:gpt-4o-mini")

    settings = get_settings()

    assert settings.max_iterations == 3
    assert settings.model == "openai:gpt-4o-mini"


def test_overrides_win_and_are_validated() -> None:
    assert get_settings(max_iterations=2).max_iterations == 2
    with pytest.raises(ValidationError, match="max_iterations must be at least 1"):
        get_settings(max_iterations=0)
    with pytest.raises(ValidationError, match="limits must be positive"):
        get_settings(message_limit=0)
