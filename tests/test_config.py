import pytest

from lozee_backend.config import DEFAULT_ALLOWED_ORIGINS, Settings


def test_reads_environment_overrides(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", " sk-test ")
    monkeypatch.setenv("CHAT_MODEL", "gpt-4o")
    monkeypatch.setenv("CHAT_TEMPERATURE", "0.2")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example ,")
    monkeypatch.setenv("FIREBASE_AUTH_REQUIRED", "yes")
    monkeypatch.setenv("ANALYSIS_FIELD", "rephrasing")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.openai_api_key == "sk-test"
    assert settings.chat_model == "gpt-4o"
    assert settings.chat_temperature == 0.2
    assert settings.origins == ("https://a.example", "https://b.example")
    assert settings.firebase_auth_required is True
    assert settings.analysis_field == "rephrasing"
    assert settings.log_level == "DEBUG"


def test_defaults(monkeypatch):
    for name in ("ALLOWED_ORIGINS", "FIREBASE_AUTH_REQUIRED", "PORT", "ANALYSIS_SPLIT_STRATEGY"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.origins == DEFAULT_ALLOWED_ORIGINS
    assert settings.firebase_auth_required is False
    assert settings.port == 3000
    assert settings.analysis_split_strategy == "first_brace"


def test_empty_variables_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("FIREBASE_AUTH_REQUIRED", "")
    monkeypatch.setenv("ALLOWED_ORIGINS", " , ")

    settings = Settings(_env_file=None)

    assert settings.firebase_auth_required is False
    assert settings.origins == DEFAULT_ALLOWED_ORIGINS


def test_invalid_number_fails_fast(monkeypatch):
    monkeypatch.setenv("CHAT_TEMPERATURE", "warm")

    with pytest.raises(ValueError):
        Settings(_env_file=None)


def test_unknown_analysis_field():
    with pytest.raises(ValueError):
        Settings(_env_file=None, analysis_field="reply")


def test_non_positive_audio_limit():
    with pytest.raises(ValueError):
        Settings(_env_file=None, max_audio_bytes=0)
