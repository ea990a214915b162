import pytest

from triage.classifier.providers import ProviderRegistry
from triage.conversations.models import Department
from triage.core.settings import DEFAULT_DATABASE_URL, get_settings, reset_settings_cache


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


def test_defaults(monkeypatch):
    for name in ("DATABASE_URL", "LLM_PROVIDER", "LLM_MODEL", "CORS_ORIGINS", "MESSAGE_MAX_LENGTH"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.llm_provider == "groq"
    assert settings.llm_model == "llama-3.3-70b-versatile"
    assert settings.llm_max_retries == 1
    assert settings.message_max_length == 2000
    assert settings.cors_origins == ()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://user:pw@db:5432/triage")
    monkeypatch.setenv("LLM_PROVIDER", "OpenAI")
    monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "3.5")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, ,http://b.test")

    settings = get_settings()

    assert settings.database_url == "postgresql+psycopg://user:pw@db:5432/triage"
    assert settings.llm_provider == "openai"
    assert settings.llm_timeout_seconds == 3.5
    assert settings.cors_origins == ("http://a.test", "http://b.test")


def test_settings_are_cached(monkeypatch):
    monkeypatch.setenv("LLM_MODEL", "first")
    assert get_settings().llm_model == "first"
    monkeypatch.setenv("LLM_MODEL", "second")
    assert get_settings().llm_model == "first"


def test_provider_registry_reads_environment(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    monkeypatch.delenv("LLM_BASE_URL", raising=False)

    credentials = ProviderRegistry().get_credentials("GROQ")

    assert credentials.configured
    assert credentials.api_key == "gsk-test"
    assert credentials.base_url == "https://api.groq.com/openai/v1"


def test_provider_registry_overrides_and_unknown_provider(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    registry = ProviderRegistry({"openai": {"api_key": "sk-test", "base_url": "http://llm.local/v1"}})

    credentials = registry.get_credentials("openai")
    assert credentials.base_url == "http://llm.local/v1"
    assert not ProviderRegistry().get_credentials("openai").configured

    with pytest.raises(ValueError):
        registry.get_credentials("unknown")


def test_department_labels_and_parsing():
    assert [d.label for d in Department] == ["Sales", "Support", "Finance"]
    assert Department.parse(" finance ") is Department.FINANCE
    with pytest.raises(ValueError):
        Department.parse("legal")
