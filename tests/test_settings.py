import pytest
from pydantic import ValidationError

from dalil.config.settings import Settings


def test_defaults_are_loaded(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "abc123")
    s = Settings()
    assert s.RELEVANCE_THRESHOLD == 0.3
    assert s.SIMILARITY_CACHE_SIZE == 50
    assert s.GOOGLE_API_KEY.get_secret_value() == "abc123"
    assert "abc123" not in repr(s)


@pytest.mark.parametrize("name, value", [
    ("RELEVANCE_THRESHOLD", "0"),
    ("RELEVANCE_THRESHOLD", "2.5"),
    ("SIMILARITY_CACHE_SIZE", "0"),
    ("MAX_WORKERS", "32"),
])
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv("GOOGLE_API_KEY", "abc123")
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings()


def test_api_key_is_required(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
