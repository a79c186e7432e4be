from __future__ import annotations

import pytest

from perceptkit.config import DEFAULT_BUFFER_WINDOW_MS, PerceptkitConfig, normalize_origin
from perceptkit.exceptions import PerceptkitConfigError


def test_defaults() -> None:
    config = PerceptkitConfig()
    assert config.buffer_window_ms == DEFAULT_BUFFER_WINDOW_MS == 2000.0
    assert config.origin is None
    assert config.allowed_origins == ()


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PERCEPTKIT_BUFFER_WINDOW_MS", "750")
    monkeypatch.setenv("PERCEPTKIT_ORIGIN", " https://example.com ")
    monkeypatch.setenv("PERCEPTKIT_ALLOWED_ORIGINS", "https://a.example, ,https://b.example")
    monkeypatch.setenv("PERCEPTKIT_FETCH_TIMEOUT", "3.5")

    config = PerceptkitConfig.from_env()

    assert config.buffer_window_ms == 750.0
    assert config.origin == "https://example.com"
    assert config.allowed_origins == ("https://a.example", "https://b.example")
    assert config.fetch_timeout == 3.5


def test_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PERCEPTKIT_BUFFER_WINDOW_MS", "750")
    config = PerceptkitConfig.from_env(buffer_window_ms=0, allowed_origins=["https://c.example"])
    assert config.buffer_window_ms == 0
    assert config.allowed_origins == ("https://c.example",)


def test_invalid_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PERCEPTKIT_BUFFER_WINDOW_MS", "soon")
    with pytest.raises(PerceptkitConfigError):
        PerceptkitConfig.from_env()
    with pytest.raises(PerceptkitConfigError):
        PerceptkitConfig(buffer_window_ms=-1)


@pytest.mark.parametrize("origin", ["example.com", "/relative", "not an origin", "https://"])
def test_relative_origin_rejected(origin: str) -> None:
    with pytest.raises(PerceptkitConfigError):
        PerceptkitConfig(origin=origin)
    with pytest.raises(PerceptkitConfigError):
        PerceptkitConfig(allowed_origins=("https://ok.example", origin))


def test_relative_origin_from_env_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PERCEPTKIT_ORIGIN", "example.com")
    with pytest.raises(PerceptkitConfigError):
        PerceptkitConfig.from_env()


def test_normalize_origin() -> None:
    assert normalize_origin("https://Example.com") == "https://example.com"
    assert normalize_origin("https://example.com:443/") == "https://example.com"
    assert normalize_origin(" HTTPS://EXAMPLE.COM/page?q=1 ") == "https://example.com"
    assert normalize_origin("http://example.com:8080") == "http://example.com:8080"
    with pytest.raises(ValueError):
        normalize_origin("example.com")
