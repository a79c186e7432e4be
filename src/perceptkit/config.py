"""Reconciliation configuration for perceptkit."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from yarl import URL

from perceptkit.exceptions import PerceptkitConfigError

#: Default time (ms) a target stays believed-present after its last sighting.
DEFAULT_BUFFER_WINDOW_MS: float = 2000.0


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise PerceptkitConfigError(f"{env_key} must be numeric, got {value!r}") from exc


def normalize_origin(origin: str) -> str:
    """Serialize an origin the way URLs are compared: lowercase host, no default port.

    Raises ``ValueError`` for anything that is not an absolute URL.
    """
    url = URL(origin.strip())
    if not url.is_absolute() or not url.host:
        raise ValueError(f"not an absolute origin: {origin!r}")
    return str(url.origin())


def _split_origins(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclasses.dataclass(frozen=True)
class PerceptkitConfig:
    """Reconciliation configuration.

    Parameters
    ----------
    buffer_window_ms : float
        How long (in milliseconds) a marker or image stays believed-present
        after it was last observed.  ``0`` disables debouncing: every
        missed tick is an immediate loss.
    origin : str or None
        Origin of the embedding page (e.g. ``"https://example.com"``).
        URL-valued markers are only side-loaded from this origin unless a
        request supplies its own predicate.  With no origin configured the
        same-origin default loads nothing.
    allowed_origins : tuple of str
        Origins used instead of the same-origin default when a request does
        not pass ``should_load_artifacts_from``.  Empty means same-origin.
    fetch_timeout : float
        Total timeout in seconds for a single artifact fetch.
    """

    buffer_window_ms: float = DEFAULT_BUFFER_WINDOW_MS
    origin: str | None = None
    allowed_origins: tuple[str, ...] = ()
    fetch_timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.buffer_window_ms < 0:
            raise PerceptkitConfigError("buffer_window_ms must be >= 0")
        if self.fetch_timeout <= 0:
            raise PerceptkitConfigError("fetch_timeout must be > 0")
        origins = ([self.origin] if self.origin is not None else []) + list(self.allowed_origins)
        for origin in origins:
            try:
                normalize_origin(origin)
            except (TypeError, ValueError) as exc:
                raise PerceptkitConfigError(f"Invalid origin {origin!r}") from exc

    @classmethod
    def from_env(cls, **overrides: Any) -> PerceptkitConfig:
        """Create configuration from environment variables.

        Reads ``PERCEPTKIT_BUFFER_WINDOW_MS``, ``PERCEPTKIT_ORIGIN``,
        ``PERCEPTKIT_ALLOWED_ORIGINS`` (comma separated) and
        ``PERCEPTKIT_FETCH_TIMEOUT``.  Explicit keyword arguments override
        environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        window_env = env.get("PERCEPTKIT_BUFFER_WINDOW_MS")
        if window_env is not None and "buffer_window_ms" not in overrides:
            config_kwargs["buffer_window_ms"] = _env_float("PERCEPTKIT_BUFFER_WINDOW_MS", window_env)

        origin_env = env.get("PERCEPTKIT_ORIGIN")
        if origin_env is not None and origin_env.strip():
            config_kwargs["origin"] = origin_env.strip()

        origins_env = env.get("PERCEPTKIT_ALLOWED_ORIGINS")
        if origins_env is not None:
            config_kwargs["allowed_origins"] = _split_origins(origins_env)

        timeout_env = env.get("PERCEPTKIT_FETCH_TIMEOUT")
        if timeout_env is not None and "fetch_timeout" not in overrides:
            config_kwargs["fetch_timeout"] = _env_float("PERCEPTKIT_FETCH_TIMEOUT", timeout_env)

        # Accept lists for convenience; the dataclass stores tuples.
        allowed = overrides.get("allowed_origins")
        if isinstance(allowed, list):
            overrides["allowed_origins"] = tuple(allowed)

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
