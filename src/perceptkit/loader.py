"""Fetch artifacts from URLs.

Content discovery is a thin boundary: JSON / JSON-LD documents are decoded
directly, HTML pages are scanned for inline
``<script type="application/ld+json">`` blocks and for external JSON-LD
referenced by ``<script src>`` or ``<link rel="alternate">``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from html.parser import HTMLParser
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError
from yarl import URL

from perceptkit.exceptions import ArtifactDecodeError, ArtifactLoadError, PerceptkitError
from perceptkit.models.artifact import ARTIFACT_TYPE, ARArtifact

_logger = logging.getLogger(__name__)

_JSON_CONTENT_TYPES = ("application/json", "application/ld+json")
_LD_JSON_SCRIPT_TYPE = "application/ld+json"
_FOLLOWED_SCHEMES = frozenset({"http", "https"})


class ArtifactLoader(Protocol):
    """Structural loader interface used by :class:`~perceptkit.MeaningMaker`.

    Tests pass plain fakes; :class:`HttpArtifactLoader` is the production
    implementation.
    """

    async def from_url(self, url: URL) -> list[ARArtifact]:
        ...


def _iter_json_ld_items(json_ld: Any) -> list[Any]:
    if isinstance(json_ld, list):
        items: list[Any] = []
        for item in json_ld:
            items.extend(_iter_json_ld_items(item))
        return items
    if isinstance(json_ld, Mapping):
        graph = json_ld.get("@graph")
        if isinstance(graph, list):
            return _iter_json_ld_items(graph)
        return [json_ld]
    return []


def decode_artifacts(json_ld: Any, *, url: str | None = None) -> list[ARArtifact]:
    """Decode every ``ARArtifact`` in a JSON-LD document.

    Accepts a single object, a list, or an ``@graph`` container.  Items of
    any other ``@type`` are skipped.
    """
    artifacts: list[ARArtifact] = []
    for item in _iter_json_ld_items(json_ld):
        if item.get("@type") != ARTIFACT_TYPE:
            continue
        payload = dict(item)
        if url is not None:
            payload.setdefault("url", url)
        try:
            artifacts.append(ARArtifact.model_validate(payload))
        except ValidationError as exc:
            raise ArtifactDecodeError(f"Invalid ARArtifact: {exc}", url=url or "") from exc
    return artifacts


class _JsonLdScriptParser(HTMLParser):
    """Collect inline JSON-LD script text and references to external JSON-LD.

    References come from ``<script type="application/ld+json" src=...>`` and
    ``<link rel="alternate" type="application/ld+json" href=...>``.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.scripts: list[str] = []
        self.references: list[str] = []
        self._buffer: list[str] | None = None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag not in ("script", "link"):
            return
        attributes = dict(attrs)
        if (attributes.get("type") or "").strip().lower() != _LD_JSON_SCRIPT_TYPE:
            return
        if tag == "link":
            rel = (attributes.get("rel") or "").lower().split()
            if "alternate" in rel and attributes.get("href"):
                self.references.append(attributes["href"] or "")
            return
        src = attributes.get("src")
        if src:
            self.references.append(src)
            return
        self._buffer = []

    def handle_data(self, data: str) -> None:
        if self._buffer is not None:
            self._buffer.append(data)

    def handle_endtag(self, tag: str) -> None:
        if tag == "script" and self._buffer is not None:
            self.scripts.append("".join(self._buffer))
            self._buffer = None


def _scan_html(html: str) -> _JsonLdScriptParser:
    parser = _JsonLdScriptParser()
    parser.feed(html)
    parser.close()
    return parser


def _decode_scripts(scripts: list[str], *, url: str | None) -> list[ARArtifact]:
    artifacts: list[ARArtifact] = []
    for script in scripts:
        if not script.strip():
            continue
        try:
            artifacts.extend(decode_artifacts(json.loads(script), url=url))
        except (json.JSONDecodeError, ArtifactDecodeError) as exc:
            _logger.debug("Skipping faulty JSON-LD block in %s: %s", url, exc)
    return artifacts


def decode_html(html: str, *, url: str | None = None) -> list[ARArtifact]:
    """Decode artifacts from inline JSON-LD scripts.  Faulty blocks are skipped.

    External references are not followed here; see
    :meth:`HttpArtifactLoader.from_url`.
    """
    return _decode_scripts(_scan_html(html).scripts, url=url)


def resolve_references(base: URL, references: list[str]) -> list[URL]:
    """Resolve ``src`` / ``href`` values against the page they appeared on.

    Malformed references and anything that is not http(s) are dropped.
    """
    resolved: list[URL] = []
    for reference in references:
        try:
            target = base.join(URL(reference.strip()))
        except (TypeError, ValueError):
            _logger.debug("Ignoring malformed JSON-LD reference %r in %s", reference, base)
            continue
        if target.scheme not in _FOLLOWED_SCHEMES or not target.host:
            _logger.debug("Ignoring JSON-LD reference %r in %s", reference, base)
            continue
        resolved.append(target)
    return resolved


class HttpArtifactLoader:
    """Load artifacts over HTTP with aiohttp.

    Usage::

        async with HttpArtifactLoader() as loader:
            artifacts = await loader.from_url(URL("https://example.com/page.html"))
    """

    def __init__(
        self,
        *,
        session: aiohttp.ClientSession | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._external_session = session is not None
        self._http_session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def __aenter__(self) -> HttpArtifactLoader:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
        self._http_session = None

    def _session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession(timeout=self._timeout)
        return self._http_session

    async def _get(self, url: URL) -> tuple[str, str]:
        url_str = str(url)
        _logger.debug("GET %s", url_str)
        try:
            async with self._session().get(url, timeout=self._timeout) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise ArtifactLoadError(
                        f"HTTP {resp.status} from {url_str}: {resp.reason}",
                        url=url_str,
                        status_code=resp.status,
                    )
                return resp.headers.get("Content-Type", ""), await resp.text()
        except ArtifactLoadError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise ArtifactLoadError(f"Request to {url_str} failed: {exc}", url=url_str) from exc

    @staticmethod
    def _decode_json(text: str, url_str: str) -> list[ARArtifact]:
        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ArtifactDecodeError(f"Invalid JSON from {url_str}: {text[:200]}", url=url_str) from exc
        return decode_artifacts(body, url=url_str)

    async def from_url(self, url: URL) -> list[ARArtifact]:
        """Fetch ``url`` and decode its artifacts.

        HTML pages contribute their inline JSON-LD blocks plus every external
        JSON-LD document they reference.  References are fetched with
        :meth:`from_json_url`; one that fails is logged and skipped.

        Raises
        ------
        ArtifactLoadError
            Network failure or non-2xx status.
        ArtifactDecodeError
            The body claims to be JSON but is not.
        """
        content_type, text = await self._get(url)
        url_str = str(url)

        if not content_type:
            return []

        if any(kind in content_type for kind in _JSON_CONTENT_TYPES):
            return self._decode_json(text, url_str)

        page = _scan_html(text)
        artifacts = _decode_scripts(page.scripts, url=url_str)
        artifacts.extend(await self._load_references(resolve_references(url, page.references)))
        return artifacts

    async def from_json_url(self, url: URL) -> list[ARArtifact]:
        """Fetch ``url`` and decode the body as JSON-LD whatever its content type."""
        _content_type, text = await self._get(url)
        return self._decode_json(text, str(url))

    async def _load_references(self, urls: list[URL]) -> list[ARArtifact]:
        if not urls:
            return []
        results = await asyncio.gather(*(self.from_json_url(url) for url in urls), return_exceptions=True)
        artifacts: list[ARArtifact] = []
        for url, result in zip(urls, results):
            if isinstance(result, PerceptkitError):
                _logger.warning("Skipping JSON-LD reference %s: %s", url, result)
                continue
            if isinstance(result, BaseException):
                raise result
            artifacts.extend(result)
        return artifacts
