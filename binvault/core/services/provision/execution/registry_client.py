"""
L4 Execution — Release registry client.

Fetches the release manifest (primary registry, then mirror), builds
artifact URLs, and performs artifact fetches with a single mirror
retry. Timeouts are never retried: a source that does not answer is
unreachable, not missing.
"""

from __future__ import annotations

import http.client
import logging
import urllib.error
import urllib.request
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from binvault.core.models.engine import EngineSpec
from binvault.core.models.manifest import ReleaseManifest
from binvault.core.models.settings import RegistrySettings
from binvault.core.services.provision.domain.versions import major_of, version_tuple
from binvault.core.services.provision.errors import NetworkError, NotFound
from binvault.core.services.provision.execution.manifest_cache import ManifestCache

logger = logging.getLogger(__name__)

_USER_AGENT = "binvault/1.0"
_CHUNK = 64 * 1024

Opener = Callable[..., Any]


def build_download_url(base: str, engine: str, version: str, platform_key: str) -> str:
    """``{base}/{engine}-{version}/{engine}-{version}-{platform_key}.{ext}``.

    ``ext`` is ``zip`` for Windows keys and ``tar.gz`` otherwise.
    """
    ext = "zip" if platform_key.startswith("win32") else "tar.gz"
    return f"{base}/{engine}-{version}/{engine}-{version}-{platform_key}.{ext}"


def fmt_size(n: int | float) -> str:
    """Format byte count to human-readable string."""
    for unit in ("B", "KB", "MB", "GB"):
        if n < 1024:
            return f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} TB"


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, TimeoutError):
        return True
    return isinstance(exc, urllib.error.URLError) and isinstance(exc.reason, TimeoutError)


class RegistryClient:
    """HTTP access to the release registry and its mirror.

    Args:
        settings: Registry URLs and timeouts.
        cache: Manifest cache; a fresh one with the configured TTL
            when omitted.
        opener: ``urlopen``-compatible callable ``(request, timeout=)``.
    """

    def __init__(
        self,
        settings: RegistrySettings | None = None,
        cache: ManifestCache | None = None,
        opener: Opener | None = None,
    ) -> None:
        self.settings = settings or RegistrySettings()
        self.cache = cache or ManifestCache(ttl=self.settings.manifest_ttl_seconds)
        self._opener = opener or urllib.request.urlopen

    # ── Low level ──────────────────────────────────────────────

    def _open(self, url: str, timeout: float) -> Any:
        req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
        return self._opener(req, timeout=timeout)

    # ── Manifest ───────────────────────────────────────────────

    def fetch_manifest(self) -> ReleaseManifest:
        """Return the release manifest, from cache while it is fresh.

        Raises:
            NetworkError: ``kind="timeout"`` as soon as a source times
                out; otherwise after every source failed, naming each.
        """
        cached = self.cache.get()
        if cached is not None:
            return cached

        timeout = self.settings.manifest_timeout_seconds
        attempts: list[tuple[str, str]] = []
        for url in (self.settings.primary_manifest_url, self.settings.mirror_manifest_url):
            try:
                with self._open(url, timeout) as resp:
                    body = resp.read()
            except (OSError, http.client.HTTPException) as e:
                if _is_timeout(e):
                    attempts.append((url, "timed out"))
                    raise NetworkError(
                        "Release manifest request timed out", kind="timeout", sources=attempts,
                    ) from e
                logger.debug("Manifest fetch from %s failed: %s", url, e)
                attempts.append((url, str(e)))
                continue

            try:
                manifest = ReleaseManifest.model_validate_json(body)
            except ValidationError as e:
                logger.debug("Malformed manifest from %s: %s", url, e)
                attempts.append((url, f"malformed manifest ({e.error_count()} errors)"))
                continue

            self.cache.put(manifest)
            logger.info("Fetched release manifest from %s", url)
            return manifest

        raise NetworkError("Failed to fetch release manifest from all registries", sources=attempts)

    def available_versions(self, engine: EngineSpec) -> dict[str, list[str]]:
        """Published versions of ``engine`` grouped by major, newest first.

        Falls back to the engine's static version map when the
        manifest cannot be fetched or does not list the engine.
        """
        versions: list[str] = []
        if engine.uses_registry:
            try:
                versions = self.fetch_manifest().versions(engine.name)
            except NetworkError as e:
                logger.warning("Using built-in versions for %s: %s", engine.name, e)
        if not versions:
            versions = list(dict.fromkeys(engine.version_map.values()))

        grouped: dict[str, list[str]] = defaultdict(list)
        for v in sorted(versions, key=version_tuple, reverse=True):
            grouped[major_of(v)].append(v)
        return dict(sorted(grouped.items(), key=lambda kv: version_tuple(kv[0]), reverse=True))

    def latest_version(self, engine: EngineSpec, major: str) -> str | None:
        """Newest published version within ``major``, or None."""
        candidates = self.available_versions(engine).get(major, [])
        return candidates[0] if candidates else None

    # ── URLs ───────────────────────────────────────────────────

    def download_url(self, engine: EngineSpec, version: str, platform_key: str) -> str:
        """Artifact URL for one engine build.

        Registry engines follow the registry convention on the primary
        base; legacy engines fill their own template.
        """
        if engine.url_template is not None:
            alias = engine.platform_aliases.get(platform_key, platform_key)
            return engine.url_template.format(version=version, platform=alias)
        return build_download_url(self.settings.primary_base, engine.name, version, platform_key)

    def mirror_url_for(self, url: str) -> str | None:
        """Swap the primary base for the mirror base; None off-registry."""
        primary = self.settings.primary_base
        if not url.startswith(primary):
            return None
        return self.settings.mirror_base + url[len(primary):]

    # ── Artifact fetch ─────────────────────────────────────────

    def fetch_with_fallback(self, url: str, *, timeout: float | None = None) -> Any:
        """Open ``url``, retrying once on the mirror when that can help.

        Retries for HTTP 404, HTTP >= 500 and connection-level errors
        on primary-registry URLs. A timeout propagates at once.

        Returns:
            An open response; the caller closes it.

        Raises:
            NotFound: the final source answered 404.
            NetworkError: any other failure, naming every source tried.
        """
        timeout = timeout or self.settings.download_timeout_seconds
        try:
            return self._open(url, timeout)
        except (OSError, http.client.HTTPException) as e:
            first_error = e

        attempts = [(url, _describe(first_error))]
        if _is_timeout(first_error):
            raise NetworkError(
                f"Request to {url} timed out", kind="timeout", sources=attempts,
            ) from first_error

        mirror = self.mirror_url_for(url)
        if mirror is None or not _retryable(first_error):
            raise _final_error(url, first_error, attempts) from first_error

        logger.warning("Primary registry failed for %s (%s), trying mirror", url, attempts[0][1])
        try:
            return self._open(mirror, timeout)
        except (OSError, http.client.HTTPException) as e:
            attempts.append((mirror, _describe(e)))
            if _is_timeout(e):
                raise NetworkError(
                    f"Request to {mirror} timed out", kind="timeout", sources=attempts,
                ) from e
            raise _final_error(mirror, e, attempts) from e

    def download_to_file(
        self,
        url: str,
        dest: Path,
        on_bytes: Callable[[int, int], None] | None = None,
    ) -> int:
        """Stream ``url`` to ``dest`` without buffering the whole body.

        Args:
            url: Artifact URL (mirror fallback applies).
            dest: Destination file; removed again on failure.
            on_bytes: Optional ``(downloaded, total)`` callback.

        Returns:
            Number of bytes written.
        """
        downloaded = 0
        try:
            with self.fetch_with_fallback(url) as resp, open(dest, "wb") as f:
                total = int(resp.headers.get("Content-Length") or 0)
                last_progress = -1
                while True:
                    chunk = resp.read(_CHUNK)
                    if not chunk:
                        break
                    f.write(chunk)
                    downloaded += len(chunk)
                    if on_bytes:
                        on_bytes(downloaded, total)
                    if total > 0:
                        pct = int(downloaded * 100 / total)
                        if pct >= last_progress + 5:
                            last_progress = pct
                            logger.info(
                                "Download progress: %d%% (%s / %s)",
                                pct, fmt_size(downloaded), fmt_size(total),
                            )
        except (OSError, http.client.HTTPException) as e:
            dest.unlink(missing_ok=True)
            kind = "timeout" if _is_timeout(e) else "other"
            raise NetworkError(f"Download of {url} failed: {e}", kind=kind) from e
        except (NetworkError, NotFound):
            dest.unlink(missing_ok=True)
            raise

        logger.info("Downloaded %s from %s", fmt_size(downloaded), url)
        return downloaded

    def fetch_text(self, url: str, *, timeout: float = 30) -> str:
        """Fetch a small payload (an index page) fully into memory."""
        resp = self.fetch_with_fallback(url, timeout=timeout)
        try:
            with resp:
                return resp.read().decode("utf-8", errors="replace")
        except (OSError, http.client.HTTPException) as e:
            kind = "timeout" if _is_timeout(e) else "other"
            raise NetworkError(f"Reading {url} failed: {e}", kind=kind) from e


def _describe(exc: BaseException) -> str:
    if isinstance(exc, urllib.error.HTTPError):
        return f"HTTP {exc.code}"
    if _is_timeout(exc):
        return "timed out"
    return str(exc)


def _retryable(exc: BaseException) -> bool:
    if isinstance(exc, urllib.error.HTTPError):
        return exc.code == 404 or exc.code >= 500
    return True


def _final_error(url: str, exc: BaseException, attempts: list[tuple[str, str]]) -> Exception:
    if isinstance(exc, urllib.error.HTTPError) and exc.code == 404:
        return NotFound(f"Artifact not found: {url}", url=url)
    return NetworkError(f"Failed to fetch {url}", sources=attempts)
