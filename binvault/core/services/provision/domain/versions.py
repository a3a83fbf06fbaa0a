"""
L1 Domain — Version normalization and acceptance.

Pure input→output. No subprocess, filesystem or network access.
"""

from __future__ import annotations

import re

from binvault.core.models.engine import EngineSpec

_MAJOR_MINOR = re.compile(r"\d+\.\d+")
_NUMERIC = re.compile(r"\d+")


def normalize_version(engine: EngineSpec, requested: str) -> str:
    """Resolve a requested version to the full version to install.

    Lookup order: the engine's version map, then ``X.Y`` → ``X.Y.0``,
    then the request unchanged.

    Args:
        engine: Engine descriptor holding the version map.
        requested: What the caller asked for (``"16"``, ``"8.0"``, ...).

    Returns:
        Full version string, e.g. ``"16.11.0"``.
    """
    full = engine.version_map.get(requested)
    if full:
        return full
    if _MAJOR_MINOR.fullmatch(requested):
        return f"{requested}.0"
    return requested


def major_of(version: str) -> str:
    return version.split(".", 1)[0]


def strip_trailing_zero(version: str) -> str:
    """Drop one trailing ``.0`` (``16.9.0`` → ``16.9``, ``16`` → ``16``)."""
    return version[:-2] if version.endswith(".0") else version


def version_tuple(text: str) -> tuple[int, ...]:
    """Numeric components of ``text`` for ordering (``"16.4-1"`` → (16, 4, 1))."""
    return tuple(int(n) for n in _NUMERIC.findall(text))


def is_series_request(engine: EngineSpec, requested: str) -> bool:
    """True when ``requested`` names a series rather than one build.

    A bare major (``"16"``) always does; so does any version-map alias
    with fewer components than the version it resolves to (``"8.0"``
    → ``"8.0.40"``).
    """
    if requested.isdigit():
        return True
    full = engine.version_map.get(requested)
    return bool(full) and requested.count(".") < full.count(".")


def versions_match(engine: EngineSpec, requested: str, reported: str) -> bool:
    """Decide whether a binary reporting ``reported`` satisfies ``requested``.

    Exact matches (after stripping a trailing ``.0`` on both sides)
    against either the request or its resolved full version are
    accepted. Series requests additionally accept any build whose
    leading components equal the request's.
    """
    got = strip_trailing_zero(reported)
    if got in (
        strip_trailing_zero(requested),
        strip_trailing_zero(normalize_version(engine, requested)),
    ):
        return True

    if is_series_request(engine, requested):
        want = requested.split(".")
        return reported.split(".")[: len(want)] == want

    return False
