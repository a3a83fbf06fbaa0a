"""
Release manifest — the registry's catalogue of published binaries.

Fetched as JSON, validated once, never patched in place. A refresh
replaces the whole document.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PlatformArtifact(BaseModel):
    """One downloadable archive for a platform/arch key."""

    url: str
    sha256: str = ""
    size: int = 0


class ReleaseEntry(BaseModel):
    """A published version of one engine."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    version: str
    release_tag: str = Field("", alias="releaseTag")
    released_at: str = Field("", alias="releasedAt")
    platforms: dict[str, PlatformArtifact] = Field(default_factory=dict)


class ReleaseManifest(BaseModel):
    """Root manifest document.

    ``databases`` maps engine name → version → entry. The three
    top-level fields are required so that any other JSON object (an
    error body served with status 200) fails validation.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    repository: str
    updated_at: str = Field(alias="updatedAt")
    databases: dict[str, dict[str, ReleaseEntry]]

    def versions(self, engine: str) -> list[str]:
        """Return every version published for ``engine`` (unordered)."""
        return list(self.databases.get(engine, {}))

    def artifact(self, engine: str, version: str, platform_key: str) -> PlatformArtifact | None:
        """Look up the artifact for one (engine, version, platform) or None."""
        entry = self.databases.get(engine, {}).get(version)
        if entry is None:
            return None
        return entry.platforms.get(platform_key)
