"""
Engine descriptors — how each database engine is published and laid out.

One ``EngineSpec`` per engine replaces a per-engine manager class.
The packaging strategy classes are a tagged variant: the archive
extractor dispatches on their type.
"""

from __future__ import annotations

from dataclasses import dataclass, field


# ── Packaging strategies ────────────────────────────────────────


@dataclass(frozen=True)
class FlatArchive:
    """Archive rooted at ``bin/``, ``lib/``, ``share/``.

    A single top-level directory named ``<wrapper>`` or
    ``<wrapper>-*`` is hoisted. Without a ``bin/`` directory,
    executables found at the root are moved into a new ``bin/``.
    """

    wrapper_prefixes: tuple[str, ...] = ()


@dataclass(frozen=True)
class WindowsInstallTree:
    """Vendor installer zip whose payload sits under a fixed root dir.

    ``root_names`` are matched exactly; ``root_prefixes`` by prefix.
    """

    root_names: tuple[str, ...] = ("pgsql",)
    root_prefixes: tuple[str, ...] = ()


@dataclass(frozen=True)
class NestedArchive:
    """Outer zip-compatible container holding one inner tarball."""

    inner_suffixes: tuple[str, ...] = (".txz", ".tar.xz", ".tar.gz", ".tgz")


PackagingStrategy = FlatArchive | WindowsInstallTree | NestedArchive


# ── Supplementary client tools ──────────────────────────────────


@dataclass(frozen=True)
class SupplementarySource:
    """Distribution package that provides client tools missing from a bundle.

    Templates accept ``{major}`` and ``{arch}`` (Debian arch name).
    """

    index_url: str
    package_pattern: str
    payload_bin_dir: str
    tools: tuple[str, ...]
    platforms: tuple[str, ...] = ("linux",)
    arch_map: dict[str, str] = field(
        default_factory=lambda: {"x64": "amd64", "arm64": "arm64"}
    )


# ── Engine ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class EngineSpec:
    """Static description of one provisionable engine.

    Args:
        name: Registry name, also the install directory prefix.
        display_name: Human-readable name for messages.
        primary_binary: Executable whose presence in ``bin/`` means
            "installed" and whose ``--version`` output is verified.
        version_map: Alias → full version, in display order.
        supported_platforms: ``platform-arch`` keys with artifacts.
        version_patterns: Regexes tried in order against the version
            output; group 1 is the version.
        packaging: Strategy per platform (``darwin``/``linux``/``win32``).
        default_packaging: Strategy for platforms not in ``packaging``.
        supplementary: Source for missing client tools, if any.
        url_template: Download URL template overriding the registry
            convention (legacy hosting). Accepts ``{version}`` and
            ``{platform}``.
        platform_aliases: ``platform-arch`` → name used in ``url_template``.
        library_path_pattern: Regex matching foreign build-host library
            directories baked into macOS binaries.
    """

    name: str
    display_name: str
    primary_binary: str
    version_map: dict[str, str]
    supported_platforms: tuple[str, ...]
    version_patterns: tuple[str, ...]
    packaging: dict[str, PackagingStrategy] = field(default_factory=dict)
    default_packaging: PackagingStrategy = field(default_factory=FlatArchive)
    supplementary: SupplementarySource | None = None
    url_template: str | None = None
    platform_aliases: dict[str, str] = field(default_factory=dict)
    library_path_pattern: str = ""

    def strategy_for(self, platform: str) -> PackagingStrategy:
        return self.packaging.get(platform, self.default_packaging)

    @property
    def uses_registry(self) -> bool:
        """True when artifacts come from the release registry."""
        return self.url_template is None
