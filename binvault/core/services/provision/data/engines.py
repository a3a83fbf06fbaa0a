"""
L0 Data — Engine registry.

Pure data: one ``EngineSpec`` per provisionable engine. Adding an
engine means adding an entry here, not a new manager class.
"""

from __future__ import annotations

from binvault.core.models.engine import (
    EngineSpec,
    FlatArchive,
    NestedArchive,
    SupplementarySource,
    WindowsInstallTree,
)

# Every registry-hosted engine publishes these five platform keys.
ALL_PLATFORMS: tuple[str, ...] = (
    "darwin-arm64",
    "darwin-x64",
    "linux-arm64",
    "linux-x64",
    "win32-x64",
)

# macOS builds embed the CI runner's install prefix in their load commands.
_RUNNER_LIB = r"/Users/runner/work/hostdb/[^/]+/install/{engine}/lib/"

# Generic dotted version, used as a last resort.
_ANY_SEMVER = r"(\d+\.\d+\.\d+)"


POSTGRES_CLIENT_TOOLS = SupplementarySource(
    index_url="https://apt.postgresql.org/pub/repos/apt/pool/main/p/postgresql-{major}/",
    package_pattern=r'href="(postgresql-client-{major}_[^"]+_{arch}\.deb)"',
    payload_bin_dir="usr/lib/postgresql/{major}/bin",
    tools=("psql", "pg_dump", "pg_restore", "pg_dumpall"),
)


ENGINES: dict[str, EngineSpec] = {
    "postgresql": EngineSpec(
        name="postgresql",
        display_name="PostgreSQL",
        primary_binary="postgres",
        version_map={
            "14": "14.20.0",
            "15": "15.15.0",
            "16": "16.11.0",
            "17": "17.7.0",
            "18": "18.1.0",
        },
        supported_platforms=ALL_PLATFORMS,
        version_patterns=(r"postgres \(PostgreSQL\) ([\d.]+)",),
        packaging={
            "win32": WindowsInstallTree(
                root_names=("pgsql",), root_prefixes=("postgresql-",),
            ),
        },
        default_packaging=FlatArchive(wrapper_prefixes=("postgresql",)),
        supplementary=POSTGRES_CLIENT_TOOLS,
        library_path_pattern=_RUNNER_LIB.format(engine="postgresql"),
    ),
    "mysql": EngineSpec(
        name="mysql",
        display_name="MySQL",
        primary_binary="mysqld",
        version_map={"8.0": "8.0.40", "8.4": "8.4.3", "9": "9.1.0"},
        supported_platforms=ALL_PLATFORMS,
        version_patterns=(r"Ver\s+([\d.]+)",),
        default_packaging=FlatArchive(wrapper_prefixes=("mysql",)),
        library_path_pattern=_RUNNER_LIB.format(engine="mysql"),
    ),
    "mariadb": EngineSpec(
        name="mariadb",
        display_name="MariaDB",
        primary_binary="mariadbd",
        version_map={"11.8": "11.8.5"},
        supported_platforms=ALL_PLATFORMS,
        version_patterns=(r"Ver\s+([\d.]+)",),
        default_packaging=FlatArchive(wrapper_prefixes=("mariadb",)),
        library_path_pattern=_RUNNER_LIB.format(engine="mariadb"),
    ),
    "redis": EngineSpec(
        name="redis",
        display_name="Redis",
        primary_binary="redis-server",
        version_map={
            "7": "7.4.7",
            "8": "8.4.0",
            "7.4": "7.4.7",
            "8.4": "8.4.0",
        },
        supported_platforms=ALL_PLATFORMS,
        version_patterns=(r"v=(\d+\.\d+\.\d+)", _ANY_SEMVER),
        default_packaging=FlatArchive(wrapper_prefixes=("redis",)),
        library_path_pattern=_RUNNER_LIB.format(engine="redis"),
    ),
    "valkey": EngineSpec(
        name="valkey",
        display_name="Valkey",
        primary_binary="valkey-server",
        version_map={
            "8": "8.0.6",
            "9": "9.0.1",
            "8.0": "8.0.6",
            "9.0": "9.0.1",
        },
        supported_platforms=ALL_PLATFORMS,
        version_patterns=(r"v=(\d+\.\d+\.\d+)", _ANY_SEMVER),
        default_packaging=FlatArchive(wrapper_prefixes=("valkey",)),
        library_path_pattern=_RUNNER_LIB.format(engine="valkey"),
    ),
    "clickhouse": EngineSpec(
        name="clickhouse",
        display_name="ClickHouse",
        primary_binary="clickhouse",
        version_map={
            "25": "25.12.3.21",
            "25.12": "25.12.3.21",
            "25.12.3": "25.12.3.21",
        },
        supported_platforms=tuple(p for p in ALL_PLATFORMS if not p.startswith("win32")),
        version_patterns=(r"version\s+(\d+\.\d+\.\d+\.\d+)", _ANY_SEMVER),
        default_packaging=FlatArchive(wrapper_prefixes=("clickhouse",)),
        library_path_pattern=_RUNNER_LIB.format(engine="clickhouse"),
    ),
    # Legacy Maven-hosted bundles: a jar wrapping a single .txz.
    "postgresql-embedded": EngineSpec(
        name="postgresql-embedded",
        display_name="PostgreSQL (embedded bundle)",
        primary_binary="postgres",
        version_map={
            "14": "14.15.0",
            "15": "15.10.0",
            "16": "16.6.0",
            "17": "17.2.0",
        },
        supported_platforms=ALL_PLATFORMS,
        version_patterns=(r"postgres \(PostgreSQL\) ([\d.]+)",),
        default_packaging=NestedArchive(),
        url_template=(
            "https://repo1.maven.org/maven2/io/zonky/test/postgres/"
            "embedded-postgres-binaries-{platform}/{version}/"
            "embedded-postgres-binaries-{platform}-{version}.jar"
        ),
        platform_aliases={
            "darwin-x64": "darwin-amd64",
            "darwin-arm64": "darwin-arm64v8",
            "linux-x64": "linux-amd64",
            "linux-arm64": "linux-arm64v8",
            "win32-x64": "windows-amd64",
        },
    ),
}
