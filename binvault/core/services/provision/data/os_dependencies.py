"""
L0 Data — OS package managers and per-engine host dependencies.

Pure data. No logic beyond table builders and lookups.
"""

from __future__ import annotations

from binvault.core.models.dependency import (
    Dependency,
    EngineDependencies,
    PackageDefinition,
    PackageManagerConfig,
)

# Latest PostgreSQL major packaged by Homebrew as a versioned formula.
POSTGRES_BREW_PACKAGE = "postgresql@18"

BREW_BOOTSTRAP = (
    '/bin/bash -c "$(curl -fsSL '
    'https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"'
)

HOST_PLATFORMS = ("darwin", "linux", "win32")

# ── Package managers (preference order within a platform) ──────

PACKAGE_MANAGERS: list[PackageManagerConfig] = [
    PackageManagerConfig(
        id="brew", name="Homebrew", check_command="brew --version",
        platforms=["darwin"],
        install_template="brew install {package}",
    ),
    PackageManagerConfig(
        id="apt", name="APT", check_command="apt --version",
        platforms=["linux"],
        install_template="sudo apt update && sudo apt install -y {package}",
    ),
    PackageManagerConfig(
        id="yum", name="YUM", check_command="yum --version",
        platforms=["linux"],
        install_template="sudo yum install -y {package}",
    ),
    PackageManagerConfig(
        id="dnf", name="DNF", check_command="dnf --version",
        platforms=["linux"],
        install_template="sudo dnf install -y {package}",
    ),
    PackageManagerConfig(
        id="pacman", name="Pacman", check_command="pacman --version",
        platforms=["linux"],
        install_template="sudo pacman -S --noconfirm {package}",
    ),
    PackageManagerConfig(
        id="choco", name="Chocolatey", check_command="choco --version",
        platforms=["win32"],
        install_template="choco install -y {package}",
    ),
    PackageManagerConfig(
        id="winget", name="Windows Package Manager", check_command="winget --version",
        platforms=["win32"],
        install_template="winget install {package}",
    ),
    PackageManagerConfig(
        id="scoop", name="Scoop", check_command="scoop --version",
        platforms=["win32"],
        install_template="scoop install {package}",
    ),
]


# ── PostgreSQL ─────────────────────────────────────────────────

def _postgres_dependency(name: str, description: str) -> Dependency:
    pkg = POSTGRES_BREW_PACKAGE
    return Dependency(
        name=name,
        binary=name,
        description=description,
        packages={
            "brew": PackageDefinition(
                package=pkg, post_install=[f"brew link --overwrite {pkg}"],
            ),
            "apt": PackageDefinition(package="postgresql-client"),
            "yum": PackageDefinition(package="postgresql"),
            "dnf": PackageDefinition(package="postgresql"),
            "pacman": PackageDefinition(package="postgresql-libs"),
            "choco": PackageDefinition(package="postgresql"),
            "winget": PackageDefinition(package="PostgreSQL.PostgreSQL"),
            "scoop": PackageDefinition(package="postgresql"),
        },
        download_pages={
            "darwin": "https://postgresapp.com/downloads.html",
            "win32": "https://www.enterprisedb.com/downloads/postgres-postgresql-downloads",
        },
    )


# ── MySQL / MariaDB ────────────────────────────────────────────

def _mysql_dependency(name: str, description: str, *, server: bool = False) -> Dependency:
    linux_pkg = "mariadb-server" if server else "mariadb-client"
    rpm_pkg = "mariadb-server" if server else "mariadb"
    arch_pkg = "mariadb" if server else "mariadb-clients"
    return Dependency(
        name=name,
        binary=name,
        description=description,
        packages={
            "brew": PackageDefinition(package="mysql"),
            "apt": PackageDefinition(package=linux_pkg),
            "yum": PackageDefinition(package=rpm_pkg),
            "dnf": PackageDefinition(package=rpm_pkg),
            "pacman": PackageDefinition(package=arch_pkg),
            "choco": PackageDefinition(package="mysql"),
            "winget": PackageDefinition(package="Oracle.MySQL"),
            "scoop": PackageDefinition(package="mysql"),
        },
        download_pages={
            "darwin": "https://dev.mysql.com/downloads/mysql/",
            "win32": "https://dev.mysql.com/downloads/mysql/",
        },
    )


# ── Enhanced CLIs (optional) ───────────────────────────────────

def _dbcli_dependency(name: str, description: str) -> Dependency:
    return Dependency(
        name=name,
        binary=name,
        description=description,
        packages={pm: PackageDefinition(package=name) for pm in ("brew", "apt", "dnf", "yum", "pacman")},
        manual_install={p: [f"pip install {name}"] for p in HOST_PLATFORMS},
    )


USQL = Dependency(
    name="usql",
    binary="usql",
    description="Universal SQL client with auto-completion and multi-database support",
    packages={"brew": PackageDefinition(package="xo/xo/usql", pre_install=["brew tap xo/xo"])},
    manual_install={p: ["go install github.com/xo/usql@latest"] for p in HOST_PLATFORMS},
    download_pages={p: "https://github.com/xo/usql/releases" for p in HOST_PLATFORMS},
)
PGCLI = _dbcli_dependency("pgcli", "PostgreSQL CLI with auto-completion and syntax highlighting")
MYCLI = _dbcli_dependency("mycli", "MySQL/MariaDB CLI with auto-completion and syntax highlighting")
LITECLI = _dbcli_dependency("litecli", "SQLite CLI with auto-completion and syntax highlighting")

OPTIONAL_TOOLS: list[Dependency] = [USQL, PGCLI, MYCLI, LITECLI]


# ── Registry ───────────────────────────────────────────────────

ENGINE_DEPENDENCIES: dict[str, EngineDependencies] = {
    "postgresql": EngineDependencies(
        engine="postgresql",
        display_name="PostgreSQL",
        dependencies=[
            _postgres_dependency("psql", "PostgreSQL interactive terminal"),
            _postgres_dependency("pg_dump", "PostgreSQL database backup utility"),
            _postgres_dependency("pg_restore", "PostgreSQL database restore utility"),
            _postgres_dependency("pg_basebackup", "PostgreSQL base backup utility for physical backups"),
        ],
    ),
    "mysql": EngineDependencies(
        engine="mysql",
        display_name="MySQL/MariaDB",
        dependencies=[
            _mysql_dependency("mysqld", "MySQL/MariaDB server daemon", server=True),
            _mysql_dependency("mysql", "MySQL/MariaDB command-line client"),
            _mysql_dependency("mysqldump", "MySQL/MariaDB database backup utility"),
            _mysql_dependency("mysqladmin", "MySQL/MariaDB server administration utility"),
        ],
    ),
    "sqlite": EngineDependencies(
        engine="sqlite",
        display_name="SQLite",
        dependencies=[
            Dependency(
                name="sqlite3",
                binary="sqlite3",
                description="SQLite command-line interface",
                packages={
                    "brew": PackageDefinition(package="sqlite"),
                    "apt": PackageDefinition(package="sqlite3"),
                    "yum": PackageDefinition(package="sqlite"),
                    "dnf": PackageDefinition(package="sqlite"),
                    "pacman": PackageDefinition(package="sqlite"),
                    "choco": PackageDefinition(package="sqlite"),
                    "winget": PackageDefinition(package="SQLite.SQLite"),
                    "scoop": PackageDefinition(package="sqlite"),
                },
                download_pages={p: "https://www.sqlite.org/download.html" for p in HOST_PLATFORMS},
            ),
        ],
    ),
}


def get_engine_dependencies(engine: str) -> EngineDependencies | None:
    return ENGINE_DEPENDENCIES.get(engine)


def get_package_manager(pm_id: str) -> PackageManagerConfig | None:
    return next((pm for pm in PACKAGE_MANAGERS if pm.id == pm_id), None)


def package_managers_for(platform: str) -> list[PackageManagerConfig]:
    """Package managers available on ``platform``, in preference order."""
    return [pm for pm in PACKAGE_MANAGERS if platform in pm.platforms]
