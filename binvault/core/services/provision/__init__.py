"""
Binary provisioning service — package re-exports.

    from binvault.core.services.provision import BinaryManager, ensure_binaries

Each symbol lives in its single-responsibility module inside the
appropriate layer (data → domain → detection → execution →
orchestration).
"""

# ── Errors ──
from binvault.core.services.provision.errors import (  # noqa: F401
    ArchiveFormatError,
    NetworkError,
    NotFound,
    PackageManagerUnavailable,
    PrivilegeRequired,
    ProvisionError,
    UnknownEngine,
    UnsupportedPlatform,
    VersionMismatch,
)

# ── L0: Data ──
from binvault.core.services.provision.data.engines import ENGINES  # noqa: F401

# ── L1: Domain ──
from binvault.core.services.provision.domain.platforms import (  # noqa: F401
    get_engine,
    validate_platform,
)
from binvault.core.services.provision.domain.versions import (  # noqa: F401
    normalize_version,
    versions_match,
)

# ── L3: Detection ──
from binvault.core.services.provision.detection.platform_info import (  # noqa: F401
    PlatformInfo,
    get_platform_info,
)

# ── L4: Execution ──
from binvault.core.services.provision.execution.manifest_cache import (  # noqa: F401
    ManifestCache,
)
from binvault.core.services.provision.execution.registry_client import (  # noqa: F401
    RegistryClient,
)

# ── L5: Orchestration ──
from binvault.core.services.provision.orchestration.binary_manager import (  # noqa: F401
    BinaryManager,
)
from binvault.core.services.provision.orchestration.dependency_manager import (  # noqa: F401
    DependencyManager,
)
from binvault.core.services.provision.orchestration.facade import (  # noqa: F401
    ensure_binaries,
    get_binary_executable,
    is_binary_installed,
)
