"""
L4 Execution — ``__init__.py`` re-exports all side-effecting operations.

Network, filesystem and subprocess writes live in this layer only.
"""

from binvault.core.services.provision.execution.archive_extractor import (  # noqa: F401
    ArchiveExtractor,
    find_inner_archive,
    unpack,
)
from binvault.core.services.provision.execution.deb_package import (  # noqa: F401
    ArMember,
    extract_deb_payload,
    extract_payload,
    read_ar_members,
)
from binvault.core.services.provision.execution.fs_ops import (  # noqa: F401
    make_executable,
    mark_bin_executable,
    move_entry,
)
from binvault.core.services.provision.execution.library_patcher import (  # noqa: F401
    LibraryPatcher,
)
from binvault.core.services.provision.execution.manifest_cache import (  # noqa: F401
    ManifestCache,
)
from binvault.core.services.provision.execution.registry_client import (  # noqa: F401
    RegistryClient,
    build_download_url,
)
from binvault.core.services.provision.execution.subprocess_runner import (  # noqa: F401
    run_interactive,
    run_subprocess,
)
from binvault.core.services.provision.execution.supplementary_tools import (  # noqa: F401
    SupplementaryToolInstaller,
    select_package,
)
