"""
L5 Orchestration — ``__init__.py`` re-exports the managers.
"""

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
