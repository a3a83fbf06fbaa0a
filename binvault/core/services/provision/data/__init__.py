"""
L0 Data — ``__init__.py`` re-exports all data tables.
"""

from binvault.core.services.provision.data.engines import (  # noqa: F401
    ALL_PLATFORMS,
    ENGINES,
    POSTGRES_CLIENT_TOOLS,
)
from binvault.core.services.provision.data.os_dependencies import (  # noqa: F401
    ENGINE_DEPENDENCIES,
    HOST_PLATFORMS,
    OPTIONAL_TOOLS,
    PACKAGE_MANAGERS,
    get_engine_dependencies,
    get_package_manager,
    package_managers_for,
)
