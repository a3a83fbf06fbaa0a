"""
L3 Detection — ``__init__.py`` re-exports all detection functions.

These functions READ system state but never WRITE.
"""

from binvault.core.services.provision.detection.package_manager import (  # noqa: F401
    detect_package_manager,
)
from binvault.core.services.provision.detection.platform_info import (  # noqa: F401
    PlatformInfo,
    get_platform_info,
)
from binvault.core.services.provision.detection.tool_probe import (  # noqa: F401
    find_registered,
    find_tool,
    get_tool_version,
)
