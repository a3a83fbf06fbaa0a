"""
L1 Domain — ``__init__.py`` re-exports all pure domain functions.

These functions have NO subprocess calls, NO filesystem access,
NO network calls. Pure input→output.
"""

from binvault.core.services.provision.domain.platforms import (  # noqa: F401
    executable_name,
    get_engine,
    platform_key,
    validate_platform,
)
from binvault.core.services.provision.domain.versions import (  # noqa: F401
    is_series_request,
    major_of,
    normalize_version,
    strip_trailing_zero,
    version_tuple,
    versions_match,
)
