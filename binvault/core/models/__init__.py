"""
Domain models — Pydantic types and pipeline state for binvault.

All models are re-exported here for convenient access:

    from binvault.core.models import Settings, ReleaseManifest, InstalledBinary
"""

from binvault.core.models.binary import (
    InstalledBinary,
    PatchResult,
    PatchStatus,
    PipelineRun,
    PipelineState,
    ProgressCallback,
    ProgressStage,
)
from binvault.core.models.dependency import (
    Dependency,
    DependencyStatus,
    DetectedPackageManager,
    EngineDependencies,
    InstallResult,
    InstallStatus,
    PackageDefinition,
    PackageManagerConfig,
)
from binvault.core.models.engine import (
    EngineSpec,
    FlatArchive,
    NestedArchive,
    PackagingStrategy,
    SupplementarySource,
    WindowsInstallTree,
)
from binvault.core.models.manifest import PlatformArtifact, ReleaseEntry, ReleaseManifest
from binvault.core.models.settings import RegistrySettings, Settings

__all__ = [
    # binary.py
    "InstalledBinary",
    "PatchResult",
    "PatchStatus",
    "PipelineRun",
    "PipelineState",
    "ProgressCallback",
    "ProgressStage",
    # dependency.py
    "Dependency",
    "DependencyStatus",
    "DetectedPackageManager",
    "EngineDependencies",
    "InstallResult",
    "InstallStatus",
    "PackageDefinition",
    "PackageManagerConfig",
    # engine.py
    "EngineSpec",
    "FlatArchive",
    "NestedArchive",
    "PackagingStrategy",
    "SupplementarySource",
    "WindowsInstallTree",
    # manifest.py
    "PlatformArtifact",
    "ReleaseEntry",
    "ReleaseManifest",
    # settings.py
    "RegistrySettings",
    "Settings",
]
