"""
Exception types for the chaos tool.

Registry lookups return None for unknown ids; the orchestrator turns that into
UnknownFaultError. The backup manager raises only when a whole operation cannot
proceed; individual missing files are recovered locally.
"""

from pathlib import Path
from typing import Union


class ChaosError(RuntimeError):
    """Base exception for all chaos tool failures."""


class UnknownFaultError(ChaosError):
    """Raised when a fault id is not present in the registry."""

    def __init__(self, fault_id: str):
        self.fault_id = fault_id
        super().__init__(f"Fault type does not exist: {fault_id}")


class NotFoundError(ChaosError):
    """Raised when a required file or template does not exist."""

    def __init__(self, path: Union[str, Path], what: str = "File"):
        self.path = str(path)
        super().__init__(f"{what} does not exist: {path}")


class NoBackupError(ChaosError):
    """Raised when restore is requested but no manifest is present."""

    def __init__(self, message: str = "No backup files found"):
        super().__init__(message)


class CorruptManifestError(ChaosError):
    """Raised when the manifest exists but cannot be parsed or is incomplete."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Backup manifest is corrupted ({path}): {reason}")


class BackupExistsError(ChaosError):
    """Raised when injecting while a previous injection is still pending."""

    def __init__(self, fault_type: str):
        self.fault_type = fault_type
        super().__init__(
            f"A backup for fault '{fault_type}' already exists. "
            f"Run 'chaos restore' first or pass --force to replace it"
        )


class UnsafeBackupDirError(ChaosError):
    """Raised when the backup directory would contain the project itself."""

    def __init__(self, backup_dir: str, resolved: Union[str, Path]):
        self.backup_dir = backup_dir
        self.resolved = str(resolved)
        super().__init__(
            f"Backup directory '{backup_dir}' resolves to {resolved}, which is the project "
            f"root or one of its parents. Cleaning it up would delete the project"
        )
