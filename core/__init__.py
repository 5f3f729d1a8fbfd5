"""
Chaos Core Module
Fault registry, file store, template loading, backup and injection workflows.
"""

from .config import Config
from .logger import setup_logging
from .errors import (
    ChaosError,
    UnknownFaultError,
    NotFoundError,
    NoBackupError,
    CorruptManifestError,
    BackupExistsError,
    UnsafeBackupDirError,
)
from .file_store import FileStore
from .template_loader import TemplateLoader
from .backup_manager import BackupManager, BackupState
from .orchestrator import ChaosOrchestrator

__all__ = [
    'Config',
    'setup_logging',
    'ChaosError',
    'UnknownFaultError',
    'NotFoundError',
    'NoBackupError',
    'CorruptManifestError',
    'BackupExistsError',
    'UnsafeBackupDirError',
    'FileStore',
    'TemplateLoader',
    'BackupManager',
    'BackupState',
    'ChaosOrchestrator',
]
