"""
Command-level workflows: inject a fault, restore the originals, describe faults.

inject: registry lookup -> backup -> load templates -> write target files.
restore: manifest -> copy snapshots back / delete created files -> clean up.

Injection is not transactional. The manifest is written before any target
file is touched, so if writing stops halfway, `restore` still reverses
whatever was changed.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .backup_manager import BackupManager, BackupManifest, BackupResult, BackupState, RestoreResult
from .config import Config
from .errors import NoBackupError, NotFoundError, UnknownFaultError
from .fault_registry import FAULT_REGISTRY, FaultDefinition
from .file_store import FileStore
from .template_loader import Template, TemplateLoader

logger = logging.getLogger(__name__)


@dataclass
class InjectedFile:
    path: str
    template: str
    created: bool


@dataclass
class InjectionReport:
    fault_id: str
    fault: FaultDefinition
    backup: BackupResult
    injected: List[InjectedFile] = field(default_factory=list)


@dataclass
class FaultDetails:
    fault_id: str
    fault: FaultDefinition
    template_exists: bool
    preview: List[str] = field(default_factory=list)
    total_lines: int = 0
    template_error: Optional[str] = None


@dataclass
class BackupStatus:
    state: BackupState
    manifest: Optional[BackupManifest]
    changed_files: List[str] = field(default_factory=list)
    orphans: List[str] = field(default_factory=list)


class ChaosOrchestrator:
    """Runs inject/restore against one target project."""

    def __init__(self, config: Config, store: Optional[FileStore] = None,
                 registry: Optional[Mapping[str, FaultDefinition]] = None,
                 backups: Optional[BackupManager] = None):
        """
        Args:
            config: Tool configuration (project root, backup location)
            store: File store; built from config.project_root if None
            registry: Fault lookup table; the built-in registry if None
            backups: Backup manager; built from the store and config if None
        """
        self.config = config
        self.store = store or FileStore(config.project_root)
        self.registry = registry if registry is not None else FAULT_REGISTRY
        self.templates = TemplateLoader(self.store)
        self.backups = backups or BackupManager(
            self.store,
            backup_dir=config.backup_dir,
            metadata_file=config.metadata_file,
        )

    def get_fault(self, fault_id: str) -> FaultDefinition:
        """
        Raises:
            UnknownFaultError: If `fault_id` is not registered
        """
        fault = self.registry.get(fault_id)
        if fault is None:
            raise UnknownFaultError(fault_id)
        return fault

    def inject(self, fault_id: str, force: bool = False) -> InjectionReport:
        """
        Inject a fault into the target project.

        Args:
            fault_id: Registry id of the fault
            force: Replace a pending backup instead of refusing

        Raises:
            UnknownFaultError: If the fault id is not registered
            BackupExistsError: If a previous injection was not restored and force is False
            NotFoundError: If a template file is missing
        """
        fault = self.get_fault(fault_id)
        logger.info(f"Injecting {fault_id} into {self.store.project_root}")

        for template_path in sorted({fault.template_file, *map(fault.template_for, fault.target_files)}):
            if not self.store.resolve(template_path).is_file():
                raise NotFoundError(template_path, what="Template file")

        # Existence before the backup decides which files the fault creates
        preexisting = {path for path in fault.target_files if self.store.resolve(path).is_file()}

        backup = self.backups.create_backup(list(fault.target_files), fault_id, replace_existing=force)

        # Every template is loaded before the first write; a missing one leaves
        # the project untouched and the fresh backup is dropped again
        loaded: Dict[str, Template] = {}
        try:
            loaded[fault.template_file] = self.templates.load(fault.template_file)
            for target in fault.target_files:
                template_path = fault.template_for(target)
                if template_path not in loaded:
                    loaded[template_path] = self.templates.load(template_path)
        except NotFoundError:
            logger.error(f"Template missing for {fault_id}, discarding backup {backup.backup_id}")
            self.backups.clean_backup()
            raise

        report = InjectionReport(fault_id=fault_id, fault=fault, backup=backup)
        for target in fault.target_files:
            template_path = fault.template_for(target)
            self.templates.apply(loaded[template_path], target)
            report.injected.append(InjectedFile(
                path=target,
                template=template_path,
                created=target not in preexisting,
            ))

        logger.info(f"Injected {fault_id}: {len(report.injected)} file(s) modified")
        return report

    def restore(self) -> RestoreResult:
        """
        Restore the files recorded by the pending backup and remove the backup.

        Raises:
            NoBackupError: If there is nothing to restore
            CorruptManifestError: If the manifest cannot be read
        """
        if not self.backups.has_backup():
            raise NoBackupError()

        result = self.backups.restore_backup()
        self.backups.clean_backup()
        logger.info(f"Restored {result.fault_type}: {len(result.files)} restored, "
                    f"{len(result.removed_files)} removed, {len(result.skipped_files)} skipped")
        return result

    def describe(self, fault_id: str, preview_lines: Optional[int] = None) -> FaultDetails:
        """
        Collect fault metadata and a preview of its primary template.

        Raises:
            UnknownFaultError: If the fault id is not registered
        """
        fault = self.get_fault(fault_id)
        limit = preview_lines if preview_lines is not None else self.config.preview_lines

        details = FaultDetails(
            fault_id=fault_id,
            fault=fault,
            template_exists=self.store.resolve(fault.template_file).is_file(),
        )
        if not details.template_exists:
            return details

        try:
            template = self.templates.load(fault.template_file)
        except (NotFoundError, OSError) as e:
            details.template_error = str(e)
            return details

        lines = template.content.split('\n')
        details.preview = lines[:limit]
        details.total_lines = len(lines)
        return details

    def status(self) -> BackupStatus:
        """Report the backup state, changed files and orphaned snapshots."""
        manifest = self.backups.get_backup_info()
        state = self.backups.state

        changed = []
        if manifest is not None:
            changed = [path for path, same in self.backups.verify_backup().items() if not same]

        known = {manifest.backup_id} if manifest else set()
        orphans = [b['path'] for b in self.backups.list_backups() if b['id'] not in known]

        return BackupStatus(state=state, manifest=manifest, changed_files=changed, orphans=orphans)
