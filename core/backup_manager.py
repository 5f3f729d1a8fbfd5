"""
Backup and restore of target files around a fault injection.

The backup directory holds at most one pending injection:

    .chaos-backup/
      metadata.json          manifest of the pending injection
      <backupId>/<path>      byte-for-byte copies of the files it replaced

The tool is in one of two states. CLEAN means no manifest is present and only
inject makes sense. INJECTED means a manifest is present and restore will
put every recorded file back. Target files that did not exist at backup time
are listed under `missingFiles` and are deleted on restore instead of being
overwritten.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, Iterable, List, Optional

from .errors import BackupExistsError, CorruptManifestError, NoBackupError, NotFoundError, UnsafeBackupDirError
from .file_store import FileStore

logger = logging.getLogger(__name__)

BACKUP_DIR = '.chaos-backup'
METADATA_FILE = 'metadata.json'


class BackupState(Enum):
    """Whether an injection is pending restore."""
    CLEAN = 'clean'
    INJECTED = 'injected'


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2024-05-01T12:30:00.123Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f'{moment.microsecond // 1000:03d}Z'


def make_backup_id(moment: datetime) -> str:
    """Sortable backup id: the timestamp with ':' and '.' replaced by '-'."""
    return format_timestamp(moment).replace(':', '-').replace('.', '-')


@dataclass
class BackupManifest:
    """The persisted record of one pending injection."""
    backup_id: str
    timestamp: str
    fault_type: str
    files: List[str] = field(default_factory=list)
    missing_files: List[str] = field(default_factory=list)
    file_hashes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'backupId': self.backup_id,
            'timestamp': self.timestamp,
            'faultType': self.fault_type,
            'files': list(self.files),
            'missingFiles': list(self.missing_files),
            'fileHashes': dict(self.file_hashes),
        }

    @classmethod
    def from_dict(cls, data, source: str = METADATA_FILE) -> 'BackupManifest':
        """
        Build a manifest from its JSON form.

        `missingFiles` and `fileHashes` are optional (older manifests lack them).

        Raises:
            CorruptManifestError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise CorruptManifestError(source, "manifest is not a JSON object")

        for key in ('backupId', 'timestamp', 'faultType'):
            if not isinstance(data.get(key), str) or not data.get(key):
                raise CorruptManifestError(source, f"missing or invalid '{key}'")

        backup_id = data['backupId']
        if '/' in backup_id or '\\' in backup_id or backup_id in ('.', '..'):
            raise CorruptManifestError(source, f"invalid backupId {backup_id!r}")

        files = data.get('files')
        if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
            raise CorruptManifestError(source, "'files' must be a list of paths")

        missing_files = data.get('missingFiles', [])
        if not isinstance(missing_files, list) or not all(isinstance(f, str) for f in missing_files):
            raise CorruptManifestError(source, "'missingFiles' must be a list of paths")

        file_hashes = data.get('fileHashes', {})
        if not isinstance(file_hashes, dict):
            raise CorruptManifestError(source, "'fileHashes' must be an object")

        return cls(
            backup_id=backup_id,
            timestamp=data['timestamp'],
            fault_type=data['faultType'],
            files=list(files),
            missing_files=list(missing_files),
            file_hashes={str(k): str(v) for k, v in file_hashes.items()},
        )


@dataclass
class BackupResult:
    backup_id: str
    files: List[str]
    missing_files: List[str]
    path: str


@dataclass
class RestoreResult:
    files: List[str]
    removed_files: List[str]
    skipped_files: List[str]
    fault_type: str
    timestamp: str


class BackupManager:
    """Owns the backup directory and the CLEAN/INJECTED state it encodes."""

    def __init__(self, store: FileStore, backup_dir: str = BACKUP_DIR,
                 metadata_file: str = METADATA_FILE,
                 clock: Callable[[], datetime] = _utc_now):
        """
        Args:
            store: File store rooted at the target project
            backup_dir: Backup directory, relative to the project root
            metadata_file: Manifest file name inside `backup_dir`
            clock: Source of the current time (UTC aware)

        Raises:
            UnsafeBackupDirError: If `backup_dir` is the project root or one of its parents
        """
        resolved = store.resolve(backup_dir).resolve()
        if resolved == store.project_root or resolved in store.project_root.parents:
            raise UnsafeBackupDirError(backup_dir, resolved)

        self.store = store
        self.backup_dir = backup_dir
        self.metadata_path = str(PurePosixPath(backup_dir) / metadata_file)
        self.clock = clock

    @property
    def state(self) -> BackupState:
        return BackupState.INJECTED if self.has_backup() else BackupState.CLEAN

    def has_backup(self) -> bool:
        """True if a manifest is present (its content is not checked)."""
        return self.store.resolve(self.metadata_path).is_file()

    def get_backup_info(self) -> Optional[BackupManifest]:
        """Return the current manifest, or None if absent or unreadable."""
        if not self.has_backup():
            return None

        try:
            return self._load_manifest()
        except (CorruptManifestError, OSError) as e:
            logger.warning(f"Backup manifest unusable: {e}")
            return None

    def create_backup(self, files: Iterable[str], fault_type: str,
                      replace_existing: bool = False) -> BackupResult:
        """
        Snapshot `files` and write a manifest for `fault_type`.

        Files that do not exist are recorded as missing and skipped, so a
        partial backup still succeeds.

        Args:
            files: Target files, relative to the project root
            fault_type: Id of the fault about to be injected
            replace_existing: Discard a pending backup instead of refusing

        Returns:
            BackupResult with the files actually copied

        Raises:
            BackupExistsError: If a backup is pending and replace_existing is False
        """
        if self.state is BackupState.INJECTED:
            previous = self.get_backup_info()
            previous_type = previous.fault_type if previous else 'unknown'
            if not replace_existing:
                raise BackupExistsError(previous_type)
            logger.warning(f"Discarding pending backup for {previous_type} without restoring it")
            self.clean_backup()

        self.store.create_dir(self.backup_dir)

        now = self.clock()
        backup_id = make_backup_id(now)
        backup_path = PurePosixPath(self.backup_dir) / backup_id

        backed_up_files = []
        missing_files = []
        file_hashes = {}

        for file in files:
            if not self.store.resolve(file).is_file():
                logger.warning(f"File does not exist, skipping backup: {file}")
                missing_files.append(file)
                continue

            self.store.copy(file, self._snapshot_path(backup_path, file))
            backed_up_files.append(file)
            file_hashes[file] = self.store.fingerprint(file)
            logger.info(f"Backed up {file}")

        manifest = BackupManifest(
            backup_id=backup_id,
            timestamp=format_timestamp(now),
            fault_type=fault_type,
            files=backed_up_files,
            missing_files=missing_files,
            file_hashes=file_hashes,
        )
        self.store.write_structured(self.metadata_path, manifest.to_dict(), atomic=True)
        logger.info(f"Backup {backup_id} created for {fault_type}: "
                    f"{len(backed_up_files)} file(s), {len(missing_files)} missing")

        return BackupResult(
            backup_id=backup_id,
            files=backed_up_files,
            missing_files=missing_files,
            path=str(backup_path),
        )

    def restore_backup(self) -> RestoreResult:
        """
        Put every backed-up file back and delete files the fault created.

        A file whose snapshot copy has gone missing is skipped with a warning.

        Raises:
            NoBackupError: If no manifest is present
            CorruptManifestError: If the manifest cannot be read
        """
        if not self.has_backup():
            raise NoBackupError()

        manifest = self._load_manifest()
        backup_path = PurePosixPath(self.backup_dir) / manifest.backup_id

        restored_files = []
        removed_files = []
        skipped_files = []

        for file in manifest.files:
            snapshot = self._snapshot_path(backup_path, file)
            if not self.store.resolve(snapshot).is_file():
                logger.warning(f"Backup file does not exist, skipping restore: {file}")
                skipped_files.append(file)
                continue

            self.store.copy(snapshot, file)
            restored_files.append(file)
            logger.info(f"Restored {file}")

        for file in manifest.missing_files:
            full = self.store.resolve(file)
            if full.is_dir() and not full.is_symlink():
                logger.warning(f"{file} is now a directory, not removing it")
                continue
            if self.store.exists(file):
                self.store.remove(file)
                removed_files.append(file)
                logger.info(f"Removed {file} (did not exist before injection)")

        return RestoreResult(
            files=restored_files,
            removed_files=removed_files,
            skipped_files=skipped_files,
            fault_type=manifest.fault_type,
            timestamp=manifest.timestamp,
        )

    def clean_backup(self):
        """Delete the whole backup directory. No-op when already clean."""
        if self.store.exists(self.backup_dir):
            self.store.remove_dir(self.backup_dir)
            logger.info(f"Removed backup directory {self.backup_dir}")

    def list_backups(self) -> List[dict]:
        """List snapshot directories under the backup directory."""
        backups = []
        for item in self.store.list_dirs(self.backup_dir):
            info = self.store.file_info(item)
            backups.append({
                'id': PurePosixPath(item).name,
                'path': item,
                'created': info['created'] if info else None,
            })
        return backups

    def verify_backup(self) -> Dict[str, bool]:
        """
        Compare current fingerprints of backed-up files with the recorded ones.

        Returns:
            Mapping of file -> True if unchanged since the backup
        """
        manifest = self.get_backup_info()
        if manifest is None:
            return {}

        result = {}
        for file in manifest.files:
            expected = manifest.file_hashes.get(file)
            try:
                result[file] = expected is not None and self.store.fingerprint(file) == expected
            except NotFoundError:
                result[file] = False
        return result

    def _load_manifest(self) -> BackupManifest:
        try:
            data = self.store.read_structured(self.metadata_path)
        except json.JSONDecodeError as e:
            raise CorruptManifestError(self.metadata_path, f"invalid JSON ({e})")
        except NotFoundError:
            raise NoBackupError()
        return BackupManifest.from_dict(data, source=self.metadata_path)

    @staticmethod
    def _snapshot_path(backup_path: PurePosixPath, file: str) -> str:
        """Location of the copy of `file` inside a snapshot directory."""
        relative = Path(file)
        if relative.is_absolute():
            relative = relative.relative_to(relative.anchor)
        return str(Path(backup_path) / relative)
