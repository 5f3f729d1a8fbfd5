"""Tests for backup creation, restore and the manifest format."""

import json
from datetime import datetime, timezone

import pytest

from core.backup_manager import (
    BackupManager,
    BackupManifest,
    BackupState,
    format_timestamp,
    make_backup_id,
)
from core.errors import BackupExistsError, CorruptManifestError, NoBackupError, UnsafeBackupDirError
from core.file_store import FileStore

FIXED_TIME = datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)


@pytest.fixture
def store(project):
    return FileStore(project)


@pytest.fixture
def manager(store):
    return BackupManager(store, clock=lambda: FIXED_TIME)


def read_manifest(project):
    return json.loads((project / '.chaos-backup/metadata.json').read_text(encoding='utf-8'))


def test_timestamp_and_backup_id_format():
    assert format_timestamp(FIXED_TIME) == '2024-05-01T12:30:45.123Z'
    assert make_backup_id(FIXED_TIME) == '2024-05-01T12-30-45-123Z'


def test_initial_state_is_clean(manager):
    assert manager.state is BackupState.CLEAN
    assert manager.has_backup() is False
    assert manager.get_backup_info() is None


def test_create_backup_records_copies_and_missing_files(manager, project):
    result = manager.create_backup(['a.js', 'b.js', 'src/utils/largeData.js'], 'circular-dependency')

    assert result.backup_id == '2024-05-01T12-30-45-123Z'
    assert result.files == ['a.js', 'b.js']
    assert result.missing_files == ['src/utils/largeData.js']
    assert result.path == '.chaos-backup/2024-05-01T12-30-45-123Z'

    snapshot = project / '.chaos-backup' / result.backup_id
    assert (snapshot / 'a.js').read_text(encoding='utf-8') == 'original-a'
    assert (snapshot / 'b.js').read_text(encoding='utf-8') == 'original-b'

    manifest = read_manifest(project)
    assert manifest == {
        'backupId': '2024-05-01T12-30-45-123Z',
        'timestamp': '2024-05-01T12:30:45.123Z',
        'faultType': 'circular-dependency',
        'files': ['a.js', 'b.js'],
        'missingFiles': ['src/utils/largeData.js'],
        'fileHashes': {
            'a.js': manager.store.fingerprint('a.js'),
            'b.js': manager.store.fingerprint('b.js'),
        },
    }
    assert manager.state is BackupState.INJECTED


def test_nested_paths_keep_their_structure(manager, project):
    result = manager.create_backup(['src/App.jsx'], 'import-error')
    assert (project / '.chaos-backup' / result.backup_id / 'src/App.jsx').is_file()


def test_restore_puts_files_back_and_deletes_created_ones(manager, project):
    manager.create_backup(['a.js', 'new.js'], 'fault')
    (project / 'a.js').write_text('broken', encoding='utf-8')
    (project / 'new.js').write_text('created by fault', encoding='utf-8')

    result = manager.restore_backup()

    assert result.files == ['a.js']
    assert result.removed_files == ['new.js']
    assert result.skipped_files == []
    assert result.fault_type == 'fault'
    assert result.timestamp == '2024-05-01T12:30:45.123Z'
    assert (project / 'a.js').read_text(encoding='utf-8') == 'original-a'
    assert not (project / 'new.js').exists()
    # restore_backup leaves cleanup to the caller
    assert manager.has_backup()


def test_restore_ignores_missing_files_that_were_never_created(manager):
    manager.create_backup(['never.js'], 'fault')
    result = manager.restore_backup()
    assert result.removed_files == []


def test_restore_leaves_directory_in_place_of_created_file(manager, project):
    manager.create_backup(['gen/out.js'], 'fault')
    (project / 'gen/out.js').mkdir(parents=True)
    (project / 'gen/out.js/keep.txt').write_text('user data', encoding='utf-8')

    result = manager.restore_backup()

    assert result.removed_files == []
    assert (project / 'gen/out.js/keep.txt').is_file()


def test_restore_skips_lost_snapshot(manager, project):
    result = manager.create_backup(['a.js', 'b.js'], 'fault')
    (project / '.chaos-backup' / result.backup_id / 'a.js').unlink()
    (project / 'a.js').write_text('broken', encoding='utf-8')
    (project / 'b.js').write_text('broken', encoding='utf-8')

    restored = manager.restore_backup()

    assert restored.skipped_files == ['a.js']
    assert restored.files == ['b.js']
    assert (project / 'a.js').read_text(encoding='utf-8') == 'broken'
    assert (project / 'b.js').read_text(encoding='utf-8') == 'original-b'


def test_restore_without_backup_raises(manager):
    with pytest.raises(NoBackupError):
        manager.restore_backup()


def test_restore_with_corrupt_manifest_raises(manager, project):
    (project / '.chaos-backup').mkdir()
    (project / '.chaos-backup/metadata.json').write_text('{not json', encoding='utf-8')

    assert manager.state is BackupState.INJECTED
    assert manager.get_backup_info() is None
    with pytest.raises(CorruptManifestError, match="invalid JSON"):
        manager.restore_backup()


@pytest.mark.parametrize('data, reason', [
    ([], 'not a JSON object'),
    ({'timestamp': 't', 'faultType': 'f', 'files': []}, "'backupId'"),
    ({'backupId': '../x', 'timestamp': 't', 'faultType': 'f', 'files': []}, 'invalid backupId'),
    ({'backupId': 'x', 'timestamp': 't', 'faultType': 'f', 'files': 'a.js'}, "'files'"),
    ({'backupId': 'x', 'timestamp': 't', 'faultType': 'f', 'files': [], 'fileHashes': []}, "'fileHashes'"),
])
def test_manifest_validation(data, reason):
    with pytest.raises(CorruptManifestError, match=reason):
        BackupManifest.from_dict(data)


def test_manifest_optional_fields_default():
    manifest = BackupManifest.from_dict({'backupId': 'x', 'timestamp': 't', 'faultType': 'f', 'files': ['a.js']})
    assert manifest.missing_files == []
    assert manifest.file_hashes == {}


def test_create_refuses_pending_backup(manager):
    manager.create_backup(['a.js'], 'first')
    with pytest.raises(BackupExistsError) as exc:
        manager.create_backup(['b.js'], 'second')
    assert exc.value.fault_type == 'first'
    assert manager.get_backup_info().fault_type == 'first'


def test_create_replace_existing_drops_old_snapshot(store, project):
    times = iter([FIXED_TIME, datetime(2024, 5, 2, tzinfo=timezone.utc)])
    manager = BackupManager(store, clock=lambda: next(times))

    first = manager.create_backup(['a.js'], 'first')
    second = manager.create_backup(['b.js'], 'second', replace_existing=True)

    assert not (project / '.chaos-backup' / first.backup_id).exists()
    assert [b['id'] for b in manager.list_backups()] == [second.backup_id]
    assert manager.get_backup_info().fault_type == 'second'


def test_clean_backup_is_idempotent(manager, project):
    manager.create_backup(['a.js'], 'fault')
    manager.clean_backup()
    manager.clean_backup()
    assert not (project / '.chaos-backup').exists()
    assert manager.state is BackupState.CLEAN


def test_verify_backup_detects_changes(manager, project):
    manager.create_backup(['a.js', 'b.js'], 'fault')
    (project / 'a.js').write_text('changed', encoding='utf-8')
    (project / 'b.js').unlink()
    assert manager.verify_backup() == {'a.js': False, 'b.js': False}

    manager.clean_backup()
    assert manager.verify_backup() == {}


def test_verify_backup_unchanged(manager):
    manager.create_backup(['a.js'], 'fault')
    assert manager.verify_backup() == {'a.js': True}


@pytest.mark.parametrize('backup_dir', ['.', '', '..', 'src/../..'])
def test_backup_dir_containing_project_is_refused(store, project, backup_dir):
    with pytest.raises(UnsafeBackupDirError):
        BackupManager(store, backup_dir=backup_dir)
    assert (project / 'a.js').is_file()


def test_absolute_backup_dir_at_project_parent_is_refused(store, project):
    with pytest.raises(UnsafeBackupDirError) as exc:
        BackupManager(store, backup_dir=str(project.parent))
    assert exc.value.resolved == str(project.parent.resolve())


def test_custom_backup_location(store, project):
    manager = BackupManager(store, backup_dir='.snapshots', metadata_file='state.json', clock=lambda: FIXED_TIME)
    manager.create_backup(['a.js'], 'fault')
    assert (project / '.snapshots/state.json').is_file()
    assert manager.metadata_path == '.snapshots/state.json'
