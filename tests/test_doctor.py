"""Tests for chaos-doctor behavior."""

import json
from types import SimpleNamespace

import pytest

import doctor
from doctor import ChaosDoctor


@pytest.fixture
def doc(config, tmp_path, monkeypatch):
    monkeypatch.setattr('utils.system_check.SystemCheck.check_disk_space', lambda self, path=None: (True, 2048.0))
    monkeypatch.setattr('utils.system_check.SystemCheck.find_dev_servers', lambda self: [])
    return ChaosDoctor(config=config, config_path=tmp_path / 'absent.json')


def test_check_python_version_rejects_37(monkeypatch, doc, capsys):
    monkeypatch.setattr("doctor.sys.version_info", SimpleNamespace(major=3, minor=7, micro=17))

    doc.check_python_version()
    output = capsys.readouterr().out

    assert "need 3.8+" in output
    assert "Python version too old" in doc.issues


def test_check_python_version_accepts_311(monkeypatch, doc, capsys):
    monkeypatch.setattr("doctor.sys.version_info", SimpleNamespace(major=3, minor=11, micro=9))

    doc.check_python_version()

    assert "Python 3.11.9" in capsys.readouterr().out
    assert "Python version" in doc.passed


def test_check_dependencies_reports_missing(monkeypatch, doc, capsys):
    def fake_import(name):
        if name == 'psutil':
            raise ImportError(name)

    monkeypatch.setattr("doctor.importlib.import_module", fake_import)
    doc.check_dependencies()

    assert "Missing packages: psutil" in doc.issues
    assert "pip install psutil" in capsys.readouterr().out


def test_check_config_file_variants(doc, tmp_path):
    doc.check_config_file()
    assert "Configuration file" in doc.passed

    doc.config_path = tmp_path / 'bad.json'
    doc.config_path.write_text('{oops', encoding='utf-8')
    doc.check_config_file()
    assert "Config file has invalid JSON" in doc.issues

    doc.config_path = tmp_path / 'extra.json'
    doc.config_path.write_text(json.dumps({'preview_lines': 3, 'colour': 'red'}), encoding='utf-8')
    doc.check_config_file()
    assert "Config has unknown keys: colour" in doc.warnings


def test_check_project_root_missing(config, tmp_path):
    config.set('project_root', str(tmp_path / 'absent'))
    doc = ChaosDoctor(config=config, config_path=tmp_path / 'absent.json')
    doc.check_project_root()
    assert any("Project root does not exist" in issue for issue in doc.issues)


def test_check_project_root_writable(doc, project):
    doc.check_project_root()
    assert "Project root" in doc.passed
    assert not (project / '.chaos_doctor_test').exists()


def test_check_templates_warns_for_missing(doc):
    doc.check_templates()
    assert doc.warnings
    assert "cannot be injected" in doc.warnings[0]


def test_check_templates_passes_when_all_valid(doc, project):
    from core.fault_registry import FAULT_REGISTRY

    for fault in FAULT_REGISTRY.values():
        for path in {fault.template_file, *fault.additional_templates.values()}:
            target = project / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(
                f"// @fault-type: {fault.fault_id}\n// @category: {fault.category}\n"
                f"// @description: {fault.description}\nbroken(\n",
                encoding='utf-8',
            )

    doc.check_templates()
    assert "Fault templates" in doc.passed


def test_check_templates_warns_about_unregistered_templates(doc, project):
    (project / 'chaos-templates/build-errors/untagged.template.js').write_text("broken(\n", encoding='utf-8')

    doc.check_templates()

    stray = [w for w in doc.warnings if w.startswith("Templates not used by any registered fault")]
    assert len(stray) == 1
    assert "chaos-templates/runtime-errors/null.template.jsx (null-reference)" in stray[0]
    assert "chaos-templates/build-errors/untagged.template.js (no @fault-type)" in stray[0]
    assert "syntax.template.jsx" not in stray[0]


def test_check_backup_state_reports_orphans(doc, project):
    (project / '.chaos-backup/2020-01-01T00-00-00-000Z').mkdir(parents=True)
    doc.check_backup_state()
    assert "Backup state" in doc.passed
    assert "Orphaned snapshot directories: .chaos-backup/2020-01-01T00-00-00-000Z" in doc.warnings


def test_check_backup_state_unsafe_backup_dir(doc, config, project):
    config.set('backup_dir', '..')
    doc.check_backup_state()
    assert any("Cleaning it up would delete the project" in issue for issue in doc.issues)
    assert project.is_dir()


def test_check_backup_state(doc, project, orchestrator):
    doc.check_backup_state()
    assert "Backup state" in doc.passed

    orchestrator.inject('syntax-error')
    doc.check_backup_state()
    assert any("'syntax-error' injected" in w for w in doc.warnings)

    (project / '.chaos-backup/metadata.json').write_text('[]', encoding='utf-8')
    doc.check_backup_state()
    assert any("corrupted" in issue for issue in doc.issues)


def test_check_system_warns_about_dev_server(doc, monkeypatch):
    monkeypatch.setattr('utils.system_check.SystemCheck.find_dev_servers', lambda self: ['node (PID 7)'])
    doc.check_system()
    assert "Dev server running in project: node (PID 7)" in doc.warnings


def test_check_log_directory(doc, config):
    doc.check_log_directory()
    assert config.log_folder.is_dir()
    assert "Log directory" in doc.passed


def test_run_returns_zero_without_issues(doc, capsys):
    assert doc.run() == 0
    assert "Ready to inject faults" in capsys.readouterr().out


def test_run_returns_one_with_issues(doc, monkeypatch):
    monkeypatch.setattr("doctor.sys.version_info", SimpleNamespace(major=3, minor=6, micro=0))
    assert doc.run() == 1


def test_main_uses_root_argument(project, monkeypatch):
    monkeypatch.setattr('doctor.init', lambda **kwargs: None)
    seen = {}

    def fake_run(self):
        seen['root'] = self.config.project_root
        return 0

    monkeypatch.setattr(ChaosDoctor, 'run', fake_run)
    with pytest.raises(SystemExit) as exc:
        doctor.main(['--root', str(project)])

    assert exc.value.code == 0
    assert seen['root'] == project.resolve()
