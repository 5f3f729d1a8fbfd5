"""
Chaos Doctor - Diagnostic tool to check the setup before injecting faults.
Run this in (or with --root pointing at) the target project.
"""

import argparse
import importlib
import json
import sys
from pathlib import Path
from typing import List, Optional

import psutil
from colorama import init, Fore, Style

from core.backup_manager import BackupState
from core.config import Config
from core.errors import UnsafeBackupDirError
from core.fault_registry import FAULT_REGISTRY
from core.file_store import FileStore
from core.orchestrator import ChaosOrchestrator
from core.template_loader import TemplateLoader
from utils.system_check import SystemCheck

DEFAULT_CONFIG_PATH = Path('config_files/config.json')
TOTAL_CHECKS = 8


class ChaosDoctor:
    """Diagnostic tool for the chaos setup."""

    def __init__(self, config: Optional[Config] = None, config_path: Optional[Path] = None):
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self.config = config or Config(self.config_path if self.config_path.exists() else None)
        self.store = FileStore(self.config.project_root)
        self.issues: List[str] = []
        self.warnings: List[str] = []
        self.passed: List[str] = []

    def _label(self, number: int, text: str):
        print(f"{Fore.YELLOW}[{number}/{TOTAL_CHECKS}]{Style.RESET_ALL} {text}...", end=" ")

    def print_header(self):
        """Print diagnostic header."""
        print(f"\n{Fore.CYAN}{'='*60}{Style.RESET_ALL}")
        print(f"{Fore.CYAN}Chaos Doctor - Setup Diagnostic{Style.RESET_ALL}")
        print(f"{Fore.CYAN}{'='*60}{Style.RESET_ALL}\n")

    def check_python_version(self):
        """Check Python version."""
        self._label(1, "Checking Python version")
        version = sys.version_info
        if version.major == 3 and version.minor >= 8:
            print(f"{Fore.GREEN}✓ Python {version.major}.{version.minor}.{version.micro}{Style.RESET_ALL}")
            self.passed.append("Python version")
        else:
            print(f"{Fore.RED}✗ Python {version.major}.{version.minor} (need 3.8+){Style.RESET_ALL}")
            self.issues.append("Python version too old")

    def check_dependencies(self):
        """Check required Python packages."""
        self._label(2, "Checking Python dependencies")
        missing = []

        for package in ('colorama', 'psutil'):
            try:
                importlib.import_module(package)
            except ImportError:
                missing.append(package)

        if not missing:
            print(f"{Fore.GREEN}✓ All packages installed{Style.RESET_ALL}")
            self.passed.append("Python dependencies")
        else:
            print(f"{Fore.RED}✗ Missing: {', '.join(missing)}{Style.RESET_ALL}")
            self.issues.append(f"Missing packages: {', '.join(missing)}")
            print(f"  {Style.DIM}Fix: pip install {' '.join(missing)}{Style.RESET_ALL}")

    def check_config_file(self):
        """Check the config file, if any, is valid JSON."""
        self._label(3, "Checking configuration file")

        if not self.config_path.exists():
            print(f"{Fore.GREEN}✓ No config file, using defaults{Style.RESET_ALL}")
            self.passed.append("Configuration file")
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            print(f"{Fore.RED}✗ Invalid JSON: {e}{Style.RESET_ALL}")
            self.issues.append("Config file has invalid JSON")
            return
        except OSError as e:
            print(f"{Fore.RED}✗ Cannot read: {e}{Style.RESET_ALL}")
            self.issues.append("Config file cannot be read")
            return

        unknown = sorted(set(data) - set(Config.DEFAULT_CONFIG)) if isinstance(data, dict) else []
        if unknown:
            print(f"{Fore.YELLOW}⚠ Unknown keys: {', '.join(unknown)}{Style.RESET_ALL}")
            self.warnings.append(f"Config has unknown keys: {', '.join(unknown)}")
        else:
            print(f"{Fore.GREEN}✓ Valid configuration{Style.RESET_ALL}")
            self.passed.append("Configuration file")

    def check_project_root(self):
        """Check the target project root exists and is writable."""
        self._label(4, "Checking project root")
        root = self.config.project_root

        if not root.is_dir():
            print(f"{Fore.RED}✗ Not a directory: {root}{Style.RESET_ALL}")
            self.issues.append(f"Project root does not exist: {root}")
            return

        probe = root / '.chaos_doctor_test'
        try:
            probe.write_text('test', encoding='utf-8')
            probe.unlink()
        except OSError as e:
            print(f"{Fore.RED}✗ Cannot write: {e}{Style.RESET_ALL}")
            self.issues.append("No write permissions in project root")
            return

        print(f"{Fore.GREEN}✓ {root}{Style.RESET_ALL}")
        self.passed.append("Project root")

    def check_templates(self):
        """Check every registered fault has valid templates."""
        self._label(5, "Checking fault templates")
        loader = TemplateLoader(self.store)
        problems = []

        for fault in FAULT_REGISTRY.values():
            paths = {fault.template_file} | set(fault.additional_templates.values())
            for path in sorted(paths):
                report = loader.validate(path)
                if not report.valid:
                    problems.append(f"{fault.fault_id}: {'; '.join(report.errors)}")

        unregistered = [
            f"{path} ({metadata.get('faultType') or 'no @fault-type'})"
            for path, metadata in loader.list_templates(self.config.templates_dir)
            if metadata.get('faultType') not in FAULT_REGISTRY
        ]

        if problems:
            print(f"{Fore.YELLOW}⚠ {len(problems)} template problem(s){Style.RESET_ALL}")
            for problem in problems:
                print(f"    {Style.DIM}{problem}{Style.RESET_ALL}")
            # Faults with broken templates are still listable; only their inject fails
            self.warnings.append(f"{len(problems)} template problem(s), affected faults cannot be injected")
        else:
            print(f"{Fore.GREEN}✓ Templates for {len(FAULT_REGISTRY)} faults{Style.RESET_ALL}")
            self.passed.append("Fault templates")

        if unregistered:
            print(f"    {Fore.YELLOW}⚠ Templates for unregistered faults: {', '.join(unregistered)}{Style.RESET_ALL}")
            self.warnings.append(f"Templates not used by any registered fault: {', '.join(unregistered)}")

    def check_backup_state(self):
        """Check for a pending injection or leftover snapshots."""
        self._label(6, "Checking backup state")

        try:
            orchestrator = ChaosOrchestrator(self.config, store=self.store)
        except UnsafeBackupDirError as e:
            print(f"{Fore.RED}✗ Unsafe backup directory{Style.RESET_ALL}")
            self.issues.append(str(e))
            return

        status = orchestrator.status()
        if status.state is BackupState.INJECTED and status.manifest is None:
            print(f"{Fore.RED}✗ Manifest unreadable{Style.RESET_ALL}")
            self.issues.append(f"Backup manifest is corrupted: {orchestrator.backups.metadata_path}")
        elif status.manifest is not None:
            manifest = status.manifest
            print(f"{Fore.YELLOW}⚠ Fault '{manifest.fault_type}' pending restore{Style.RESET_ALL}")
            self.warnings.append(f"Fault '{manifest.fault_type}' injected at {manifest.timestamp}, run 'chaos restore'")
        else:
            print(f"{Fore.GREEN}✓ Clean{Style.RESET_ALL}")
            self.passed.append("Backup state")

        if status.orphans:
            self.warnings.append(f"Orphaned snapshot directories: {', '.join(status.orphans)}")

    def check_system(self):
        """Check disk space and running dev servers."""
        self._label(7, "Checking disk space and processes")
        system = SystemCheck(self.config)

        try:
            enough_space, free_mb = system.check_disk_space()
            servers = system.find_dev_servers()
        except psutil.Error as e:
            print(f"{Fore.YELLOW}⚠ Could not check: {e}{Style.RESET_ALL}")
            self.warnings.append("System checks unavailable")
            return

        notes = []
        if not enough_space:
            notes.append(f"only {free_mb:.0f}MB free")
            self.warnings.append(f"Low disk space: {free_mb:.0f}MB free")
        if servers:
            notes.append(f"dev server running: {', '.join(servers)}")
            self.warnings.append(f"Dev server running in project: {', '.join(servers)}")

        if notes:
            print(f"{Fore.YELLOW}⚠ {'; '.join(notes)}{Style.RESET_ALL}")
        else:
            free_text = f"{free_mb:.0f}MB free" if free_mb is not None else "free space unknown"
            print(f"{Fore.GREEN}✓ {free_text}, no dev servers{Style.RESET_ALL}")
            self.passed.append("System")

    def check_log_directory(self):
        """Check log directory can be created."""
        self._label(8, "Checking log directory")
        log_dir = self.config.log_folder

        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            print(f"{Fore.GREEN}✓ {log_dir}{Style.RESET_ALL}")
            self.passed.append("Log directory")
        except OSError as e:
            print(f"{Fore.RED}✗ Cannot create: {e}{Style.RESET_ALL}")
            self.issues.append("Cannot create log directory")

    def print_summary(self):
        """Print diagnostic summary."""
        print(f"\n{Fore.CYAN}{'='*60}{Style.RESET_ALL}")
        print(f"{Fore.CYAN}Summary{Style.RESET_ALL}")
        print(f"{Fore.CYAN}{'='*60}{Style.RESET_ALL}\n")

        print(f"{Fore.GREEN}✓ Passed:{Style.RESET_ALL} {len(self.passed)}")
        print(f"{Fore.YELLOW}⚠ Warnings:{Style.RESET_ALL} {len(self.warnings)}")
        print(f"{Fore.RED}✗ Issues:{Style.RESET_ALL} {len(self.issues)}")

        if self.warnings:
            print(f"\n{Fore.YELLOW}Warnings:{Style.RESET_ALL}")
            for w in self.warnings:
                print(f"  • {w}")

        if self.issues:
            print(f"\n{Fore.RED}Critical Issues:{Style.RESET_ALL}")
            for i in self.issues:
                print(f"  • {i}")
            print(f"\n{Fore.RED}Fix these issues before injecting faults!{Style.RESET_ALL}")
        else:
            print(f"\n{Fore.GREEN}{'='*60}{Style.RESET_ALL}")
            print(f"{Fore.GREEN}All checks passed! Ready to inject faults.{Style.RESET_ALL}")
            print(f"{Fore.GREEN}{'='*60}{Style.RESET_ALL}")

        print()

    def run(self) -> int:
        """Run all diagnostic checks."""
        self.print_header()

        self.check_python_version()
        self.check_dependencies()
        self.check_config_file()
        self.check_project_root()
        self.check_templates()
        self.check_backup_state()
        self.check_system()
        self.check_log_directory()

        self.print_summary()

        return 0 if not self.issues else 1


def main(argv: Optional[List[str]] = None):
    """Main entry point for chaos-doctor command."""
    init(autoreset=True)

    parser = argparse.ArgumentParser(prog='chaos-doctor', description="Check the chaos setup for a target project.")
    parser.add_argument('--root', '-r', help='Target project root')
    parser.add_argument('--config', '-c', help='Path to config.json file')
    args = parser.parse_args(argv)

    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
    config = Config(config_path if config_path.exists() else None)
    if args.root:
        config.set('project_root', args.root)

    doctor = ChaosDoctor(config=config, config_path=config_path)
    sys.exit(doctor.run())


if __name__ == '__main__':
    main()
