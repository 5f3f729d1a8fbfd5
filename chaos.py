"""
Chaos: fault injection for web project CI/CD drills

Replaces source files of a target project with known-bad templates so a
build or deployment fails in a predictable way, and restores the originals
afterwards.
"""

import logging
import sys
import traceback
from pathlib import Path
from typing import Callable, List, Optional

from colorama import init

from core import Config, setup_logging
from core.backup_manager import BackupState
from core.errors import (
    BackupExistsError,
    CorruptManifestError,
    NoBackupError,
    NotFoundError,
    UnknownFaultError,
    UnsafeBackupDirError,
)
from core.fault_registry import CATEGORY_NAMES, get_fault_stats, get_faults_by_category
from core.orchestrator import ChaosOrchestrator
from utils.cli_runtime import Command, build_chaos_arg_parser, configure_windows_console_utf8, debug_enabled
from utils.console import Console
from utils.error_messages import (
    format_filesystem_error,
    format_manifest_error,
    format_pending_backup_error,
    format_unknown_fault_error,
)
from utils.system_check import SystemCheck

DEFAULT_CONFIG_PATH = Path('config_files/config.json')


class ChaosCLI:
    """Command handlers sharing one orchestrator and console."""

    def __init__(self, config: Config, console: Console,
                 orchestrator: Optional[ChaosOrchestrator] = None,
                 system_check: Optional[SystemCheck] = None,
                 input_func: Optional[Callable[[str], str]] = None):
        self.config = config
        self.console = console
        self.orchestrator = orchestrator or ChaosOrchestrator(config)
        self.system_check = system_check or SystemCheck(config)
        self.input_func = input_func or input

    def run_inject(self, args) -> int:
        console = self.console
        fault = self.orchestrator.get_fault(args.fault_type)

        console.title(f"Injecting fault: {fault.name}")
        console.info(f"Project: {self.config.project_root}")
        self._preflight()

        console.step("Backing up target files...")
        report = self.orchestrator.inject(args.fault_type, force=args.force)

        for file in report.backup.files:
            console.success(f"Backed up: {file}")
        for file in report.backup.missing_files:
            console.warn(f"Not present, will be created: {file}")

        console.step("Writing fault templates...")
        for injected in report.injected:
            action = "Created" if injected.created else "Injected"
            console.success(f"{action}: {injected.path}")

        console.log()
        console.box(
            f"Fault injected: {fault.name}\n"
            f"Expected error: {fault.expected_error}",
            kind="success",
        )

        console.log()
        console.log("Changes:")
        console.list_item(f"Fault type: {fault.fault_id}")
        console.list_item(f"Category: {CATEGORY_NAMES.get(fault.category, fault.category)}")
        console.list_item(f"Files modified: {len(report.injected)}")
        console.list_item(f"Backup id: {report.backup.backup_id}")

        if fault.build_fails:
            console.log()
            console.warn("This fault breaks the build. Do not push it to a shared branch by accident.")

        console.log()
        console.log("Next steps:")
        console.list_item("Review the changes: git diff")
        console.list_item(f'Commit them: git commit -am "test: inject {fault.fault_id}"')
        console.list_item("Push and watch the pipeline fail: git push")
        console.list_item("Put everything back: chaos restore")
        return 0

    def run_restore(self, args) -> int:
        console = self.console
        manifest = self.orchestrator.backups.get_backup_info()

        if manifest is None and not self.orchestrator.backups.has_backup():
            console.warn("No backup found, nothing to restore")
            console.tip("Inject a fault first: chaos inject --type <fault-type>")
            return 0

        console.title("Restoring original files")
        if manifest is not None:
            console.info(f"Backup time: {manifest.timestamp}")
            console.info(f"Fault type: {manifest.fault_type}")
            console.info(f"Files: {len(manifest.files) + len(manifest.missing_files)}")

        if self._needs_confirmation(args):
            if not console.confirm("Restore the original files?", input_func=self.input_func):
                console.info("Restore cancelled, nothing changed")
                return 0

        try:
            result = self.orchestrator.restore()
        except NoBackupError:
            console.warn("No backup found, nothing to restore")
            return 0

        for file in result.files:
            console.success(f"Restored: {file}")
        for file in result.removed_files:
            console.success(f"Removed: {file}")
        for file in result.skipped_files:
            console.warn(f"Snapshot missing, not restored: {file}")

        console.log()
        if result.skipped_files:
            console.box(
                f"Restore finished with {len(result.skipped_files)} file(s) not restored\n"
                f"Recover them from version control",
                kind="warn",
            )
            return 0

        console.box("Original files restored", kind="success")
        console.log()
        console.log("Next steps:")
        console.list_item("Verify the project builds again")
        console.list_item('Commit the fix: git commit -am "fix: restore from chaos test"')
        return 0

    def run_list(self, args) -> int:
        console = self.console
        registry = self.orchestrator.registry

        grouped = get_faults_by_category(registry)
        stats = get_fault_stats(registry)

        console.title("Available fault types")
        for category, faults in grouped.items():
            if not faults:
                continue
            console.log()
            console.log(f"{CATEGORY_NAMES[category]} ({len(faults)})")
            for fault in faults:
                console.list_item(f"[{fault.severity.value.upper()}] {fault.fault_id}: {fault.description}", indent=1)

        console.log()
        console.info(f"Total: {stats['total']} fault types")
        by_severity = ", ".join(f"{severity}: {count}" for severity, count in stats['bySeverity'].items())
        console.info(f"By severity: {by_severity}")
        console.tip("Details for one fault: chaos info --type <fault-type>")
        return 0

    def run_info(self, args) -> int:
        console = self.console
        details = self.orchestrator.describe(args.fault_type)
        fault = details.fault

        console.title(f"Fault: {fault.name}")
        console.log(f"  Type:           {fault.fault_id}")
        console.log(f"  Category:       {CATEGORY_NAMES.get(fault.category, fault.category)}")
        console.log(f"  Severity:       {fault.severity.value}")
        console.log(f"  Description:    {fault.description}")
        console.log(f"  Expected error: {fault.expected_error}")
        console.log(f"  Build fails:    {'yes' if fault.build_fails else 'no'}")
        console.log(f"  Deploy fails:   {'yes' if fault.deploy_fails else 'no'}")
        console.log(f"  Template:       {fault.template_file}")

        console.log()
        console.log("Target files:")
        for target in fault.target_files:
            override = fault.additional_templates.get(target)
            suffix = f" (template: {override})" if override else ""
            console.list_item(f"{target}{suffix}", indent=1)

        if fault.note:
            console.log()
            console.info(fault.note)

        console.log()
        if not details.template_exists:
            console.warn(f"Template file not found: {fault.template_file}")
        elif details.template_error:
            console.warn(f"Cannot read template: {details.template_error}")
        else:
            console.log("Template preview:")
            console.divider()
            for number, line in enumerate(details.preview, start=1):
                console.code(f"{number:>3} | {line}")
            if details.total_lines > len(details.preview):
                console.code("... (see template file for more)")
            console.divider()

        console.log()
        console.log("Usage:")
        console.list_item(f"Inject: chaos inject --type {fault.fault_id}")
        console.list_item("Restore: chaos restore")
        return 0

    def run_status(self, args) -> int:
        console = self.console
        status = self.orchestrator.status()

        console.title("Backup status")
        if status.state is BackupState.CLEAN:
            console.success("Clean: no fault injection pending")
        elif status.manifest is None:
            console.error("A backup manifest exists but cannot be read")
            console.tip(f"Inspect {self.orchestrator.backups.metadata_path} or remove the backup directory")
        else:
            manifest = status.manifest
            console.warn(f"Fault injected: {manifest.fault_type}")
            console.info(f"Backup time: {manifest.timestamp}")
            console.info(f"Backup id: {manifest.backup_id}")
            for file in manifest.files:
                marker = "changed since backup" if file in status.changed_files else "unchanged"
                console.list_item(f"{file} ({marker})", indent=1)
            for file in manifest.missing_files:
                console.list_item(f"{file} (created by the fault)", indent=1)
            console.tip("Put everything back: chaos restore")

        for orphan in status.orphans:
            console.warn(f"Orphaned snapshot directory: {orphan}")
        return 0

    def _preflight(self):
        enough_space, free_mb = self.system_check.check_disk_space()
        if not enough_space:
            self.console.warn(
                f"Low disk space: {free_mb:.1f}MB free, "
                f"{self.config.min_free_space_mb}MB recommended for backups"
            )

        servers = self.system_check.find_dev_servers()
        if servers:
            self.console.warn(f"Dev server running in this project: {', '.join(servers)}")
            self.console.tip("It will hot-reload the injected files immediately")

    def _needs_confirmation(self, args) -> bool:
        if getattr(args, 'yes', False) or not self.config.confirm_restore:
            return False
        return sys.stdin is not None and sys.stdin.isatty()


COMMAND_HANDLERS = {
    Command.INJECT: ChaosCLI.run_inject,
    Command.RESTORE: ChaosCLI.run_restore,
    Command.LIST: ChaosCLI.run_list,
    Command.INFO: ChaosCLI.run_info,
    Command.STATUS: ChaosCLI.run_status,
}


def load_config(args) -> Config:
    """Build the configuration from --config (or the default file) and --root."""
    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
    if args.config and not config_path.exists():
        print(f"Config file not found: {config_path}, using defaults")

    config = Config(config_path if config_path.exists() else None)
    if args.root:
        config.set('project_root', args.root)
    return config


def run(argv: Optional[List[str]] = None) -> int:
    """
    Run one chaos command.

    Returns:
        Process exit code
    """
    parser = build_chaos_arg_parser()
    args = parser.parse_args(argv)

    console = Console(no_color=args.no_color)
    verbose = args.verbose or debug_enabled()

    config = load_config(args)
    if not config.project_root.is_dir():
        console.error(f"Project root does not exist: {config.project_root}")
        return 1

    try:
        log_file = setup_logging(config.log_folder, config.max_log_files, verbose=verbose)
        logging.info("=" * 70)
        logging.info(f"chaos {args.command} started")
        logging.info(f"Log file: {log_file}")
    except OSError as e:
        console.warn(f"Logging disabled, cannot create log folder: {e}")

    command = Command(args.command)

    try:
        cli = ChaosCLI(config, console)
        return COMMAND_HANDLERS[command](cli, args)
    except UnsafeBackupDirError as e:
        logging.error(str(e))
        console.error(str(e))
        console.tip("Set backup_dir to a subdirectory such as '.chaos-backup'")
        return 1
    except UnknownFaultError as e:
        logging.error(str(e))
        console.error(format_unknown_fault_error(e.fault_id))
        console.tip("See every fault type: chaos list")
        return 1
    except BackupExistsError as e:
        logging.error(str(e))
        console.error(format_pending_backup_error(e.fault_type))
        return 1
    except CorruptManifestError as e:
        logging.error(str(e))
        console.error(format_manifest_error(e.path, e.reason))
        return 1
    except NotFoundError as e:
        logging.error(str(e))
        console.error(str(e))
        if verbose:
            traceback.print_exc()
        return 1
    except OSError as e:
        logging.error(f"{command.value} failed: {e}", exc_info=True)
        console.error(format_filesystem_error(command.value.capitalize(), e))
        if verbose:
            traceback.print_exc()
        return 1
    except KeyboardInterrupt:
        logging.warning(f"{command.value} interrupted by user")
        console.log()
        console.warn("Interrupted")
        if command is Command.INJECT:
            console.tip("Run 'chaos restore' to undo a partial injection")
        return 1


def main(argv: Optional[List[str]] = None):
    """Console entry point."""
    init()  # Initialize colorama
    configure_windows_console_utf8()
    sys.exit(run(argv))


if __name__ == '__main__':
    main()
