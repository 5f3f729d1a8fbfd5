"""
Environment checks run before touching the target project.
Free disk space and running dev servers, both via psutil.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import psutil


class SystemCheck:
    """Checks the machine the target project lives on."""

    def __init__(self, config):
        """
        Args:
            config: Config instance (project root, thresholds, dev server names)
        """
        self.config = config

    def free_space_mb(self, path: Optional[Path] = None) -> Optional[float]:
        """Free space in MB on the volume holding `path` (project root by default)."""
        target = path or self.config.project_root
        try:
            usage = psutil.disk_usage(str(target))
        except OSError as e:
            logging.warning(f"Cannot check disk space for {target}: {e}")
            return None
        return usage.free / (1024 * 1024)

    def check_disk_space(self, path: Optional[Path] = None) -> Tuple[bool, Optional[float]]:
        """
        Check free space against `min_free_space_mb`.

        Returns:
            Tuple of (enough_space, free_mb). Unknown free space counts as enough.
        """
        free_mb = self.free_space_mb(path)
        if free_mb is None:
            return True, None

        required = self.config.min_free_space_mb
        if free_mb < required:
            logging.warning(f"Low disk space: {free_mb:.1f}MB free, {required}MB required")
            return False, free_mb
        return True, free_mb

    def find_dev_servers(self) -> List[str]:
        """
        Find dev-server processes running inside the project root.

        A running dev server hot-reloads injected files immediately, which is
        usually not what the operator wants while preparing a commit.

        Returns:
            Descriptions like "vite (PID 1234)"
        """
        names = {name.lower() for name in self.config.dev_server_names}
        root = self.config.project_root
        found = []

        for proc in psutil.process_iter(['pid', 'name', 'cwd']):
            try:
                info = proc.info
                name = (info.get('name') or '').lower()
                if not any(name == n or name.startswith(n + '.') for n in names):
                    continue
                cwd = info.get('cwd')
                if not cwd or not _is_within(Path(cwd), root):
                    continue
                found.append(f"{info.get('name')} (PID {info.get('pid')})")
            except (psutil.AccessDenied, psutil.NoSuchProcess, psutil.ZombieProcess):
                continue

        if found:
            logging.info(f"Dev servers running in {root}: {', '.join(found)}")
        return found


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
        return True
    except (ValueError, OSError):
        return False
