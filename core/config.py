"""
Configuration management for the chaos tool.
Loads and validates configuration settings.
"""

import json
import os
import tempfile
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import List, Dict, Any, Optional, Tuple


class Config:
    """Manages application configuration."""

    # Default configuration values
    DEFAULT_CONFIG = {
        'project_root': '.',
        'backup_dir': '.chaos-backup',
        'metadata_file': 'metadata.json',
        'templates_dir': 'chaos-templates',
        'log_folder': None,
        'max_log_files': 5,
        'preview_lines': 15,
        'confirm_restore': True,
        'min_free_space_mb': 50,
        'dev_server_names': ['node', 'vite', 'npm'],
    }

    ENV_PROJECT_ROOT = 'CHAOS_PROJECT_ROOT'

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config.json file. If None, uses defaults.
        """
        self.config = self.DEFAULT_CONFIG.copy()
        self.config['dev_server_names'] = list(self.DEFAULT_CONFIG['dev_server_names'])

        if config_path and config_path.exists():
            self.load_config(config_path)

        env_root = os.environ.get(self.ENV_PROJECT_ROOT)
        if env_root:
            self.config['project_root'] = env_root

    def load_config(self, config_path: Path):
        """Load configuration from JSON file."""
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                user_config = json.load(f)

            if not isinstance(user_config, dict):
                print(f"\nERROR: Config file must contain a JSON object")
                print(f"  Config file: {config_path.absolute()}")
                print("Using default configuration instead.")
                return

            # Validate loaded config before applying
            is_valid, errors = self._validate_config(user_config)
            if not is_valid:
                print(f"\nConfiguration validation failed:")
                print(f"  Config file: {config_path.absolute()}")
                print()
                for error in errors:
                    print(error)
                    print()
                print("Using default configuration instead.")
                return

            self.config.update(user_config)
        except json.JSONDecodeError as e:
            print(f"\nERROR: Invalid JSON in config file")
            print(f"  Config file: {config_path.absolute()}")
            print(f"  Problem: {e}")
            print(f"  Line: {e.lineno}, Column: {e.colno}")
            print()
            print("Fix the JSON syntax and try again.")
            print("Using default configuration.")
        except OSError as e:
            print(f"\nERROR: Could not load config file")
            print(f"  Config file: {config_path.absolute()}")
            print(f"  Problem: {e}")
            print()
            print("Using default configuration.")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self.config.get(key, default)

    def set(self, key: str, value: Any):
        """Set configuration value."""
        self.config[key] = value

    def _validate_config(self, config: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """
        Validate configuration dictionary.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        # Validate numeric ranges
        numeric_fields = {
            'max_log_files': (1, 100, "Maximum log files", 5),
            'preview_lines': (1, 500, "Template preview lines", 15),
            'min_free_space_mb': (0, 100000, "Minimum free space", 50),
        }

        for field, (min_val, max_val, display_name, example) in numeric_fields.items():
            if field in config:
                value = config[field]
                if not isinstance(value, int) or isinstance(value, bool):
                    errors.append(
                        f"ERROR: Invalid config value\n"
                        f"  Field: {field}\n"
                        f"  Value: {repr(value)} ({type(value).__name__})\n"
                        f"  Expected: number (integer)\n"
                        f"  Example: {example}\n"
                        f"  Valid range: {min_val} to {max_val}"
                    )
                elif value < min_val or value > max_val:
                    errors.append(
                        f"ERROR: Invalid config value\n"
                        f"  Field: {field}\n"
                        f"  Value: {value}\n"
                        f"  Expected: number between {min_val} and {max_val}\n"
                        f"  Example: {example}"
                    )

        # Path-like fields must be non-empty strings
        string_fields = {
            'project_root': '.',
            'backup_dir': '.chaos-backup',
            'metadata_file': 'metadata.json',
            'templates_dir': 'chaos-templates',
        }

        for field, example in string_fields.items():
            if field in config:
                value = config[field]
                if not isinstance(value, str) or not value.strip():
                    errors.append(
                        f"ERROR: Invalid config value\n"
                        f"  Field: {field}\n"
                        f"  Value: {repr(value)} ({type(value).__name__})\n"
                        f"  Expected: non-empty string\n"
                        f"  Example: {example!r}"
                    )

        # The backup directory is deleted after every restore, so it has to be
        # a subdirectory of the project
        backup_dir = config.get('backup_dir')
        if isinstance(backup_dir, str) and backup_dir.strip():
            parts = PurePosixPath(backup_dir.replace('\\', '/')).parts
            if os.path.isabs(backup_dir) or PureWindowsPath(backup_dir).drive or not parts or '..' in parts:
                errors.append(
                    f"ERROR: Invalid config value\n"
                    f"  Field: backup_dir\n"
                    f"  Value: {backup_dir!r}\n"
                    f"  Expected: relative subdirectory of the project root (no '..')\n"
                    f"  Example: '.chaos-backup'"
                )

        if 'log_folder' in config and config['log_folder'] is not None:
            if not isinstance(config['log_folder'], str) or not config['log_folder'].strip():
                errors.append(
                    f"ERROR: Invalid config value\n"
                    f"  Field: log_folder\n"
                    f"  Value: {repr(config['log_folder'])} ({type(config['log_folder']).__name__})\n"
                    f"  Expected: non-empty string or null\n"
                    f"  Example: 'logs'"
                )

        if 'metadata_file' in config and isinstance(config['metadata_file'], str):
            if '/' in config['metadata_file'] or '\\' in config['metadata_file']:
                errors.append(
                    f"ERROR: Invalid config value\n"
                    f"  Field: metadata_file\n"
                    f"  Problem: Must be a bare file name, not a path\n"
                    f"  Example: 'metadata.json'"
                )

        if 'confirm_restore' in config and not isinstance(config['confirm_restore'], bool):
            errors.append(
                f"ERROR: Invalid config value\n"
                f"  Field: confirm_restore\n"
                f"  Value: {repr(config['confirm_restore'])} ({type(config['confirm_restore']).__name__})\n"
                f"  Expected: true or false"
            )

        if 'dev_server_names' in config:
            value = config['dev_server_names']
            if not isinstance(value, list):
                errors.append(
                    f"ERROR: Invalid config value\n"
                    f"  Field: dev_server_names\n"
                    f"  Value: {repr(value)} ({type(value).__name__})\n"
                    f"  Expected: list of strings\n"
                    f"  Example: ['node', 'vite']"
                )
            elif not all(isinstance(name, str) for name in value):
                errors.append(
                    f"ERROR: Invalid config value\n"
                    f"  Field: dev_server_names\n"
                    f"  Problem: List contains non-string values\n"
                    f"  Expected: All entries must be strings\n"
                    f"  Example: ['node', 'vite']"
                )

        return (len(errors) == 0, errors)

    @property
    def project_root(self) -> Path:
        """Get the target project root as an absolute path."""
        return Path(self.config['project_root']).expanduser().resolve()

    @property
    def backup_dir(self) -> str:
        """Get backup directory (relative to project root)."""
        return self.config['backup_dir']

    @property
    def metadata_file(self) -> str:
        """Get manifest file name inside the backup directory."""
        return self.config['metadata_file']

    @property
    def templates_dir(self) -> str:
        """Get template directory (relative to project root)."""
        return self.config['templates_dir']

    @property
    def log_folder(self) -> Path:
        """
        Get log folder.

        Unset means the system temp directory, so nothing is written into
        the target project. Relative paths resolve against the project root.
        """
        if not self.config['log_folder']:
            return Path(tempfile.gettempdir()) / 'chaos-logs'
        folder = Path(self.config['log_folder'])
        if folder.is_absolute():
            return folder
        return self.project_root / folder

    @property
    def max_log_files(self) -> int:
        """Get maximum number of log files to keep."""
        return self.config['max_log_files']

    @property
    def preview_lines(self) -> int:
        """Get number of template lines shown by `info`."""
        return self.config['preview_lines']

    @property
    def confirm_restore(self) -> bool:
        """Whether restore asks for confirmation."""
        return self.config['confirm_restore']

    @property
    def min_free_space_mb(self) -> int:
        """Get free space threshold for backup warnings."""
        return self.config['min_free_space_mb']

    @property
    def dev_server_names(self) -> List[str]:
        """Get process names treated as dev servers."""
        return self.config['dev_server_names']
