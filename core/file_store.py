"""
File operations relative to the target project root.

All paths are either absolute or interpreted relative to the project root.
Writes are plain overwrites; `write_atomic` goes through a temp file and
`os.replace` for the manifest.
"""

import json
import logging
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import NotFoundError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_BASE36 = '0123456789abcdefghijklmnopqrstuvwxyz'


def _to_base36(value: int) -> str:
    """Render an integer in base 36, sign included."""
    if value == 0:
        return '0'
    sign = '-' if value < 0 else ''
    value = abs(value)
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return sign + ''.join(reversed(digits))


def content_fingerprint(text: str) -> str:
    """
    Cheap rolling hash of text content.

    h = h * 31 + unit over the UTF-16 code units, wrapped to a signed 32-bit
    integer and rendered in base 36. Collisions are possible; the value is
    only used to spot files that changed after a backup.
    """
    data = text.encode('utf-16-le', errors='surrogatepass')
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return _to_base36(h)


class FileStore:
    """Reads and writes files under a fixed project root."""

    def __init__(self, project_root: PathLike):
        """
        Args:
            project_root: Directory that relative paths are resolved against
        """
        self.project_root = Path(project_root).resolve()

    def resolve(self, path: PathLike) -> Path:
        """Return the absolute path for `path`."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.project_root / candidate

    def relative(self, path: PathLike) -> str:
        """Return `path` relative to the project root, POSIX style."""
        full = self.resolve(path)
        try:
            return full.relative_to(self.project_root).as_posix()
        except ValueError:
            return full.as_posix()

    def read(self, path: PathLike) -> str:
        """
        Read a text file.

        Raises:
            NotFoundError: If the file does not exist
        """
        return self.read_bytes(path).decode('utf-8', errors='replace')

    def read_bytes(self, path: PathLike) -> bytes:
        full = self.resolve(path)
        if not full.is_file():
            raise NotFoundError(path)
        return full.read_bytes()

    def write(self, path: PathLike, content: str):
        """Write text content, creating parent directories as needed."""
        full = self.resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        with open(full, 'w', encoding='utf-8', newline='') as f:
            f.write(content)

    def write_atomic(self, path: PathLike, content: str):
        """
        Write text content via a sibling temp file and rename.

        A crash leaves either the old file or the new one, never a partial file.
        """
        full = self.resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f'.{full.name}.', suffix='.tmp', dir=str(full.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, full)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise

    def copy(self, source: PathLike, dest: PathLike):
        """
        Copy a file byte-for-byte.

        Raises:
            NotFoundError: If the source file does not exist
        """
        source_path = self.resolve(source)
        dest_path = self.resolve(dest)

        if not source_path.is_file():
            raise NotFoundError(source, what="Source file")

        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_path, dest_path)

    def exists(self, path: PathLike) -> bool:
        return self.resolve(path).exists()

    def remove(self, path: PathLike):
        """Delete a file; no-op if absent."""
        full = self.resolve(path)
        if full.is_file() or full.is_symlink():
            full.unlink()

    def create_dir(self, path: PathLike):
        self.resolve(path).mkdir(parents=True, exist_ok=True)

    def remove_dir(self, path: PathLike):
        """Delete a directory tree; no-op if absent."""
        full = self.resolve(path)
        if full.is_dir():
            shutil.rmtree(full)

    def list(self, dir_path: PathLike, recursive: bool = False) -> List[str]:
        """
        List files in a directory.

        Args:
            dir_path: Directory to list
            recursive: Descend into subdirectories

        Returns:
            Sorted project-relative POSIX paths of files (empty if dir absent)
        """
        full = self.resolve(dir_path)
        if not full.is_dir():
            return []

        iterator = full.rglob('*') if recursive else full.iterdir()
        return sorted(self.relative(item) for item in iterator if item.is_file())

    def list_dirs(self, dir_path: PathLike) -> List[str]:
        """List immediate subdirectories as project-relative POSIX paths."""
        full = self.resolve(dir_path)
        if not full.is_dir():
            return []
        return sorted(self.relative(item) for item in full.iterdir() if item.is_dir())

    def file_info(self, path: PathLike) -> Optional[Dict[str, Any]]:
        """Return size/timestamps/type for `path`, or None if absent."""
        full = self.resolve(path)
        if not full.exists():
            return None

        stat = full.stat()
        return {
            'path': str(path),
            'full_path': full,
            'size': stat.st_size,
            'created': datetime.fromtimestamp(stat.st_ctime),
            'modified': datetime.fromtimestamp(stat.st_mtime),
            'is_file': full.is_file(),
            'is_dir': full.is_dir(),
        }

    def fingerprint(self, path: PathLike) -> str:
        """Content fingerprint of a file (see `content_fingerprint`)."""
        return content_fingerprint(self.read(path))

    def read_structured(self, path: PathLike) -> Any:
        """
        Read a JSON file.

        Raises:
            NotFoundError: If the file does not exist
            json.JSONDecodeError: If the content is not valid JSON
        """
        return json.loads(self.read(path))

    def write_structured(self, path: PathLike, data: Any, atomic: bool = False):
        """Write `data` as indented JSON."""
        content = json.dumps(data, indent=2, ensure_ascii=False)
        if atomic:
            self.write_atomic(path, content)
        else:
            self.write(path, content)
        logger.debug(f"Wrote structured data to {self.relative(path)}")
