"""
Fault template loading.

A template is the full replacement content for one target file. Its leading
comment block carries `@key: value` annotations, e.g.

    /**
     * @fault-type: syntax-error
     * @category: build-errors
     * @description: Missing closing tag
     */

Hyphenated keys are normalized to lowerCamelCase (`fault-type` -> `faultType`).
Template bodies are never checked for syntax; most are broken on purpose.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import NotFoundError
from .file_store import FileStore, PathLike

logger = logging.getLogger(__name__)

METADATA_PATTERN = re.compile(r'@([A-Za-z0-9_]+(?:-[A-Za-z0-9_]+)*):[ \t]*(\S.*)')

DEFAULT_METADATA_KEYS = ('faultType', 'category', 'description', 'expectedError', 'targetFile')
REQUIRED_METADATA_KEYS = {
    'faultType': '@fault-type',
    'category': '@category',
    'description': '@description',
}
TEMPLATE_SUFFIXES = (
    '.template.js', '.template.jsx', '.template.ts', '.template.tsx',
    '.template.json', '.template.css',
)


@dataclass
class Template:
    """Loaded template content plus its parsed annotations."""
    content: str
    metadata: Dict[str, Optional[str]]
    path: str


@dataclass
class ValidationReport:
    valid: bool
    errors: List[str] = field(default_factory=list)
    template: Optional[Template] = None


def normalize_key(key: str) -> str:
    """Convert `fault-type` style keys to `faultType`."""
    head, *rest = key.split('-')
    return head + ''.join(part[:1].upper() + part[1:] for part in rest)


def parse_metadata(content: str) -> Dict[str, Optional[str]]:
    """
    Extract `@key: value` annotations from template text.

    The first occurrence of a key wins, so annotations in the header are not
    overridden by look-alikes further down in the code.
    """
    metadata: Dict[str, Optional[str]] = {key: None for key in DEFAULT_METADATA_KEYS}
    seen = set()

    for match in METADATA_PATTERN.finditer(content):
        key = normalize_key(match.group(1))
        if key in seen:
            continue
        seen.add(key)
        metadata[key] = match.group(2).strip()

    return metadata


class TemplateLoader:
    """Loads, applies and validates templates through a FileStore."""

    def __init__(self, store: FileStore):
        self.store = store

    def load(self, template_path: PathLike) -> Template:
        """
        Load a template and parse its metadata.

        Raises:
            NotFoundError: If the template file does not exist
        """
        if not self.store.resolve(template_path).is_file():
            raise NotFoundError(template_path, what="Template file")

        content = self.store.read(template_path)
        return Template(content=content, metadata=parse_metadata(content), path=str(template_path))

    def apply(self, template: Template, target_file: PathLike) -> str:
        """
        Replace the content of `target_file` with the template content.

        Whatever was in the target before is lost; callers back it up first.

        Returns:
            The target path that was written
        """
        self.store.write(target_file, template.content)
        logger.info(f"Applied template {template.path} to {target_file}")
        return str(target_file)

    def validate(self, template_path: PathLike) -> ValidationReport:
        """Check required metadata and non-empty content. Never raises for missing files."""
        try:
            template = self.load(template_path)
        except NotFoundError as e:
            return ValidationReport(valid=False, errors=[str(e)])

        errors = []
        for key, annotation in REQUIRED_METADATA_KEYS.items():
            if not template.metadata.get(key):
                errors.append(f"Missing {annotation} metadata")

        if not template.content.strip():
            errors.append("Template content is empty")

        return ValidationReport(valid=not errors, errors=errors, template=template)

    def list_templates(self, templates_dir: PathLike) -> List[Tuple[str, Dict[str, Optional[str]]]]:
        """List every template file under `templates_dir` with its metadata."""
        templates = []
        for path in self.store.list(templates_dir, recursive=True):
            if not path.endswith(TEMPLATE_SUFFIXES):
                continue
            try:
                template = self.load(path)
            except (NotFoundError, OSError) as e:
                logger.warning(f"Cannot load template {path}: {e}")
                continue
            templates.append((path, template.metadata))
        return templates
