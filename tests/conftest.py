"""
Pytest configuration and fixtures for chaos tests.
"""

import logging
import sys
from pathlib import Path
from types import MappingProxyType

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import Config
from core.fault_registry import FaultDefinition, Severity
from core.orchestrator import ChaosOrchestrator


def make_template(fault_type: str, body: str, category: str = 'build-errors',
                  description: str = 'Broken on purpose') -> str:
    """Template text with a standard metadata header."""
    return (
        "/**\n"
        f" * @fault-type: {fault_type}\n"
        f" * @category: {category}\n"
        f" * @description: {description}\n"
        " */\n"
        f"{body}\n"
    )


CIRCULAR_TEMPLATE = make_template('circular-dependency', "import { b } from './b.js'\nexport const a = b")
OOM_TEMPLATE = make_template('build-out-of-memory', "export const data = new Array(1e9).fill('x')")
OOM_APP_TEMPLATE = make_template('build-out-of-memory', "import { data } from './utils/largeData.js'")
SYNTAX_TEMPLATE = make_template('syntax-error', "export default () => <div>")
RUNTIME_TEMPLATE = make_template('null-reference', "export default () => null.x", category='runtime-errors')


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep user environment and earlier tests from leaking into a test."""
    for name in ('CHAOS_PROJECT_ROOT', 'NO_COLOR', 'CHAOS_NO_COLOR', 'DEBUG'):
        monkeypatch.delenv(name, raising=False)
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, '_chaos_log', False):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def project(tmp_path):
    """A small target project with templates installed."""
    root = tmp_path / 'app'
    files = {
        'a.js': 'original-a',
        'b.js': 'original-b',
        'src/App.jsx': 'export default function App() {}\n',
        'src/pages/Home.jsx': 'export default function Home() {}\n',
        'chaos-templates/build-errors/circular.template.js': CIRCULAR_TEMPLATE,
        'chaos-templates/build-errors/oom.template.js': OOM_TEMPLATE,
        'chaos-templates/build-errors/oom-app.template.jsx': OOM_APP_TEMPLATE,
        'chaos-templates/build-errors/syntax.template.jsx': SYNTAX_TEMPLATE,
        'chaos-templates/runtime-errors/null.template.jsx': RUNTIME_TEMPLATE,
    }
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
    return root


@pytest.fixture
def config(project, tmp_path):
    """Config pointed at the test project, logging under tmp_path."""
    cfg = Config()
    cfg.set('project_root', str(project))
    cfg.set('log_folder', str(tmp_path / 'logs'))
    return cfg


@pytest.fixture
def registry():
    """Fault registry matching the `project` fixture."""
    faults = [
        FaultDefinition(
            fault_id='circular-dependency',
            name='Circular Dependency',
            category='build-errors',
            description='Modules import each other',
            severity=Severity.MEDIUM,
            target_files=('a.js', 'b.js'),
            template_file='chaos-templates/build-errors/circular.template.js',
            expected_error='Circular dependency detected',
            build_fails=True,
            deploy_fails=True,
        ),
        FaultDefinition(
            fault_id='build-out-of-memory',
            name='Build Out of Memory',
            category='build-errors',
            description='Huge module exhausts the heap',
            severity=Severity.HIGH,
            target_files=('src/utils/largeData.js', 'src/App.jsx'),
            template_file='chaos-templates/build-errors/oom.template.js',
            additional_templates={'src/App.jsx': 'chaos-templates/build-errors/oom-app.template.jsx'},
            expected_error='JavaScript heap out of memory',
            build_fails=True,
            deploy_fails=True,
            note='Creates a large data module',
        ),
        FaultDefinition(
            fault_id='syntax-error',
            name='JSX Syntax Error',
            category='build-errors',
            description='Missing closing tag',
            severity=Severity.HIGH,
            target_files=('src/pages/Home.jsx',),
            template_file='chaos-templates/build-errors/syntax.template.jsx',
            expected_error='Unexpected token',
            build_fails=True,
            deploy_fails=True,
        ),
        FaultDefinition(
            fault_id='null-reference',
            name='Null Reference',
            category='runtime-errors',
            description='Reads a property of null',
            severity=Severity.LOW,
            target_files=('src/pages/Home.jsx',),
            template_file='chaos-templates/runtime-errors/null.template.jsx',
            expected_error='Cannot read properties of null',
            build_fails=False,
            deploy_fails=False,
            runtime_fails=True,
        ),
    ]
    return MappingProxyType({fault.fault_id: fault for fault in faults})


@pytest.fixture
def orchestrator(config, registry):
    return ChaosOrchestrator(config, registry=registry)
