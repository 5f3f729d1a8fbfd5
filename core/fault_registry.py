"""
Fault registry: every fault the tool can inject.

Each entry maps a fault id to the files it replaces and the template(s) used
to replace them. Only faults that break the build (and therefore the
deployment) are registered.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class Severity(Enum):
    """How disruptive a fault is."""
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


CATEGORY_NAMES = {
    'build-errors': 'Build Errors',
    'runtime-errors': 'Runtime Errors',
    'resource-errors': 'Resource Loading Errors',
    'performance-issues': 'Performance Issues',
}


@dataclass(frozen=True)
class FaultDefinition:
    """Static description of one injectable fault."""
    fault_id: str
    name: str
    category: str
    description: str
    severity: Severity
    target_files: Tuple[str, ...]
    template_file: str
    expected_error: str
    build_fails: bool
    deploy_fails: bool
    additional_templates: Mapping[str, str] = field(default_factory=dict)
    runtime_fails: bool = False
    note: Optional[str] = None

    def __post_init__(self):
        if not self.target_files:
            raise ValueError(f"Fault '{self.fault_id}' must declare at least one target file")
        object.__setattr__(self, 'target_files', tuple(self.target_files))
        object.__setattr__(self, 'additional_templates', MappingProxyType(dict(self.additional_templates)))

    def template_for(self, target_file: str) -> str:
        """Template used for `target_file`: its override if mapped, else the primary one."""
        return self.additional_templates.get(target_file, self.template_file)

    def to_dict(self) -> dict:
        return {
            'type': self.fault_id,
            'name': self.name,
            'category': self.category,
            'description': self.description,
            'severity': self.severity.value,
            'targetFiles': list(self.target_files),
            'templateFile': self.template_file,
            'additionalTemplates': dict(self.additional_templates),
            'expectedError': self.expected_error,
            'buildFails': self.build_fails,
            'deployFails': self.deploy_fails,
            'runtimeFails': self.runtime_fails,
            'note': self.note,
        }


def _build_registry(*faults: FaultDefinition) -> Mapping[str, FaultDefinition]:
    registry = {}
    for fault in faults:
        if fault.fault_id in registry:
            raise ValueError(f"Duplicate fault id: {fault.fault_id}")
        registry[fault.fault_id] = fault
    return MappingProxyType(registry)


FAULT_REGISTRY: Mapping[str, FaultDefinition] = _build_registry(
    # Syntax and compilation errors
    FaultDefinition(
        fault_id='syntax-error',
        name='JSX Syntax Error',
        category='build-errors',
        description='JSX syntax error, missing closing tag causes compilation failure',
        severity=Severity.HIGH,
        target_files=('src/pages/Home.jsx',),
        template_file='chaos-templates/build-errors/syntax-error.template.jsx',
        expected_error='Unexpected token',
        build_fails=True,
        deploy_fails=True,
    ),
    FaultDefinition(
        fault_id='import-error',
        name='Import Path Error',
        category='build-errors',
        description='Wrong import path causes module not found, compilation fails',
        severity=Severity.HIGH,
        target_files=('src/App.jsx',),
        template_file='chaos-templates/build-errors/import-error.template.jsx',
        expected_error='Cannot find module',
        build_fails=True,
        deploy_fails=True,
    ),
    FaultDefinition(
        fault_id='typescript-error',
        name='TypeScript Type Error',
        category='build-errors',
        description='Type definition error causes TypeScript compilation failure (if using TS)',
        severity=Severity.HIGH,
        target_files=('src/App.jsx',),
        template_file='chaos-templates/build-errors/typescript-error.template.jsx',
        expected_error='Type error',
        build_fails=True,
        deploy_fails=True,
    ),
    FaultDefinition(
        fault_id='undefined-variable',
        name='Undefined Variable',
        category='build-errors',
        description='Using undefined variable or function causes compilation failure',
        severity=Severity.HIGH,
        target_files=('src/pages/TaskListPage.jsx',),
        template_file='chaos-templates/build-errors/undefined-variable.template.jsx',
        expected_error='is not defined',
        build_fails=True,
        deploy_fails=True,
    ),

    # Dependency and configuration errors
    FaultDefinition(
        fault_id='dependency-missing',
        name='Missing Dependency',
        category='build-errors',
        description='Missing required dependency in package.json, npm install fails',
        severity=Severity.HIGH,
        target_files=('package.json',),
        template_file='chaos-templates/build-errors/dependency-missing.template.json',
        expected_error='Cannot find package',
        build_fails=True,
        deploy_fails=True,
    ),
    FaultDefinition(
        fault_id='dependency-version-conflict',
        name='Dependency Version Conflict',
        category='build-errors',
        description='Incompatible dependency versions cause installation or compilation failure',
        severity=Severity.HIGH,
        target_files=('package.json',),
        template_file='chaos-templates/build-errors/dependency-version-conflict.template.json',
        expected_error='ERESOLVE unable to resolve dependency tree',
        build_fails=True,
        deploy_fails=True,
    ),
    FaultDefinition(
        fault_id='env-variable-missing',
        name='Missing Environment Variable',
        category='build-errors',
        description='Required environment variable missing during build, causes build failure',
        severity=Severity.MEDIUM,
        target_files=('vite.config.js',),
        template_file='chaos-templates/build-errors/env-variable-missing.template.js',
        expected_error='Environment variable is not defined',
        build_fails=True,
        deploy_fails=True,
    ),
    FaultDefinition(
        fault_id='vite-config-error',
        name='Vite Config Error',
        category='build-errors',
        description='vite.config.js configuration error, build tool cannot start',
        severity=Severity.HIGH,
        target_files=('vite.config.js',),
        template_file='chaos-templates/build-errors/vite-config-error.template.js',
        expected_error='Invalid configuration',
        build_fails=True,
        deploy_fails=True,
    ),

    # Resource and bundling errors
    FaultDefinition(
        fault_id='css-syntax-error',
        name='CSS Syntax Error',
        category='build-errors',
        description='CSS or TailwindCSS configuration error causes style compilation failure',
        severity=Severity.MEDIUM,
        target_files=('src/styles/index.css',),
        template_file='chaos-templates/build-errors/css-syntax-error.template.css',
        expected_error='CssSyntaxError',
        build_fails=True,
        deploy_fails=True,
    ),
    FaultDefinition(
        fault_id='circular-dependency',
        name='Circular Dependency',
        category='build-errors',
        description='Circular dependency between modules causes build failure or infinite loop',
        severity=Severity.MEDIUM,
        target_files=('src/utils/helpers.js', 'src/utils/validators.js', 'src/App.jsx', 'vite.config.js'),
        template_file='chaos-templates/build-errors/circular-dependency.template.jsx',
        additional_templates={
            'src/utils/validators.js': 'chaos-templates/build-errors/circular-dependency-validators.template.js',
            'src/App.jsx': 'chaos-templates/build-errors/circular-dependency-app.template.jsx',
            'vite.config.js': 'chaos-templates/build-errors/circular-dependency-vite.template.js',
        },
        expected_error='Circular dependency detected',
        build_fails=True,
        deploy_fails=True,
    ),
    FaultDefinition(
        fault_id='build-out-of-memory',
        name='Build Out of Memory',
        category='build-errors',
        description='Insufficient memory during build process causes build failure',
        severity=Severity.HIGH,
        target_files=('src/utils/largeData.js', 'src/App.jsx'),
        template_file='chaos-templates/build-errors/build-out-of-memory.template.js',
        additional_templates={
            'src/App.jsx': 'chaos-templates/build-errors/build-out-of-memory-app.template.jsx',
        },
        expected_error='JavaScript heap out of memory',
        build_fails=True,
        deploy_fails=True,
        note='Creates a large data module and imports it from App.jsx',
    ),
    FaultDefinition(
        fault_id='asset-size-exceeded',
        name='Asset Size Exceeded',
        category='build-errors',
        description='Bundled file exceeds size limit, causes deployment failure',
        severity=Severity.MEDIUM,
        target_files=('src/pages/Home.jsx',),
        template_file='chaos-templates/build-errors/asset-size-exceeded.template.jsx',
        expected_error='Asset exceeds size limit',
        build_fails=True,
        deploy_fails=True,
    ),
)


def get_all_faults() -> List[str]:
    """Get all fault ids in registration order."""
    return list(FAULT_REGISTRY.keys())


def get_fault_config(fault_id: str) -> Optional[FaultDefinition]:
    """Get a fault by id, or None if it is not registered."""
    return FAULT_REGISTRY.get(fault_id)


def get_faults_by_category(registry: Optional[Mapping[str, FaultDefinition]] = None) -> Dict[str, List[FaultDefinition]]:
    """
    Group faults by category.

    Every known category is present (possibly empty). Faults whose category
    is not one of CATEGORY_NAMES are left out.

    Args:
        registry: Faults to group; the built-in registry if None
    """
    if registry is None:
        registry = FAULT_REGISTRY
    categories: Dict[str, List[FaultDefinition]] = {name: [] for name in CATEGORY_NAMES}

    for fault in registry.values():
        if fault.category in categories:
            categories[fault.category].append(fault)
        else:
            logger.debug(f"Fault {fault.fault_id} has unknown category {fault.category!r}, not listed")

    return categories


def get_fault_stats(registry: Optional[Mapping[str, FaultDefinition]] = None) -> dict:
    """Count faults in total, per category and per severity."""
    if registry is None:
        registry = FAULT_REGISTRY
    stats = {
        'total': 0,
        'byCategory': {},
        'bySeverity': {severity.value: 0 for severity in (Severity.HIGH, Severity.MEDIUM, Severity.LOW)},
    }

    for fault in registry.values():
        stats['total'] += 1
        stats['byCategory'][fault.category] = stats['byCategory'].get(fault.category, 0) + 1
        stats['bySeverity'][fault.severity.value] += 1

    return stats
