"""
Chaos Utilities
Console output, error messages and system checks.
"""

from .console import Console
from .system_check import SystemCheck

__all__ = ['Console', 'SystemCheck']
