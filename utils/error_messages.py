"""
Clear, actionable error message formatting.

All error messages follow the pattern:
  ERROR: [What failed]
    Reason: [Why it failed]
    Action: [What user should do]
    Location: [Where the problem is]
"""

import logging
from pathlib import Path
from typing import Optional, Union


def format_error(
    what_failed: str,
    reason: str,
    action: str,
    location: Optional[Union[str, Path]] = None,
    details: Optional[str] = None
) -> str:
    """
    Format a clear, actionable error message.

    Args:
        what_failed: What operation failed (e.g., "Fault injection failed")
        reason: Why it failed (e.g., "Template file does not exist")
        action: What user should do (e.g., "Restore the template or pick another fault")
        location: Where the problem occurred (file path, directory, etc.)
        details: Optional additional details

    Returns:
        Formatted error message
    """
    lines = [f"ERROR: {what_failed}"]
    lines.append(f"  Reason: {reason}")
    lines.append(f"  Action: {action}")

    if location:
        lines.append(f"  Location: {location}")

    if details:
        lines.append(f"  Details: {details}")

    return "\n".join(lines)


def log_error(
    what_failed: str,
    reason: str,
    action: str,
    location: Optional[Union[str, Path]] = None,
    details: Optional[str] = None
):
    """
    Log a clear, actionable error message.

    Same parameters as format_error, but logs it directly.
    """
    message = format_error(what_failed, reason, action, location, details)
    logging.error(message)


def format_unknown_fault_error(fault_id: str) -> str:
    """Format an unknown fault id error."""
    return format_error(
        what_failed=f"Unknown fault type '{fault_id}'",
        reason="The fault id is not in the registry",
        action="Run 'chaos list' to see the available fault types"
    )


def format_manifest_error(path: Union[str, Path], reason: str) -> str:
    """Format a corrupted backup manifest error."""
    return format_error(
        what_failed="Cannot read backup manifest",
        reason=reason,
        action="Restore the files from version control, then delete the backup directory",
        location=path
    )


def format_pending_backup_error(fault_type: str) -> str:
    """Format the error for injecting while another injection is pending."""
    return format_error(
        what_failed="A previous fault injection has not been restored",
        reason=f"Backup for '{fault_type}' is still pending",
        action="Run 'chaos restore' first, or re-run inject with --force to discard it"
    )


def format_filesystem_error(operation: str, error: OSError) -> str:
    """Format a filesystem failure (permission denied, disk full, ...)."""
    reason = error.strerror or str(error)
    location = error.filename if getattr(error, 'filename', None) else None
    return format_error(
        what_failed=f"{operation} failed",
        reason=reason,
        action="Fix the file permissions or free disk space, then re-run the command",
        location=location
    )
