"""Utility functions and shared constants for MirrorBox."""

from datetime import datetime
from typing import Optional

# =============================================================================
# Constants for sync operations
# =============================================================================

# Buffer size for streaming file contents (32 KB)
DEFAULT_BUFFER_SIZE: int = 32 * 1024

# Prefix of temporary files written next to their final destination
TEMP_FILE_PREFIX: str = ".mirrorbox-tmp-"

# Per-execution run budget (30 minutes)
DEFAULT_JOB_TIMEOUT: float = 30 * 60.0

# Interval between scheduled sync waves (5 minutes)
DEFAULT_CHECK_INTERVAL: float = 5 * 60.0

# Capacity of the dispatcher event stream
DEFAULT_EVENT_CAPACITY: int = 100

# Concurrent job executions
DEFAULT_MAX_WORKERS: int = 4


# =============================================================================
# Formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Human-readable size string (e.g., "1.5 MB")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


def format_duration(seconds: float) -> str:
    """Format a duration in seconds as a short string.

    Args:
        seconds: Duration in seconds

    Returns:
        String such as "45s", "5m" or "1h 30m"
    """
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m" if secs == 0 else f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h" if minutes == 0 else f"{hours}h {minutes}m"


def format_timestamp(value: Optional[datetime]) -> str:
    """Format a datetime for display, or "never" when unset."""
    if value is None:
        return "never"
    return value.strftime("%Y-%m-%d %H:%M:%S")
