"""
Optimistic concurrency guard.

Versions are plain integers stored on each mutable row. Callers pass the
version they read; writers compare it before writing and bump it with the
write, inside the same unit of work.
"""

from typing import Optional

from backoffice.app.core.exceptions import ConcurrentModificationError


def validate_version(current: Optional[int], expected: Optional[int]) -> None:
    """
    Check a caller-supplied version against the stored one.

    Either side being None passes silently, so callers that never send a
    version keep working.

    Raises:
        ConcurrentModificationError: both present and unequal
    """
    if current is None or expected is None:
        return
    if current != expected:
        raise ConcurrentModificationError(current, expected)


def increment_version(version: Optional[int]) -> int:
    return (version or 0) + 1
