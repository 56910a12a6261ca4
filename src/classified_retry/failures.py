"""
Safe field access on failure values.

Predicates routinely look at fields that only some exception types carry
(``code``, ``status``, ``response``...). These helpers read such fields
without raising when the failure has a different shape.
"""

from typing import Any


def efield(failure: Any, name: str, default: Any = None) -> Any:
    """Return ``failure.<name>`` if present, else ``default``."""
    return getattr(failure, name, default)


def ecode(failure: Any) -> Any:
    """Return the ``code`` field of a failure, or None."""
    return efield(failure, "code")
