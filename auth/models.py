"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in core/models.py: dataclasses own the shape; the directory, session store
and routes do the work.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Grants every permission below.
ALL_PERMISSIONS = "all"


class Role(str, Enum):
    admin = "admin"
    auditor = "auditor"
    supervisor = "supervisor"


@dataclass(frozen=True)
class User:
    """An identity from the allow-list.

    permissions holds feature names ("audits", "checklists", "reports",
    "actions") or the single wildcard "all".
    """

    id: int
    username: str
    name: str
    email: str
    role: Role
    permissions: tuple[str, ...] = ()
