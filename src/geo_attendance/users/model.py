from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Department:
    dept_id: int
    code: str
    name: str


@dataclass(frozen=True)
class UserProfile:
    """Domain entity: the parts of a user the attendance rules look at.

    Note: Identity itself (login, sessions) is handled elsewhere; this is a
    plain data object.
    """

    user_id: int
    full_name: str
    role: Role
    department: Optional[Department] = None
