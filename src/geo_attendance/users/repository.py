from __future__ import annotations

from typing import Optional, Protocol

from .model import UserProfile


class UserDirectory(Protocol):
    def get_profile(self, user_id: int) -> Optional[UserProfile]:
        raise NotImplementedError
