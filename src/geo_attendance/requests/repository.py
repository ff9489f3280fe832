from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import RequestStatus
from ..positioning.model import PositionSample
from .model import OffPremisesRequest


class ApprovalStore(Protocol):
    def submit_request(self, user_id: int, reason: str, location: Optional[PositionSample]) -> int:
        """Store a new PENDING request and return its id."""

        raise NotImplementedError

    def get_request(self, request_id: int) -> Optional[OffPremisesRequest]:
        raise NotImplementedError

    def list_requests(self, *, status: Optional[RequestStatus] = None, limit: int = 200) -> Sequence[OffPremisesRequest]:
        raise NotImplementedError

    def decide_request(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: int,
        decided_at: datetime,
        admin_note: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError
