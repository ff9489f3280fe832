from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import RequestStatus


@dataclass(frozen=True)
class OffPremisesRequest:
    """Ask an approver to accept a check-in made away from every facility."""

    request_id: int
    user_id: int
    reason: str
    status: RequestStatus
    created_at: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accuracy_m: Optional[float] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    admin_note: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "user_id": self.user_id,
            "reason": self.reason,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy_m": self.accuracy_m,
            "decided_by": self.decided_by,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
            "admin_note": self.admin_note,
        }


@dataclass(frozen=True)
class ApprovalDecision:
    """Event published when an off-premises request is approved or rejected."""

    request_id: int
    user_id: int
    status: RequestStatus
    decided_by: int
    decided_at: datetime
    admin_note: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.status == RequestStatus.APPROVED
