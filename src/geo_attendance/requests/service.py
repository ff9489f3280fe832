from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional, Sequence

from ..attendance.model import AttendanceSession
from ..attendance.repository import AttendanceStore
from ..common.datetime_utils import now_local
from ..core.enums import AttendanceStatus, RequestStatus, Role
from ..core.exceptions import AuthorizationError, ValidationError
from .events import ApprovalEvents
from .model import ApprovalDecision, OffPremisesRequest
from .repository import ApprovalStore

logger = logging.getLogger(__name__)

APPROVER_ROLES = frozenset({Role.ADMIN})


class OffPremisesService:
    """Approver side of the off-premises workflow.

    An approval is delivered to the user's live controller, which opens the
    remote session. When no controller is listening, the service opens it in
    ``attendance_store`` itself before marking the request approved.
    """

    def __init__(
        self,
        store: ApprovalStore,
        events: ApprovalEvents,
        attendance_store: Optional[AttendanceStore] = None,
    ):
        self._store = store
        self._events = events
        self._attendance = attendance_store

    @staticmethod
    def _require_approver(current_role: Role) -> None:
        if current_role not in APPROVER_ROLES:
            raise AuthorizationError("Only administrators can decide off-premises requests")

    def list_pending(self, *, current_role: Role) -> Sequence[OffPremisesRequest]:
        self._require_approver(current_role)
        return self._store.list_requests(status=RequestStatus.PENDING)

    async def approve(
        self,
        *,
        current_role: Role,
        admin_user_id: int,
        request_id: int,
        admin_note: str = "",
        now: Optional[datetime] = None,
    ) -> ApprovalDecision:
        return await self._decide(
            current_role=current_role,
            admin_user_id=admin_user_id,
            request_id=request_id,
            status=RequestStatus.APPROVED,
            admin_note=admin_note,
            now=now,
        )

    async def reject(
        self,
        *,
        current_role: Role,
        admin_user_id: int,
        request_id: int,
        admin_note: str = "",
        now: Optional[datetime] = None,
    ) -> ApprovalDecision:
        return await self._decide(
            current_role=current_role,
            admin_user_id=admin_user_id,
            request_id=request_id,
            status=RequestStatus.REJECTED,
            admin_note=admin_note,
            now=now,
        )

    async def _decide(
        self,
        *,
        current_role: Role,
        admin_user_id: int,
        request_id: int,
        status: RequestStatus,
        admin_note: str,
        now: Optional[datetime],
    ) -> ApprovalDecision:
        self._require_approver(current_role)
        now = now or now_local()

        req = await asyncio.to_thread(self._store.get_request, int(request_id))
        if not req:
            raise ValidationError("Request not found", request_id=request_id)
        if req.status != RequestStatus.PENDING:
            raise ValidationError("Request has already been decided", request_id=request_id, status=req.status.value)

        # Opened before the request is marked decided, so a store failure leaves it pending.
        if status == RequestStatus.APPROVED and not self._events.subscriber_count(req.user_id):
            await self._open_remote_session(req)

        note = (admin_note or "").strip() or None
        ok = await asyncio.to_thread(
            lambda: self._store.decide_request(
                request_id=req.request_id,
                status=status,
                decided_by=int(admin_user_id),
                decided_at=now,
                admin_note=note,
            )
        )
        if not ok:
            raise ValidationError("Request could not be updated", request_id=request_id)

        decision = ApprovalDecision(
            request_id=req.request_id,
            user_id=req.user_id,
            status=status,
            decided_by=int(admin_user_id),
            decided_at=now,
            admin_note=note,
        )
        logger.info(
            "Off-premises request %s for user %s %s by %s",
            req.request_id,
            req.user_id,
            status.value.lower(),
            admin_user_id,
        )
        await self._events.publish(decision)
        return decision

    async def _open_remote_session(self, req: OffPremisesRequest) -> None:
        if self._attendance is None:
            logger.warning("Approved request %s has no listener and no attendance store", req.request_id)
            return
        work_date = req.created_at.date()
        existing = await asyncio.to_thread(self._attendance.get_for_user_and_date, req.user_id, work_date)
        if existing is not None:
            logger.info(
                "User %s already has a record for %s; approval %s opens nothing",
                req.user_id,
                work_date.isoformat(),
                req.request_id,
            )
            return
        session = AttendanceSession(
            user_id=req.user_id,
            work_date=work_date,
            check_in_time=req.created_at,
            check_in_remote=True,
            status=AttendanceStatus.REMOTE,
        )
        await asyncio.to_thread(self._attendance.commit_check_in, session)
        logger.info("User %s: remote check-in for request %s opened by the approver", req.user_id, req.request_id)
