from __future__ import annotations

import logging
from functools import wraps

from flask import Flask, Response, jsonify, request, session

from ..container import Container
from ..core.enums import ReasonKind, Role
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    DuplicateRequest,
    GuardError,
    InvalidStateTransition,
    PersistenceError,
    PolicyError,
    PositionError,
    ValidationError,
)
from ..common.validators import require_coordinate, require_non_negative
from ..devices.identity import UserAgentDeviceIdentity
from ..facilities.code import render_facility_code_png
from ..positioning.acquirer import PositionAcquirer
from ..positioning.provider import ReportedPositionProvider
from .service import AttendanceSessionController

logger = logging.getLogger(__name__)

# Most specific first.
_STATUS_BY_ERROR = (
    (DuplicateRequest, 429),
    (InvalidStateTransition, 409),
    (GuardError, 409),
    (PositionError, 422),
    (PolicyError, 403),
    (AuthorizationError, 403),
    (ValidationError, 400),
    (PersistenceError, 503),
)


def status_for(error: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return status
    return 400


def error_response(error: DomainError):
    body = {"success": False, **error.to_dict()}
    return jsonify(body), status_for(error)


def _reported_provider(payload: dict) -> ReportedPositionProvider:
    """Position fields of a request body: latitude, longitude, accuracy or error_code."""
    latitude, longitude, accuracy = payload.get("latitude"), payload.get("longitude"), payload.get("accuracy")
    if latitude is not None and longitude is not None:
        latitude = require_coordinate(latitude, "latitude", bound=90)
        longitude = require_coordinate(longitude, "longitude", bound=180)
        if accuracy is not None:
            accuracy = require_non_negative(accuracy, "accuracy")
    error_code = payload.get("error_code")
    if error_code is not None:
        try:
            error_code = int(error_code)
        except (TypeError, ValueError):
            raise ValidationError("error_code must be an integer", field="error_code")
    return ReportedPositionProvider(latitude=latitude, longitude=longitude, accuracy_m=accuracy, error_code=error_code)


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        async def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "error": "UNAUTHORIZED", "message": "Please log in first"}), 401
            return await view(*args, **kwargs)

        return wrapper

    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        if isinstance(error, PersistenceError):
            logger.warning("Request %s %s failed: %s", request.method, request.path, error.message)
        return error_response(error)

    def _payload() -> dict:
        return request.get_json(silent=True) or {}

    async def _ready(controller: AttendanceSessionController) -> AttendanceSessionController:
        now = container.clock()
        if not controller.restored:
            await controller.restore(now)
        else:
            await controller.roll_over(now)
        return controller

    def _caller(payload: dict) -> dict:
        """Device, client, platform and position source of this request."""
        identity = UserAgentDeviceIdentity(
            request.headers.get("User-Agent", ""),
            device_id=request.headers.get("X-Device-Id"),
        )
        profile = identity.profile()
        provider = _reported_provider(payload)
        return {
            "device": identity,
            "client": profile.client,
            "platform": profile.platform,
            # The fix is already measured client-side; sampled mode must not wait.
            "acquirer": PositionAcquirer(provider, platform=profile.platform, sample_spacing_s=0),
        }

    def _serialized():
        return container.controllers.serialized(int(session["user_id"]))

    def _ok(controller: AttendanceSessionController, status: int = 200):
        return jsonify({"success": True, **controller.snapshot()}), status

    @app.route("/api/attendance/state", methods=["GET"], endpoint="attendance_state")
    @login_required
    async def attendance_state():
        with _serialized() as controller:
            await _ready(controller)
            return _ok(controller)

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @login_required
    async def attendance_check_in():
        payload = _payload()
        caller = _caller(payload)
        with _serialized() as controller:
            await _ready(controller)
            await controller.request_check_in(facility_code=payload.get("facility_code"), **caller)
            return _ok(controller)

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="attendance_check_out")
    @login_required
    async def attendance_check_out():
        caller = _caller(_payload())
        with _serialized() as controller:
            await _ready(controller)
            await controller.request_check_out(**caller)
            return _ok(controller)

    @app.route("/api/attendance/reason", methods=["POST"], endpoint="attendance_reason")
    @login_required
    async def attendance_reason():
        payload = _payload()
        try:
            kind = ReasonKind(str(payload.get("kind", "")).upper())
        except ValueError:
            raise ValidationError("kind must be LATENESS or EARLY_CHECKOUT", field="kind")
        with _serialized() as controller:
            await _ready(controller)
            await controller.submit_reason(kind, payload.get("reason", ""))
            return _ok(controller)

    @app.route("/api/attendance/reason/cancel", methods=["POST"], endpoint="attendance_reason_cancel")
    @login_required
    async def attendance_reason_cancel():
        with _serialized() as controller:
            await _ready(controller)
            controller.cancel_pending_reason()
            return _ok(controller)

    @app.route("/api/attendance/off-premises", methods=["POST"], endpoint="attendance_off_premises")
    @login_required
    async def attendance_off_premises():
        payload = _payload()
        caller = _caller(payload)
        with _serialized() as controller:
            await _ready(controller)
            await controller.request_off_premises_exception(payload.get("reason", ""), device=caller["device"])
            return _ok(controller, 202)

    @app.route("/api/attendance/commit/retry", methods=["POST"], endpoint="attendance_commit_retry")
    @login_required
    async def attendance_commit_retry():
        with _serialized() as controller:
            await _ready(controller)
            await controller.retry_commit()
            return _ok(controller)

    @app.route("/api/facilities/<facility_id>/code.png", methods=["GET"], endpoint="facility_code_png")
    @login_required
    async def facility_code_png(facility_id: str):
        if session.get("role") != Role.ADMIN.value:
            raise AuthorizationError("Only administrators can print facility codes")
        facility = container.facilities.get(facility_id)
        if facility is None:
            raise ValidationError("Facility not found", facility_id=facility_id)
        png = render_facility_code_png(facility, issued_at=container.clock())
        return Response(png, mimetype="image/png")
