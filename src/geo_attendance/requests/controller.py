from __future__ import annotations

from functools import wraps

from flask import Flask, jsonify, request, session

from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    def admin_required(view):
        @wraps(view)
        async def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "error": "UNAUTHORIZED", "message": "Please log in first"}), 401
            if session.get("role") != Role.ADMIN.value:
                return jsonify({"success": False, "error": "FORBIDDEN", "message": "Administrators only"}), 403
            return await view(*args, **kwargs)

        return wrapper

    def _current_role() -> Role:
        try:
            return Role(session.get("role"))
        except ValueError:
            raise ValidationError("Unknown role in session")

    @app.route("/api/off-premises", methods=["GET"], endpoint="off_premises_pending")
    @admin_required
    async def off_premises_pending():
        rows = container.off_premises_service.list_pending(current_role=_current_role())
        return jsonify({"success": True, "requests": [r.to_dict() for r in rows]})

    @app.route("/api/off-premises/<int:request_id>/approve", methods=["POST"], endpoint="off_premises_approve")
    @admin_required
    async def off_premises_approve(request_id: int):
        payload = request.get_json(silent=True) or {}
        decision = await container.off_premises_service.approve(
            current_role=_current_role(),
            admin_user_id=int(session["user_id"]),
            request_id=request_id,
            admin_note=payload.get("admin_note", ""),
            now=container.clock(),
        )
        return jsonify({"success": True, "request_id": decision.request_id, "status": decision.status.value})

    @app.route("/api/off-premises/<int:request_id>/reject", methods=["POST"], endpoint="off_premises_reject")
    @admin_required
    async def off_premises_reject(request_id: int):
        payload = request.get_json(silent=True) or {}
        decision = await container.off_premises_service.reject(
            current_role=_current_role(),
            admin_user_id=int(session["user_id"]),
            request_id=request_id,
            admin_note=payload.get("admin_note", ""),
            now=container.clock(),
        )
        return jsonify({"success": True, "request_id": decision.request_id, "status": decision.status.value})
