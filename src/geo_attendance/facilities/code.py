"""Facility codes: the payload printed as a QR code at each site.

Scanning happens on the client; the engine only receives the decoded text,
a JSON object such as ``{"location_id": "hq", "name": "Head Office"}``.
"""

from __future__ import annotations

import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import qrcode

from ..core.exceptions import ValidationError
from .model import Facility


@dataclass(frozen=True)
class FacilityCode:
    location_id: str
    name: Optional[str] = None
    issued_at: Optional[datetime] = None


def encode_facility_code(facility: Facility, *, issued_at: Optional[datetime] = None) -> str:
    payload = {"location_id": facility.id, "name": facility.name}
    if issued_at is not None:
        payload["created_at"] = issued_at.isoformat()
    return json.dumps(payload, sort_keys=True)


def parse_facility_code(text: str) -> FacilityCode:
    raw = (text or "").strip()
    if not raw:
        raise ValidationError("Facility code must not be empty", field="facility_code")
    try:
        data = json.loads(raw)
    except ValueError:
        raise ValidationError("Invalid facility code format", field="facility_code")
    if not isinstance(data, dict) or not str(data.get("location_id") or "").strip():
        raise ValidationError("Facility code has no location", field="facility_code")

    issued_at = None
    if data.get("created_at"):
        try:
            issued_at = datetime.fromisoformat(str(data["created_at"]))
        except ValueError:
            raise ValidationError("Facility code has an invalid timestamp", field="facility_code")

    return FacilityCode(
        location_id=str(data["location_id"]).strip(),
        name=data.get("name"),
        issued_at=issued_at,
    )


def render_facility_code_png(facility: Facility, *, issued_at: Optional[datetime] = None) -> bytes:
    """Render the facility code as a PNG image for printing."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(encode_facility_code(facility, issued_at=issued_at))
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
