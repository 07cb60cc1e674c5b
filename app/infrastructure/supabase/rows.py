from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any

from app.domain.entities.booking import Booking, BookingDraft, BookingStatus


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_date(value: str) -> date:
    # visit_date may be stored as a date or as a midnight timestamp
    return date.fromisoformat(value[:10])


def first_image(images: Any) -> str:
    if isinstance(images, str):
        try:
            images = json.loads(images)
        except ValueError:
            return images
    if isinstance(images, list) and images:
        return str(images[0])
    return ""


def booking_from_row(row: dict[str, Any]) -> Booking:
    return Booking(
        id=str(row["id"]),
        property_id=str(row["property_id"]),
        property_title=row.get("property_title") or "Property",
        property_image=row.get("property_image") or "",
        client_id=str(row["client_id"]),
        client_name=row.get("client_name") or "User",
        client_email=row.get("client_email") or "",
        client_phone=row.get("client_phone") or "",
        agent_id=str(row["agent_id"]),
        agent_name=row.get("agent_name") or "",
        visit_date=_parse_date(row["visit_date"]),
        visit_time=row.get("visit_time") or "",
        status=BookingStatus(row["status"]),
        notes=row.get("notes"),
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row["updated_at"]),
    )


def draft_to_row(draft: BookingDraft, now: datetime) -> dict[str, Any]:
    return {
        "property_id": draft.property_id,
        "property_title": draft.property_title,
        "property_image": draft.property_image,
        "client_id": draft.client_id,
        "client_name": draft.client_name,
        "client_email": draft.client_email,
        "client_phone": draft.client_phone,
        "agent_id": draft.agent_id,
        "agent_name": draft.agent_name,
        "visit_date": draft.visit_date.isoformat(),
        "visit_time": draft.visit_time,
        "notes": draft.notes,
        "status": BookingStatus.PENDING.value,
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
    }


def changes_to_row(changes: dict[str, Any]) -> dict[str, Any]:
    row: dict[str, Any] = {}
    for key, value in changes.items():
        if isinstance(value, BookingStatus):
            value = value.value
        elif isinstance(value, (datetime, date)):
            value = value.isoformat()
        row[key] = value
    return row
