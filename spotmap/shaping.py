"""
Response shaping: ORM rows to camelCase JSON payloads.

Owners are always reduced to ``{id, name, image}``; email and role never
leave the service.
"""
import datetime
from typing import Any, Dict, List, Optional

from .geo import format_distance

FREQUENCY_UNITS = {"daily": "day", "weekly": "week", "monthly": "month"}


def iso(value: Optional[datetime.datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value.isoformat()


def user_projection(user) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "image": user.image}


def describe_recurrence(is_recurring: bool, data: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Render recurrence data as text, e.g. "Every 2 weeks until 2026-12-31".

    Returns None for one-off events.
    """
    if not is_recurring or not data:
        return None
    unit = FREQUENCY_UNITS.get(data.get("frequency"), "occurrence")
    interval = data.get("interval") or 1
    text = f"Every {unit}" if interval == 1 else f"Every {interval} {unit}s"
    end_date = data.get("endDate")
    if end_date:
        text += f" until {str(end_date)[:10]}"
    return text


def spot_summary(spot) -> Optional[Dict[str, Any]]:
    if spot is None:
        return None
    return {
        "id": spot.id,
        "name": spot.name,
        "description": spot.description,
        "locationLat": spot.location_lat,
        "locationLng": spot.location_lng,
        "spotType": spot.spot_type,
        "difficulty": spot.difficulty,
        "visibility": spot.visibility,
        "status": spot.status,
    }


def spot_to_dict(spot, owner, distance: Optional[float] = None) -> Dict[str, Any]:
    out = {
        "id": spot.id,
        "userId": spot.user_id,
        "name": spot.name,
        "description": spot.description,
        "locationLat": spot.location_lat,
        "locationLng": spot.location_lng,
        "visibility": spot.visibility,
        "spotType": spot.spot_type,
        "difficulty": spot.difficulty,
        "startLat": spot.start_lat,
        "startLng": spot.start_lng,
        "endLat": spot.end_lat,
        "endLng": spot.end_lng,
        "bestTimes": spot.best_times,
        "safetyNotes": spot.safety_notes,
        "rules": spot.rules,
        "photos": list(spot.photos or []),
        "status": spot.status,
        "createdAt": iso(spot.created_at),
        "updatedAt": iso(spot.updated_at),
        "user": user_projection(owner),
    }
    if distance is not None:
        out["distance"] = round(distance, 1)
        out["distanceText"] = format_distance(distance)
    return out


def event_to_dict(event, spot, owner) -> Dict[str, Any]:
    return {
        "id": event.id,
        "userId": event.user_id,
        "spotId": event.spot_id,
        "title": event.title,
        "description": event.description,
        "startTime": iso(event.start_time),
        "endTime": iso(event.end_time),
        "isRecurring": event.is_recurring,
        "recurrenceData": event.recurrence_data,
        "recurrenceText": describe_recurrence(event.is_recurring, event.recurrence_data),
        "photos": list(event.photos or []),
        "createdAt": iso(event.created_at),
        "updatedAt": iso(event.updated_at),
        "spot": spot_summary(spot),
        "user": user_projection(owner),
    }


def spot_detail(spot, owner, upcoming: List[tuple], event_count: int) -> Dict[str, Any]:
    """Spot payload plus its upcoming events and the all-time event count."""
    out = spot_to_dict(spot, owner)
    out["events"] = [event_to_dict(event, spot, event_owner) for event, event_owner in upcoming]
    out["_count"] = {"events": event_count}
    return out


def collection_to_dict(collection, owner) -> Dict[str, Any]:
    return {
        "id": collection.id,
        "userId": collection.user_id,
        "name": collection.name,
        "spotIds": list(collection.spot_ids or []),
        "isPublic": collection.is_public,
        "createdAt": iso(collection.created_at),
        "updatedAt": iso(collection.updated_at),
        "user": user_projection(owner),
    }


def moderation_to_dict(entry, moderator=None) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "contentType": entry.content_type,
        "contentId": entry.content_id,
        "status": entry.status,
        "feedback": entry.feedback,
        "reviewedAt": iso(entry.reviewed_at),
        "createdAt": iso(entry.created_at),
        "updatedAt": iso(entry.updated_at),
        "moderator": user_projection(moderator),
    }


def page(limit: int, offset: int, total: int) -> Dict[str, int]:
    return {"limit": limit, "offset": offset, "total": total}
