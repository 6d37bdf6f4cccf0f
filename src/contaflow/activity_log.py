"""Append-only user activity log (`activities` collection).

Entries feed the "recent activities" panel and double as the audit trail of
administrative commands. Writing an entry never fails the caller's action:
storage errors are logged and `None` is returned instead of an id.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import PyMongoError

from contaflow.db import ACTIVITIES
from contaflow.models import Activity

log = logging.getLogger(__name__)


def log_activity(
    db: Database[dict[str, Any]],
    user_id: str,
    description: str,
    user_name: str | None = None,
    related_entity: tuple[str, str] | None = None,
) -> str | None:
    """Append one activity entry.

    Args:
        db: Database handle.
        user_id: Id of the user performing the action.
        description: What happened, e.g. "criou a empresa X".
        user_name: Display name; defaults to the anonymous label.
        related_entity: Optional `(entity_type, entity_id)` pair.

    Returns:
        The new entry id, or None when the write failed.

    Raises:
        pydantic.ValidationError: if `description` or `user_id` is invalid.
    """
    entity_type, entity_id = related_entity if related_entity else (None, None)
    activity = Activity(
        description=description,
        user_id=user_id,
        timestamp=datetime.now(timezone.utc),
        related_entity_type=entity_type,
        related_entity_id=entity_id,
        **({"user_name": user_name} if user_name else {}),
    )

    activity_id = ObjectId()
    doc = {"_id": activity_id, "id": str(activity_id), **activity.model_dump(by_alias=True)}

    try:
        db[ACTIVITIES].insert_one(doc)
    except PyMongoError as exc:
        log.error("Error logging activity %r: %s", description, exc)
        return None
    return str(activity_id)


def recent_activities(db: Database[dict[str, Any]], limit: int = 5) -> list[dict[str, Any]]:
    """Return the newest `limit` entries, newest first."""
    return list(db[ACTIVITIES].find({}, {"_id": 0}).sort("timestamp", -1).limit(limit))
