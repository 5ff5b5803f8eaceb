# app/core/activity.py
from typing import Optional

from sqlalchemy.orm import Session

from app.shared.database.models import Activity


def log_activity(
    db: Session,
    user_id: Optional[int],
    action: str,
    description: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
) -> Activity:
    """
    Add an audit entry to the session. The caller owns the commit, so the
    entry lands in the same transaction as the change it describes.
    """
    entry = Activity(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
    )
    db.add(entry)
    return entry
