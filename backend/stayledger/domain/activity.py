# backend/stayledger/domain/activity.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models import ActivityLog

# Action codes are the de facto schema for log consumers; keep them verbatim.
EXPENSE_CREATED = "EXPENSE_CREATED"
EXPENSE_UPDATED = "EXPENSE_UPDATED"
EXPENSE_DELETED = "EXPENSE_DELETED"

INVENTORY_CREATED = "INVENTORY_CREATED"
INVENTORY_UPDATED = "INVENTORY_UPDATED"
INVENTORY_DELETED = "INVENTORY_DELETED"
INVENTORY_RESTORED = "INVENTORY_RESTORED"
INVENTORY_ADJUSTED = "INVENTORY_ADJUSTED"
INVENTORY_REFILLED = "INVENTORY_REFILLED"
INVENTORY_BATCH_REFILLED = "INVENTORY_BATCH_REFILLED"
LOW_INVENTORY_ALERT = "LOW_INVENTORY_ALERT"

OWNER_CREATED = "OWNER_CREATED"
OWNER_UPDATED = "OWNER_UPDATED"
OWNER_DELETED = "OWNER_DELETED"

LISTING_CREATED = "LISTING_CREATED"
LISTING_UPDATED = "LISTING_UPDATED"
LISTING_DELETED = "LISTING_DELETED"

REPORTS_GENERATED = "REPORTS_GENERATED"
REPORT_DOWNLOADED = "REPORT_DOWNLOADED"
REPORT_SENT = "REPORT_SENT"
REPORT_EMAILED = "REPORT_EMAILED"
BATCH_REPORTS_DOWNLOADED = "BATCH_REPORTS_DOWNLOADED"
BATCH_REPORTS_SENT = "BATCH_REPORTS_SENT"
BATCH_REPORTS_DELETED = "BATCH_REPORTS_DELETED"
BATCH_NOTES_UPDATED = "BATCH_NOTES_UPDATED"

SHOPPING_LIST_CREATED = "SHOPPING_LIST_CREATED"
SHOPPING_LIST_UPDATED = "SHOPPING_LIST_UPDATED"
SHOPPING_LIST_DELETED = "SHOPPING_LIST_DELETED"
SHOPPING_LIST_ITEM_ADDED = "SHOPPING_LIST_ITEM_ADDED"
SHOPPING_LIST_ITEM_UPDATED = "SHOPPING_LIST_ITEM_UPDATED"
SHOPPING_LIST_ITEM_REMOVED = "SHOPPING_LIST_ITEM_REMOVED"
SHOPPING_LIST_ITEM_COMPLETED = "SHOPPING_LIST_ITEM_COMPLETED"
SHOPPING_LIST_ITEM_UNCOMPLETED = "SHOPPING_LIST_ITEM_UNCOMPLETED"

USER_ROLE_UPDATED = "USER_ROLE_UPDATED"
INVITATION_SENT = "INVITATION_SENT"
INVITATION_RESENT = "INVITATION_RESENT"
INVITATION_ACCEPTED = "INVITATION_ACCEPTED"
INVITATION_DELETED = "INVITATION_DELETED"


def log_activity(
    db: Session,
    *,
    user_id: int,
    action: str,
    details: Optional[str] = None,
    portfolio_id: Optional[int] = None,
    commit: bool = False,
) -> ActivityLog:
    """
    Append one activity-log row.

    - Does NOT commit by default, so services can bundle it with the
      mutation it describes and commit once.
    - Returns the row for tests / introspection.
    """
    row = ActivityLog(
        user_id=int(user_id),
        portfolio_id=int(portfolio_id) if portfolio_id is not None else None,
        action=str(action),
        details=details,
        timestamp=datetime.utcnow(),
    )
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    return row
