from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog


def log_action(
    db: Session,
    user_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    description: str | None = None,
) -> None:
    """
    Queue an audit log entry on the session.

    The entry is only added, never committed: it lands in the same transaction
    as the change it describes, so a rolled-back change leaves no audit row.

    Usage:
        log_action(db, user.id, "DOWNLOAD", "Post", post.id, f"{user.email} downloaded pdf")
        db.commit()
    """
    db.add(AuditLog(
        userId=user_id,
        action=action,
        entityType=entity_type,
        entityId=entity_id,
        description=description,
    ))
