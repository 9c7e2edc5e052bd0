from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog


def log_event(
    s: Session,
    actor: str,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    owner_user_id: int | None = None,
    details: dict | None = None,
    commit: bool = True,
):
    row = AuditLog(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        owner_user_id=owner_user_id,
        details=details,
    )
    s.add(row)
    if commit:
        s.commit()
    return row
