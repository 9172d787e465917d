from sqlalchemy.ext.asyncio import AsyncSession

from api.models import AuditLog


def record_audit(
    session: AsyncSession,
    organization_id: str,
    actor_id: str,
    action: str,
    entity_id=None,
    entity: str = "withdrawal",
    payload: dict | None = None,
) -> AuditLog:
    """Stage an audit row in the caller's transaction. It commits or rolls back with the change it describes."""
    entry = AuditLog(
        organization_id=organization_id,
        actor_id=actor_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        payload_json=payload,
    )
    session.add(entry)
    return entry
