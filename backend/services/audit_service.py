"""
FleetRent - Audit Service
Read side of the audit trail
"""

from sqlalchemy.orm import Session
from typing import List, Optional

from backend.models.audit import AuditLog
from shared.auth import AuthContext, require_permission
from shared.enums import Permission


MAX_AUDIT_ROWS = 500


class AuditService:
    """Audit log queries for reconciling records by hand"""

    @staticmethod
    @require_permission(Permission.AUDIT_VIEW)
    def list_entries(
        auth: AuthContext,
        db: Session,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        action: Optional[str] = None,
        limit: int = 100,
    ) -> List[AuditLog]:
        """Newest entries first, optionally narrowed to one entity or action"""
        query = db.query(AuditLog)
        if entity_type:
            query = query.filter(AuditLog.entity_type == entity_type)
        if entity_id is not None:
            query = query.filter(AuditLog.entity_id == entity_id)
        if action:
            query = query.filter(AuditLog.action == action)

        limit = max(1, min(limit, MAX_AUDIT_ROWS))
        return query.order_by(AuditLog.id.desc()).limit(limit).all()
