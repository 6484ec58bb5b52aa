"""
FleetRent - Audit Log Model
Audit trail for all mutations; also the record used to reconcile partial writes
"""

from sqlalchemy import Column, Integer, String, Text, JSON, DateTime
from sqlalchemy.sql import func

from backend.database import Base


class AuditLog(Base):
    """Audit log for all system operations"""

    __tablename__ = "audit_logs"

    # Primary Key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Who
    user_id = Column(Integer, nullable=False, index=True)
    username = Column(String(50), nullable=False)
    user_role = Column(String(20), nullable=False)

    # What
    action = Column(String(100), nullable=False, index=True)  # assign_vehicle, set_selection_status, etc.
    entity_type = Column(String(50), nullable=False, index=True)  # driver, vehicle, plan_selection, etc.
    entity_id = Column(Integer, nullable=True, index=True)

    # Details
    description = Column(Text, nullable=False)
    old_values = Column(JSON, nullable=True)  # Before change
    new_values = Column(JSON, nullable=True)  # After change

    # When
    timestamp = Column(DateTime, server_default=func.now(), nullable=False, index=True)

    @classmethod
    def from_auth(cls, auth, action: str, entity_type: str, entity_id, description: str,
                  old_values=None, new_values=None) -> "AuditLog":
        return cls(
            user_id=auth.user_id,
            username=auth.username,
            user_role=auth.role.value,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            old_values=old_values,
            new_values=new_values,
        )

    def __repr__(self):
        return f"<AuditLog(id={self.id}, user='{self.username}', action='{self.action}', entity='{self.entity_type}')>"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "userId": self.user_id,
            "username": self.username,
            "userRole": self.user_role,
            "action": self.action,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "description": self.description,
            "oldValues": self.old_values,
            "newValues": self.new_values,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
