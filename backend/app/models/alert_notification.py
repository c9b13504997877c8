"""
Modèle SQLAlchemy des alertes critiques déjà notifiées par email.
Les alertes elles-mêmes ne sont pas stockées : elles sont recalculées à chaque lecture.
"""

import uuid
from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class AlertNotification(Base):
    __tablename__ = "alert_notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    alert_key = Column(String(255), unique=True, nullable=False)  # Alert.key
    student_id = Column(String(64), nullable=False)
    severity = Column(String(20), nullable=False)
    first_notified_at = Column(DateTime, server_default=func.now())
