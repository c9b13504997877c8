"""
Modèles SQLAlchemy pour les agences (EMS, hôpitaux) et les précepteurs terrain (FTO).
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import UUID

from app.database import Base


class Agency(Base):
    __tablename__ = "agencies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    abbreviation = Column(String(50), nullable=True)
    type = Column(String(20), nullable=False)  # ems, hospital
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())


class FieldPreceptor(Base):
    __tablename__ = "field_preceptors"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    agency_id = Column(UUID(as_uuid=True), ForeignKey("agencies.id"), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
