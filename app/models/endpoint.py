# === backend/app/models/endpoint.py ===
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Text, JSON, DateTime, UniqueConstraint, func
from app.db.database import Base

class Endpoint(Base):
    __tablename__ = "endpoints"
    __table_args__ = (UniqueConstraint("method", "path", name="uq_endpoints_method_path"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    method = Column(String(10), nullable=False, index=True)
    path = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    sql = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_protected = Column(Boolean, default=False, nullable=False)
    allowed_roles = Column(JSON, nullable=True)  # empty/null: any authenticated principal
    params = Column(JSON, nullable=True)  # [{"name", "in", "type", "required"}]
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
