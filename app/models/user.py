# === backend/app/models/user.py ===
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, func
from app.db.database import Base

class User(Base):
    """System principal: the operators who author endpoints."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class AppUser(Base):
    """Application principal: end users of the generated endpoints."""
    __tablename__ = "app_users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    status = Column(String, nullable=False, default="active")  # active | inactive | suspended
    roles = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
