from sqlalchemy import Boolean, Column, DateTime, Integer, String

from shared.config.database import Base
from services.product_service.models import utcnow


class User(Base):
    """An account; its id is what a bearer token identifies."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
