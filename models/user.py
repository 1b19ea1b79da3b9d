from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, func

from database import Base
from models.lender import _new_id


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, index=True, default=_new_id)
    username = Column(String(128), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)


class Favorite(Base):
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "lender_id", name="uq_favorites_user_lender"),)

    id = Column(String(36), primary_key=True, index=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    lender_id = Column(String(36), ForeignKey("lenders.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
