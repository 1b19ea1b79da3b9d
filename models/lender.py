import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text, func
from sqlalchemy.orm import relationship

from database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Lender(Base):
    __tablename__ = "lenders"

    id = Column(String(36), primary_key=True, index=True, default=_new_id)
    name = Column(String(256), nullable=False, index=True)
    logo = Column(String(512), nullable=True)
    website_link = Column(String(512), nullable=False, default="")
    phone = Column(String(64), nullable=False, default="")
    email = Column(String(256), nullable=False, default="")
    # Ranges are stored flat as min_/max_ column pairs
    min_rate = Column(Float, nullable=False)
    max_rate = Column(Float, nullable=False)
    min_loan = Column(Float, nullable=False)
    max_loan = Column(Float, nullable=False)
    min_term = Column(Float, nullable=False)
    max_term = Column(Float, nullable=False)
    min_age = Column(Float, nullable=False)
    max_age = Column(Float, nullable=False)
    min_loan_processing_time = Column(Float, nullable=False)
    max_loan_processing_time = Column(Float, nullable=False)
    min_decision_time = Column(Float, nullable=False)
    max_decision_time = Column(Float, nullable=False)
    min_trading_period = Column(Integer, nullable=False)
    max_loan_to_value = Column(Float, nullable=False)
    personal_guarantee = Column(Boolean, nullable=False, default=False)
    early_repayment_charges = Column(Boolean, nullable=False, default=False)
    interest_treatment = Column(String(64), nullable=False)
    covered_location = Column(JSON, nullable=False)
    loan_types = Column(JSON, nullable=False)
    additional_info = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    criteria_sheets = relationship("CriteriaSheet", back_populates="lender", cascade="all, delete-orphan")


class CriteriaSheet(Base):
    __tablename__ = "criteria_sheets"

    id = Column(String(36), primary_key=True, index=True, default=_new_id)
    lender_id = Column(String(36), ForeignKey("lenders.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    # Public URL of the stored PDF; the blob name is its last path segment
    url = Column(String(1024), nullable=False)
    upload_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    lender = relationship("Lender", back_populates="criteria_sheets")
