from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, get_args

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

LoanType = Literal[
    "Business Loans",
    "Invoice Finance",
    "Trade Finance",
    "Asset Finance",
    "Commercial Mortgages",
    "Bridging Loans",
    "BTL Mortgages",
    "Development Finance",
]

ALL_LOAN_TYPES: tuple[str, ...] = get_args(LoanType)


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""

    model_config = {"populate_by_name": True, "alias_generator": to_camel}


class NumericRange(CamelModel):
    min: float
    max: float

    model_config = {"frozen": True}


class CriteriaSheet(CamelModel):
    id: str
    name: str
    url: str
    upload_date: datetime

    model_config = {"frozen": True}


class DocumentUpload(BaseModel):
    """Raw file content waiting to be stored as a criteria sheet."""

    filename: str
    content: bytes
    content_type: str = "application/pdf"


class PendingCriteriaSheet(BaseModel):
    name: str
    document: DocumentUpload


class LenderBase(CamelModel):
    name: str
    logo: Optional[str] = None
    website_link: str = ""
    phone: str = ""
    email: str = ""
    rate: NumericRange
    loan_amount: NumericRange
    term: NumericRange
    age: NumericRange
    loan_processing_time: NumericRange
    decision_time: NumericRange
    min_trading_period: int
    max_loan_to_value: float
    personal_guarantee: bool = False
    early_repayment_charges: bool = False
    interest_treatment: str
    covered_location: list[str]
    loan_types: list[LoanType]
    additional_info: Optional[str] = None


class Lender(LenderBase):
    """A lender as held in the repository cache. Instances are immutable snapshots."""

    id: str
    criteria_sheets: list[CriteriaSheet] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"frozen": True}


class LenderCreate(LenderBase):
    criteria_sheets: list[PendingCriteriaSheet] = Field(default_factory=list, exclude=True)


class LenderUpdate(CamelModel):
    """Sparse patch: only fields explicitly set are written."""

    name: Optional[str] = None
    logo: Optional[str] = None
    website_link: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    rate: Optional[NumericRange] = None
    loan_amount: Optional[NumericRange] = None
    term: Optional[NumericRange] = None
    age: Optional[NumericRange] = None
    loan_processing_time: Optional[NumericRange] = None
    decision_time: Optional[NumericRange] = None
    min_trading_period: Optional[int] = None
    max_loan_to_value: Optional[float] = None
    personal_guarantee: Optional[bool] = None
    early_repayment_charges: Optional[bool] = None
    interest_treatment: Optional[str] = None
    covered_location: Optional[list[str]] = None
    loan_types: Optional[list[LoanType]] = None
    additional_info: Optional[str] = None
    # New documents to attach; existing sheets are managed via attach/detach
    criteria_sheets: Optional[list[PendingCriteriaSheet]] = Field(None, exclude=True)


class LoanTypeCount(CamelModel):
    loan_type: LoanType
    count: int


class DirectorySummary(CamelModel):
    total_lenders: int
    top_loan_types: list[LoanTypeCount]
    recently_added: list[Lender]


class LenderOptions(CamelModel):
    loan_types: list[str]
    locations: list[str]
    interest_treatments: list[str]
