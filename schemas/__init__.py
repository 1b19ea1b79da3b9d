from schemas.filters import FilterOptions
from schemas.lender import (
    ALL_LOAN_TYPES,
    CriteriaSheet,
    DirectorySummary,
    DocumentUpload,
    Lender,
    LenderCreate,
    LenderOptions,
    LenderUpdate,
    LoanType,
    LoanTypeCount,
    NumericRange,
    PendingCriteriaSheet,
)
from schemas.user import LoginRequest, User, UserCreate

__all__ = [
    "ALL_LOAN_TYPES",
    "CriteriaSheet",
    "DirectorySummary",
    "DocumentUpload",
    "FilterOptions",
    "Lender",
    "LenderCreate",
    "LenderOptions",
    "LenderUpdate",
    "LoanType",
    "LoanTypeCount",
    "LoginRequest",
    "NumericRange",
    "PendingCriteriaSheet",
    "User",
    "UserCreate",
]
