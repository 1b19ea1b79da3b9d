from typing import Optional

from pydantic import Field

from schemas.lender import CamelModel, LoanType


class FilterOptions(CamelModel):
    """Search criteria for the lender directory. Every field left as None imposes no constraint."""

    search_term: Optional[str] = None
    min_loan: Optional[float] = None
    max_loan: Optional[float] = None
    min_rate: Optional[float] = None
    max_rate: Optional[float] = None
    min_term: Optional[float] = None
    max_term: Optional[float] = None
    max_ltv: Optional[float] = Field(None, alias="maxLTV")
    loan_types: Optional[list[LoanType]] = None
    location: Optional[str] = None
