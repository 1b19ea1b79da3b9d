from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from config import settings
from schemas.filters import FilterOptions
from schemas.lender import ALL_LOAN_TYPES, DocumentUpload, Lender, LenderCreate, LenderOptions, LenderUpdate, LoanType
from services.directory_stats import summarize
from services.favourites import FavouritesTracker
from services.filter_engine import filter_lenders
from services.lender_repository import LenderRepository
from api.deps import get_favourite_trackers, get_repository

router = APIRouter(prefix="/api/lenders", tags=["lenders"])

MSG_LENDER_NOT_FOUND = "Lender not found"


def _lender_to_response(l: Lender) -> dict[str, Any]:
    return l.model_dump(mode="json", by_alias=True)


@router.get("", response_model=list[dict])
async def search_lenders(
    search_term: Optional[str] = Query(None, alias="searchTerm"),
    min_loan: Optional[float] = Query(None, alias="minLoan"),
    max_loan: Optional[float] = Query(None, alias="maxLoan"),
    min_rate: Optional[float] = Query(None, alias="minRate"),
    max_rate: Optional[float] = Query(None, alias="maxRate"),
    min_term: Optional[float] = Query(None, alias="minTerm"),
    max_term: Optional[float] = Query(None, alias="maxTerm"),
    max_ltv: Optional[float] = Query(None, alias="maxLTV"),
    loan_types: Optional[list[LoanType]] = Query(None, alias="loanTypes"),
    location: Optional[str] = Query(None),
    sort: Literal["asc", "desc"] = Query("asc"),
    repo: LenderRepository = Depends(get_repository),
):
    """Lenders matching every given filter, sorted by name."""
    options = FilterOptions(
        search_term=search_term,
        min_loan=min_loan,
        max_loan=max_loan,
        min_rate=min_rate,
        max_rate=max_rate,
        min_term=min_term,
        max_term=max_term,
        max_ltv=max_ltv,
        loan_types=loan_types,
        location=location,
    )
    lenders = filter_lenders(await repo.ensure_fresh(), options, descending=sort == "desc")
    return [_lender_to_response(l) for l in lenders]


@router.get("/options", response_model=dict)
async def lender_options():
    options = LenderOptions(
        loan_types=list(ALL_LOAN_TYPES),
        locations=settings.loan_locations,
        interest_treatments=settings.interest_treatments,
    )
    return options.model_dump(by_alias=True)


@router.get("/summary", response_model=dict)
async def directory_summary(repo: LenderRepository = Depends(get_repository)):
    return summarize(await repo.ensure_fresh()).model_dump(mode="json", by_alias=True)


@router.post("/refresh", response_model=list[dict])
async def refresh_lenders(repo: LenderRepository = Depends(get_repository)):
    lenders = await repo.refresh()
    return [_lender_to_response(l) for l in lenders]


@router.get("/{lender_id}", response_model=dict)
async def get_lender(lender_id: str, repo: LenderRepository = Depends(get_repository)):
    await repo.ensure_fresh()
    lender = repo.get_by_id(lender_id)
    if not lender:
        raise HTTPException(status_code=404, detail=MSG_LENDER_NOT_FOUND)
    return _lender_to_response(lender)


@router.post("", response_model=dict, status_code=201)
async def create_lender(body: LenderCreate, repo: LenderRepository = Depends(get_repository)):
    lender = await repo.create(body)
    return _lender_to_response(lender)


@router.patch("/{lender_id}", response_model=dict)
async def update_lender(lender_id: str, body: LenderUpdate, repo: LenderRepository = Depends(get_repository)):
    lender = await repo.update(lender_id, body)
    return _lender_to_response(lender)


@router.delete("/{lender_id}", status_code=204)
async def delete_lender(
    lender_id: str,
    repo: LenderRepository = Depends(get_repository),
    trackers: dict[str, FavouritesTracker] = Depends(get_favourite_trackers),
):
    await repo.delete(lender_id)
    for tracker in trackers.values():
        tracker.forget(lender_id)
    return None


@router.post("/{lender_id}/criteria-sheets", response_model=dict, status_code=201)
async def attach_criteria_sheet(
    lender_id: str,
    name: str = Form(..., description="Display name of the criteria sheet"),
    file: UploadFile = File(..., description="Criteria sheet PDF"),
    repo: LenderRepository = Depends(get_repository),
):
    if repo.get_by_id(lender_id) is None:
        raise HTTPException(status_code=404, detail=MSG_LENDER_NOT_FOUND)
    content = await file.read()
    document = DocumentUpload(
        filename=file.filename or "criteria-sheet.pdf",
        content=content,
        content_type=file.content_type or "application/octet-stream",
    )
    lender = await repo.attach_document(lender_id, name, document)
    return _lender_to_response(lender)


@router.delete("/{lender_id}/criteria-sheets/{sheet_id}", response_model=dict)
async def detach_criteria_sheet(lender_id: str, sheet_id: str, repo: LenderRepository = Depends(get_repository)):
    lender = await repo.detach_document(lender_id, sheet_id)
    return _lender_to_response(lender)
