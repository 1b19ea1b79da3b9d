"""
Translation between flat snake_case store rows and structured Lender records.

Every LenderBase field is listed exactly once below, either as a range (two columns) or as a
single column. The module refuses to import if the domain models and the `lenders`
table drift apart, so a new field cannot be silently dropped on save or load.
"""
from __future__ import annotations

from typing import Any

from models import Lender as LenderRow
from schemas.lender import CriteriaSheet, Lender, LenderBase, LenderUpdate, NumericRange

RANGE_COLUMNS: dict[str, tuple[str, str]] = {
    "rate": ("min_rate", "max_rate"),
    "loan_amount": ("min_loan", "max_loan"),
    "term": ("min_term", "max_term"),
    "age": ("min_age", "max_age"),
    "loan_processing_time": ("min_loan_processing_time", "max_loan_processing_time"),
    "decision_time": ("min_decision_time", "max_decision_time"),
}

SCALAR_COLUMNS: dict[str, str] = {
    "name": "name",
    "logo": "logo",
    "website_link": "website_link",
    "phone": "phone",
    "email": "email",
    "min_trading_period": "min_trading_period",
    "max_loan_to_value": "max_loan_to_value",
    "personal_guarantee": "personal_guarantee",
    "early_repayment_charges": "early_repayment_charges",
    "interest_treatment": "interest_treatment",
    "covered_location": "covered_location",
    "loan_types": "loan_types",
    "additional_info": "additional_info",
}

# Optional text stored as NULL when blank; the only fields a patch may clear
CLEARABLE_FIELDS = frozenset({"logo", "additional_info"})

STORE_MANAGED_COLUMNS = frozenset({"id", "created_at", "updated_at"})


def _check_mapping_complete() -> None:
    mapped_fields = set(RANGE_COLUMNS) | set(SCALAR_COLUMNS)
    model_fields = set(LenderBase.model_fields)
    if mapped_fields != model_fields:
        raise RuntimeError(
            f"Lender field mapping out of date: unmapped={sorted(model_fields - mapped_fields)} "
            f"stale={sorted(mapped_fields - model_fields)}"
        )
    patch_fields = set(LenderUpdate.model_fields) - {"criteria_sheets"}
    if patch_fields != model_fields:
        raise RuntimeError(f"LenderUpdate fields differ from LenderBase: {sorted(patch_fields ^ model_fields)}")
    mapped_columns = [c for pair in RANGE_COLUMNS.values() for c in pair] + list(SCALAR_COLUMNS.values())
    if len(mapped_columns) != len(set(mapped_columns)):
        raise RuntimeError("Lender field mapping uses a column twice")
    table_columns = set(LenderRow.__table__.c.keys()) - STORE_MANAGED_COLUMNS
    if set(mapped_columns) != table_columns:
        raise RuntimeError(f"Lender field mapping differs from lenders table: {sorted(set(mapped_columns) ^ table_columns)}")


_check_mapping_complete()


def _field_to_columns(field: str, value: Any) -> dict[str, Any]:
    if field in RANGE_COLUMNS:
        low, high = RANGE_COLUMNS[field]
        return {low: value.min, high: value.max}
    if field in CLEARABLE_FIELDS and not value:
        value = None
    elif field in ("covered_location", "loan_types"):
        value = list(value)
    return {SCALAR_COLUMNS[field]: value}


def lender_to_row(data: LenderBase) -> dict[str, Any]:
    """Full insert row for a new lender (store assigns id and timestamps)."""
    row: dict[str, Any] = {}
    for field in (*RANGE_COLUMNS, *SCALAR_COLUMNS):
        row.update(_field_to_columns(field, getattr(data, field)))
    return row


def patch_to_row(patch: LenderUpdate) -> dict[str, Any]:
    """Columns for the fields explicitly set on the patch; omitted fields are left untouched."""
    row: dict[str, Any] = {}
    for field in patch.model_fields_set:
        if field == "criteria_sheets":
            continue
        row.update(_field_to_columns(field, getattr(patch, field)))
    return row


def row_to_sheet(row: dict[str, Any]) -> CriteriaSheet:
    return CriteriaSheet(
        id=row["id"],
        name=row["name"],
        url=row["url"],
        upload_date=row["upload_date"],
    )


def row_to_lender(row: dict[str, Any], sheets: list[CriteriaSheet]) -> Lender:
    values: dict[str, Any] = {
        field: NumericRange(min=row[low], max=row[high]) for field, (low, high) in RANGE_COLUMNS.items()
    }
    values.update({field: row[column] for field, column in SCALAR_COLUMNS.items()})
    return Lender(
        id=row["id"],
        criteria_sheets=sheets,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        **values,
    )
