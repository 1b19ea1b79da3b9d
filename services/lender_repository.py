"""
Owns the in-memory lender list and keeps it in step with the record store.

Every mutation is resolved by reading back from the store (the whole list after a create, the
one record after an update or attachment) rather than by patching the cache with what was sent.
Mutations are serialized with an asyncio.Lock because request handlers interleave at await points.
A mutation that fails after part of it was persisted re-reads the affected lender before raising;
if even that fails the cache is flagged stale and reloaded on the next ensure_fresh().
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from pydantic import ValidationError

from config import settings
from schemas.lender import DocumentUpload, Lender, LenderBase, LenderCreate, LenderUpdate, PendingCriteriaSheet
from services.attachments import DocumentAttachmentManager
from services.exceptions import InvalidLenderError, LenderDirectoryError, NotFoundError, PartialFailureError
from services.field_mapping import CLEARABLE_FIELDS, RANGE_COLUMNS, lender_to_row, patch_to_row, row_to_lender
from services.filter_engine import sort_by_name
from services.record_store import RecordStore

logger = logging.getLogger(__name__)

LENDERS = "lenders"
SHEETS = "criteria_sheets"
FAVORITES = "favorites"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LenderRepository:
    def __init__(
        self,
        store: RecordStore,
        attachments: DocumentAttachmentManager,
        *,
        clock: Callable[[], datetime] = _utcnow,
        interest_treatments: Optional[Iterable[str]] = None,
    ):
        self._store = store
        self._attachments = attachments
        self._clock = clock
        self._interest_treatments = frozenset(
            settings.interest_treatments if interest_treatments is None else interest_treatments
        )
        self._lenders: tuple[Lender, ...] = ()
        self._stale = False
        self._lock = asyncio.Lock()

    @property
    def lenders(self) -> tuple[Lender, ...]:
        """Read-only snapshot of the cached list, sorted by name."""
        return self._lenders

    @property
    def stale(self) -> bool:
        """True when a failed mutation could not be re-read; the next ensure_fresh() reloads."""
        return self._stale

    def get_by_id(self, lender_id: str) -> Optional[Lender]:
        return next((l for l in self._lenders if l.id == lender_id), None)

    # ---- reads ----

    async def refresh(self) -> tuple[Lender, ...]:
        async with self._lock:
            self._lenders = await self._load_all()
            self._stale = False
        logger.info("Loaded %d lenders", len(self._lenders))
        return self._lenders

    async def ensure_fresh(self) -> tuple[Lender, ...]:
        if self._stale:
            return await self.refresh()
        return self._lenders

    async def list_all(self) -> list[Lender]:
        return list(await self.refresh())

    async def _load_all(self) -> tuple[Lender, ...]:
        rows = await self._store.select(LENDERS, order_by="name")
        sheet_results = await asyncio.gather(
            *(self._attachments.fetch_sheets(row["id"]) for row in rows),
            return_exceptions=True,
        )
        lenders: list[Lender] = []
        for row, sheets in zip(rows, sheet_results):
            if isinstance(sheets, BaseException):
                if not isinstance(sheets, Exception):
                    raise sheets
                logger.error(
                    "Could not load criteria sheets for lender %s; listing it without sheets: %s",
                    row.get("id"),
                    sheets,
                    exc_info=sheets,
                )
                sheets = []
            lender = self._build(row, sheets)
            if lender is not None:
                lenders.append(lender)
        return tuple(sort_by_name(lenders))

    async def _fetch_one(self, lender_id: str) -> Lender:
        row = await self._store.select_one(LENDERS, lender_id)
        sheets = await self._attachments.fetch_sheets(lender_id)
        return row_to_lender(row, sheets)

    @staticmethod
    def _build(row: dict[str, Any], sheets: list) -> Optional[Lender]:
        try:
            lender = row_to_lender(row, sheets)
        except ValidationError as e:
            logger.error("Skipping lender %s: stored row is not a valid lender: %s", row.get("id"), e)
            return None
        if not lender.loan_types or not lender.covered_location:
            # Written by something other than this service; still shown so the cache mirrors the store
            logger.warning("Lender %s (%s) has no loan types or no covered locations", lender.id, lender.name)
        return lender

    def _splice(self, lender: Lender) -> None:
        lenders = list(self._lenders)
        for i, existing in enumerate(lenders):
            if existing.id == lender.id:
                lenders[i] = lender
                break
        else:
            lenders.append(lender)
        self._lenders = tuple(sort_by_name(lenders))

    def _drop(self, lender_id: str) -> None:
        self._lenders = tuple(l for l in self._lenders if l.id != lender_id)

    async def _resync(self, lender_id: str) -> None:
        """
        Re-read one lender after a mutation failed part way, so the cache shows what was
        actually persisted. If that read fails too, reloads what it can and flags the cache
        stale so the next ensure_fresh() reads the store again. Caller holds the lock.
        """
        try:
            self._splice(await self._fetch_one(lender_id))
            return
        except NotFoundError:
            self._drop(lender_id)
            return
        except (LenderDirectoryError, ValidationError) as e:
            logger.warning("Could not re-read lender %s after a failed write: %s", lender_id, e)
        self._stale = True
        try:
            self._lenders = await self._load_all()
        except LenderDirectoryError:
            logger.exception("Could not reload lenders after failed write to %s; cache is stale", lender_id)

    def _require(self, lender_id: str) -> Lender:
        lender = self.get_by_id(lender_id)
        if lender is None:
            raise NotFoundError(LENDERS, lender_id)
        return lender

    # ---- validation ----

    def _check_fields(self, values: dict[str, Any]) -> None:
        problems: list[str] = []
        for field, value in values.items():
            if value is None and field not in CLEARABLE_FIELDS:
                problems.append(f"{field} cannot be cleared")
        if "name" in values and values["name"] is not None and not values["name"].strip():
            problems.append("name is required")
        if "loan_types" in values and not values["loan_types"]:
            problems.append("at least one loan type is required")
        if "covered_location" in values and not values["covered_location"]:
            problems.append("at least one covered location is required")
        for field in RANGE_COLUMNS:
            bounds = values.get(field)
            if bounds is not None and bounds.min > bounds.max:
                problems.append(f"{field}: minimum {bounds.min:g} exceeds maximum {bounds.max:g}")
        treatment = values.get("interest_treatment")
        if treatment is not None and self._interest_treatments and treatment not in self._interest_treatments:
            problems.append(f"interest treatment {treatment!r} is not recognised")
        if problems:
            raise InvalidLenderError("; ".join(problems))

    def _check_documents(self, pending: list[PendingCriteriaSheet]) -> None:
        for sheet in pending:
            self._attachments.validate(sheet.document)

    # ---- mutations ----

    async def _upload_pending(
        self, lender_id: str, pending: list[PendingCriteriaSheet]
    ) -> list[tuple[str, BaseException]]:
        if not pending:
            return []
        results = await asyncio.gather(
            *(self._attachments.store_document(lender_id, p.name, p.document) for p in pending),
            return_exceptions=True,
        )
        failures: list[tuple[str, BaseException]] = []
        for sheet, result in zip(pending, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(
                    "Criteria sheet %r for lender %s failed: %s", sheet.name, lender_id, result, exc_info=result
                )
                failures.append((sheet.name, result))
        return failures

    async def create(self, data: LenderCreate) -> Lender:
        """
        Insert a lender, upload its pending criteria sheets, then reload the whole list.
        Raises PartialFailureError (after the reload) if any sheet could not be stored.
        """
        self._check_fields({field: getattr(data, field) for field in LenderBase.model_fields})
        self._check_documents(data.criteria_sheets)
        async with self._lock:
            row = await self._store.insert(LENDERS, lender_to_row(data))
            lender_id = row["id"]
            logger.info("Created lender %s (%s)", lender_id, data.name)
            try:
                failures = await self._upload_pending(lender_id, data.criteria_sheets)
                self._lenders = await self._load_all()
            except Exception:
                await self._resync(lender_id)
                raise
        if failures:
            raise PartialFailureError(lender_id, failures)
        return self._require(lender_id)

    async def update(self, lender_id: str, patch: LenderUpdate) -> Lender:
        """Apply only the fields set on patch, then refetch that lender and splice it into the list."""
        changed = patch.model_fields_set - {"criteria_sheets"}
        self._check_fields({field: getattr(patch, field) for field in changed})
        pending = patch.criteria_sheets or []
        self._check_documents(pending)
        row = patch_to_row(patch)
        row["updated_at"] = self._clock()
        async with self._lock:
            try:
                await self._store.update(LENDERS, lender_id, row)
                failures = await self._upload_pending(lender_id, pending)
                lender = await self._fetch_one(lender_id)
            except Exception:
                await self._resync(lender_id)
                raise
            self._splice(lender)
        logger.info("Updated lender %s (%s)", lender_id, ", ".join(sorted(changed)) or "no field changes")
        if failures:
            raise PartialFailureError(lender_id, failures)
        return lender

    async def delete(self, lender_id: str) -> None:
        """Remove the lender's files, its sheet and favourite rows, then the lender itself."""
        async with self._lock:
            await self._store.select_one(LENDERS, lender_id)
            try:
                purged = await self._attachments.purge_blobs(lender_id)
                await self._store.delete_where(SHEETS, {"lender_id": lender_id})
                await self._store.delete_where(FAVORITES, {"lender_id": lender_id})
                await self._store.delete(LENDERS, lender_id)
            except Exception:
                await self._resync(lender_id)
                raise
            self._drop(lender_id)
        logger.info("Deleted lender %s and %d criteria sheet(s)", lender_id, purged)

    async def attach_document(self, lender_id: str, name: str, document: DocumentUpload) -> Lender:
        async with self._lock:
            current = self._require(lender_id)
            try:
                sheets = await self._attachments.attach(lender_id, name, document)
            except Exception:
                await self._resync(lender_id)
                raise
            lender = current.model_copy(update={"criteria_sheets": sheets})
            self._splice(lender)
        return lender

    async def detach_document(self, lender_id: str, sheet_id: str) -> Lender:
        async with self._lock:
            current = self._require(lender_id)
            try:
                await self._attachments.detach(sheet_id, lender_id=lender_id)
            except Exception:
                await self._resync(lender_id)
                raise
            remaining = [s for s in current.criteria_sheets if s.id != sheet_id]
            lender = current.model_copy(update={"criteria_sheets": remaining})
            self._splice(lender)
        return lender
