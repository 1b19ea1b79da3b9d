"""
Criteria sheet attachment: blob upload, metadata row, and their reversal.
A metadata insert that fails after a successful upload deletes the uploaded blob again, so
storage never keeps a file no sheet points at.
"""
from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from config import settings
from schemas.lender import CriteriaSheet, DocumentUpload
from services.blob_store import BlobStore
from services.exceptions import BlobNotFoundError, InvalidDocumentError, LenderDirectoryError, NotFoundError
from services.field_mapping import row_to_sheet
from services.record_store import RecordStore

logger = logging.getLogger(__name__)

SHEETS = "criteria_sheets"
PDF_CONTENT_TYPE = "application/pdf"


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def sanitize_filename(filename: str) -> str:
    """Keep letters, digits, dots and hyphens; everything else becomes an underscore."""
    return re.sub(r"[^a-zA-Z0-9.-]", "_", filename)


class DocumentAttachmentManager:
    def __init__(
        self,
        store: RecordStore,
        blobs: BlobStore,
        *,
        id_factory: Callable[[], str] = _uuid,
        clock: Callable[[], datetime] = _utcnow,
        max_bytes: Optional[int] = None,
        allowed_content_types: Iterable[str] = (PDF_CONTENT_TYPE,),
    ):
        self._store = store
        self._blobs = blobs
        self._id_factory = id_factory
        self._clock = clock
        self._max_bytes = max_bytes or settings.criteria_sheet_max_bytes
        self._allowed_content_types = frozenset(allowed_content_types)

    def blob_name_for(self, filename: str) -> str:
        return f"{self._id_factory()}-{sanitize_filename(filename)}"

    def validate(self, document: DocumentUpload) -> None:
        if document.content_type not in self._allowed_content_types:
            raise InvalidDocumentError(
                f"{document.filename}: content type {document.content_type!r} not accepted; "
                f"expected one of {sorted(self._allowed_content_types)}"
            )
        if not document.content:
            raise InvalidDocumentError(f"{document.filename}: file is empty")
        if len(document.content) > self._max_bytes:
            raise InvalidDocumentError(
                f"{document.filename}: {len(document.content):,} bytes exceeds limit of {self._max_bytes:,}"
            )

    async def fetch_sheets(self, lender_id: str) -> list[CriteriaSheet]:
        rows = await self._store.select(SHEETS, filters={"lender_id": lender_id}, order_by="upload_date")
        return [row_to_sheet(r) for r in rows]

    async def store_document(self, lender_id: str, name: str, document: DocumentUpload) -> str:
        """Upload the document and record it as a criteria sheet of lender_id; returns the blob name."""
        self.validate(document)
        blob_name = self.blob_name_for(document.filename)
        await self._blobs.upload(blob_name, document.content, document.content_type)
        try:
            url = self._blobs.public_url(blob_name)
            await self._store.insert(
                SHEETS,
                {"lender_id": lender_id, "name": name, "url": url, "upload_date": self._clock()},
            )
        except Exception:
            logger.error("Criteria sheet %r for lender %s not recorded; removing blob %s", name, lender_id, blob_name)
            await self._discard_blob(blob_name)
            raise
        logger.info("Attached criteria sheet %r to lender %s as %s", name, lender_id, blob_name)
        return blob_name

    async def attach(self, lender_id: str, name: str, document: DocumentUpload) -> list[CriteriaSheet]:
        """Store the document as a criteria sheet of lender_id; returns the lender's sheets as now stored."""
        await self.store_document(lender_id, name, document)
        return await self.fetch_sheets(lender_id)

    async def detach(self, sheet_id: str, *, lender_id: Optional[str] = None) -> None:
        row = await self._store.select_one(SHEETS, sheet_id)
        if lender_id is not None and row["lender_id"] != lender_id:
            raise NotFoundError(SHEETS, sheet_id)
        if row.get("url"):
            await self._delete_blob_if_present(BlobStore.name_from_url(row["url"]))
        await self._store.delete(SHEETS, sheet_id)
        logger.info("Detached criteria sheet %s from lender %s", sheet_id, row["lender_id"])

    async def purge_blobs(self, lender_id: str) -> int:
        """Delete the stored file of every sheet of lender_id. Metadata rows are left to the caller."""
        rows = await self._store.select(SHEETS, filters={"lender_id": lender_id})
        for row in rows:
            if row.get("url"):
                await self._delete_blob_if_present(BlobStore.name_from_url(row["url"]))
        return len(rows)

    async def _delete_blob_if_present(self, blob_name: str) -> None:
        try:
            await self._blobs.delete(blob_name)
        except BlobNotFoundError:
            logger.warning("Blob %s already missing from storage", blob_name)

    async def _discard_blob(self, blob_name: str) -> None:
        try:
            await self._delete_blob_if_present(blob_name)
        except LenderDirectoryError:
            logger.exception("Could not remove orphaned blob %s", blob_name)
