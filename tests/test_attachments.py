import unittest

from fakes import Clock, InMemoryBlobStore, InMemoryRecordStore, make_create, pdf
from services.attachments import DocumentAttachmentManager, sanitize_filename
from services.blob_store import BlobStore
from services.exceptions import InvalidDocumentError, NotFoundError, StoreUnavailableError
from services.field_mapping import lender_to_row


class TestSanitizeFilename(unittest.TestCase):
    def test_replaces_unsafe_characters(self):
        """Anything but letters, digits, dots and hyphens becomes an underscore."""
        self.assertEqual(sanitize_filename("Rate card (2025) v2.pdf"), "Rate_card__2025__v2.pdf")
        self.assertEqual(sanitize_filename("../../etc/passwd"), ".._.._etc_passwd")
        self.assertEqual(sanitize_filename("plain-name.pdf"), "plain-name.pdf")

    def test_name_from_url(self):
        """Blob name is the unquoted last path segment of its URL."""
        self.assertEqual(BlobStore.name_from_url("https://cdn.example.com/sheets/abc-file%201.pdf"), "abc-file 1.pdf")
        self.assertEqual(BlobStore.name_from_url("abc.pdf"), "abc.pdf")


class TestDocumentAttachmentManager(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.clock = Clock()
        self.store = InMemoryRecordStore(clock=self.clock)
        self.blobs = InMemoryBlobStore()
        self.ids = iter(f"id{i}" for i in range(100))
        self.manager = DocumentAttachmentManager(
            self.store, self.blobs, id_factory=lambda: next(self.ids), clock=self.clock, max_bytes=1024
        )
        row = await self.store.insert("lenders", lender_to_row(make_create()))
        self.lender_id = row["id"]

    async def test_attach_uploads_and_records(self):
        """Attach -> blob stored under a sanitized name and one sheet row pointing at it."""
        sheets = await self.manager.attach(self.lender_id, "Criteria", pdf("My Criteria.pdf"))
        self.assertEqual(list(self.blobs.blobs), ["id0-My_Criteria.pdf"])
        self.assertEqual(len(sheets), 1)
        self.assertEqual(sheets[0].name, "Criteria")
        self.assertEqual(sheets[0].url, "https://files.example.com/criteria-sheets/id0-My_Criteria.pdf")

    async def test_sheets_ordered_by_upload_date(self):
        """Sheets come back oldest upload first."""
        await self.manager.attach(self.lender_id, "First", pdf())
        sheets = await self.manager.attach(self.lender_id, "Second", pdf())
        self.assertEqual([s.name for s in sheets], ["First", "Second"])

    async def test_insert_failure_removes_uploaded_blob(self):
        """Sheet row insert fails -> uploaded blob deleted again, no row left."""
        self.store.fail_on("insert", "criteria_sheets")
        with self.assertLogs("services.attachments", level="ERROR"):
            with self.assertRaises(StoreUnavailableError):
                await self.manager.attach(self.lender_id, "Doc", pdf())
        self.assertEqual(self.blobs.blobs, {})
        self.assertEqual(self.store.tables["criteria_sheets"], {})

    async def test_upload_failure_writes_no_row(self):
        """Blob upload fails -> no sheet row is written."""
        self.blobs.upload_error = StoreUnavailableError("bucket offline")
        with self.assertRaises(StoreUnavailableError):
            await self.manager.attach(self.lender_id, "Doc", pdf())
        self.assertNotIn(("insert", "criteria_sheets"), self.store.calls)

    async def test_rollback_failure_keeps_original_error(self):
        """Blob removal also fails -> original store error raised, orphan logged."""
        self.store.fail_on("insert", "criteria_sheets")
        self.blobs.delete_error = StoreUnavailableError("cannot delete")
        with self.assertLogs("services.attachments", level="ERROR") as logs:
            with self.assertRaises(StoreUnavailableError) as ctx:
                await self.manager.attach(self.lender_id, "Doc", pdf())
        self.assertEqual(str(ctx.exception), "backend down")
        self.assertTrue(any("orphaned blob" in line for line in logs.output))

    async def test_validation(self):
        """Empty, oversized or non-PDF documents -> InvalidDocumentError; exactly max size is accepted."""
        with self.assertRaises(InvalidDocumentError):
            self.manager.validate(pdf(content=b""))
        with self.assertRaises(InvalidDocumentError):
            self.manager.validate(pdf(content=b"x" * 1025))
        doc = pdf()
        doc.content_type = "image/png"
        with self.assertRaises(InvalidDocumentError):
            self.manager.validate(doc)
        self.manager.validate(pdf(content=b"x" * 1024))

    async def test_detach_removes_blob_and_row(self):
        """Detach -> blob and sheet row both removed."""
        sheets = await self.manager.attach(self.lender_id, "Doc", pdf())
        await self.manager.detach(sheets[0].id, lender_id=self.lender_id)
        self.assertEqual(self.blobs.blobs, {})
        self.assertEqual(await self.manager.fetch_sheets(self.lender_id), [])

    async def test_detach_tolerates_missing_blob(self):
        """Blob already gone -> warning logged, sheet row still removed."""
        sheets = await self.manager.attach(self.lender_id, "Doc", pdf())
        self.blobs.blobs.clear()
        with self.assertLogs("services.attachments", level="WARNING"):
            await self.manager.detach(sheets[0].id)
        self.assertEqual(self.store.tables["criteria_sheets"], {})

    async def test_detach_unknown_sheet(self):
        """Detach of a missing sheet -> NotFoundError."""
        with self.assertRaises(NotFoundError):
            await self.manager.detach("nope")

    async def test_purge_blobs_leaves_rows(self):
        """Purge deletes every blob of the lender and reports the count, rows untouched."""
        await self.manager.attach(self.lender_id, "A", pdf())
        await self.manager.attach(self.lender_id, "B", pdf())
        self.assertEqual(await self.manager.purge_blobs(self.lender_id), 2)
        self.assertEqual(self.blobs.blobs, {})
        self.assertEqual(len(self.store.tables["criteria_sheets"]), 2)


if __name__ == "__main__":
    unittest.main()
