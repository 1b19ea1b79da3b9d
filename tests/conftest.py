import os
import tempfile

# Must be set before config is imported anywhere: Settings is read once at import.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BLOB_STORAGE_DIR", tempfile.mkdtemp(prefix="criteria-sheets-"))
os.environ.setdefault("STORE_RETRY_BACKOFF_SECONDS", "0")
