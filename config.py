from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Lender Directory API"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./lender_directory.db"
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Record store retry policy (exponential backoff between attempts)
    store_retry_attempts: int = 4
    store_retry_backoff_seconds: float = 0.3

    # Criteria sheet blobs
    blob_storage_dir: str = "./storage/criteria-sheets"
    public_files_url: str = "http://localhost:3005/files"
    criteria_sheet_max_bytes: int = 10 * 1024 * 1024

    # Closed lists offered to the UI
    loan_locations: list[str] = [
        "England",
        "Scotland",
        "Wales",
        "Northern Ireland",
    ]
    interest_treatments: list[str] = [
        "Serviced",
        "Retained",
        "Rolled Up",
        "Serviced or Retained",
    ]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
