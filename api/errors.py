from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from services.exceptions import (
    ConstraintViolationError,
    InvalidDocumentError,
    InvalidLenderError,
    LenderDirectoryError,
    NotFoundError,
    PartialFailureError,
    StoreUnavailableError,
)

STATUS_BY_ERROR: dict[type[LenderDirectoryError], int] = {
    NotFoundError: 404,
    ConstraintViolationError: 409,
    InvalidLenderError: 400,
    InvalidDocumentError: 400,
    PartialFailureError: 502,
    StoreUnavailableError: 503,
}


async def _directory_error_handler(request: Request, exc: LenderDirectoryError) -> JSONResponse:
    status_code = next((s for cls, s in STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500)
    content: dict = {"detail": str(exc)}
    if isinstance(exc, PartialFailureError):
        content["lenderId"] = exc.lender_id
        content["failedCriteriaSheets"] = exc.failed_names
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    for error_cls in STATUS_BY_ERROR:
        app.add_exception_handler(error_cls, _directory_error_handler)
