"""FastAPI service for the scope-of-work wizard."""

from __future__ import annotations

import io
import os
from typing import Any, Dict, Optional

from fastapi import (
    Body,
    Depends,
    FastAPI,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
)
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse, StreamingResponse

from scope_calculator.export.summary_pdf import summary_filename
from scope_calculator.models.claim import ClaimRecord, Customer, Signature
from scope_calculator.utils.errors import ErrorType, ExtractionError, ScopeProcessingError
from scope_calculator.workflow import ScopeWizard, get_wizard, review_payload


APP_TITLE = "Scope Calculator"

STATUS_BY_ERROR_TYPE = {
    ErrorType.UPSTREAM_RATE_LIMIT: 429,
    ErrorType.UPSTREAM_TIMEOUT: 503,
    ErrorType.UPSTREAM_AUTH_ERROR: 503,
    ErrorType.UPSTREAM_INVALID_REQUEST: 503,
    ErrorType.UPSTREAM_SERVICE_ERROR: 503,
    ErrorType.MALFORMED_EXTRACTION: 422,
    ErrorType.INVALID_SHAPE: 422,
    ErrorType.PDF_EXTRACTION_FAILED: 422,
    ErrorType.SCANNED_DOCUMENT: 422,
    ErrorType.REVIEW_ACTION_INVALID: 400,
    ErrorType.RECORD_FINALIZED: 409,
    ErrorType.EXPORT_FAILED: 500,
    ErrorType.DELIVERY_FAILED: 502,
}


app = FastAPI(title=APP_TITLE)


@app.exception_handler(ScopeProcessingError)
async def scope_error_handler(request: Request, exc: ScopeProcessingError) -> JSONResponse:
    context = exc.context
    payload: Dict[str, Any] = {
        "error": context.message,
        "errorType": context.error_type.value,
        "recoverable": context.recoverable,
        "fallbackAction": context.fallback_action,
    }
    if isinstance(exc, ExtractionError):
        # Malformed and invalid-shape replies look the same to the user.
        payload["error"] = ExtractionError.USER_MESSAGE
        payload["preview"] = exc.preview
    status_code = STATUS_BY_ERROR_TYPE.get(context.error_type, 500)
    return JSONResponse(jsonable_encoder(payload), status_code=status_code)


def _customer_from_form(
    name: Optional[str],
    address: Optional[str],
    jnid: Optional[str],
) -> Optional[Customer]:
    if not (name or jnid):
        return None
    return Customer(display_name=name or "", address=address or "", jnid=jnid or "")


def _require_record(wizard: ScopeWizard, session_id: str) -> ClaimRecord:
    record = wizard.load_record(session_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No scope data for this session.")
    return record


def _read_upload(file: UploadFile, wizard: ScopeWizard) -> bytes:
    data = file.file.read()
    if not data:
        raise HTTPException(status_code=400, detail=f"{file.filename} is empty.")

    limits = wizard.config.uploads
    if len(data) > limits.max_file_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=400,
            detail=f"{file.filename} exceeds the per-file limit of {limits.max_file_size_mb} MB.",
        )

    extension = os.path.splitext(file.filename or "")[1].lstrip(".").lower()
    if extension not in limits.allowed_types:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{extension or 'unknown'}'.",
        )
    return data


@app.get("/")
async def index() -> RedirectResponse:
    return RedirectResponse(url="/upload", status_code=303)


@app.get("/upload")
async def upload_page(wizard: ScopeWizard = Depends(get_wizard)) -> JSONResponse:
    return JSONResponse(wizard.new_session())


@app.post("/api/sessions/{session_id}/parse-text")
async def parse_text(
    session_id: str,
    text: str = Form(""),
    rep: str = Form(""),
    customer_name: Optional[str] = Form(None),
    customer_address: Optional[str] = Form(None),
    customer_jnid: Optional[str] = Form(None),
    wizard: ScopeWizard = Depends(get_wizard),
) -> JSONResponse:
    if not text.strip():
        raise HTTPException(status_code=400, detail="Please paste the scope text to parse.")
    customer = _customer_from_form(customer_name, customer_address, customer_jnid)
    payload = await wizard.parse_text(session_id, text, rep=rep, customer=customer)
    return JSONResponse(jsonable_encoder(payload))


@app.post("/api/sessions/{session_id}/process-document")
async def process_document(
    session_id: str,
    file: UploadFile = File(...),
    rep: str = Form(""),
    customer_name: Optional[str] = Form(None),
    customer_address: Optional[str] = Form(None),
    customer_jnid: Optional[str] = Form(None),
    wizard: ScopeWizard = Depends(get_wizard),
) -> JSONResponse:
    data = _read_upload(file, wizard)
    customer = _customer_from_form(customer_name, customer_address, customer_jnid)
    payload = await wizard.process_document(
        session_id, file.filename or "document", data, rep=rep, customer=customer
    )
    return JSONResponse(jsonable_encoder(payload))


@app.post("/api/sessions/{session_id}/extract-text")
async def extract_text(
    session_id: str,
    file: UploadFile = File(...),
    wizard: ScopeWizard = Depends(get_wizard),
) -> JSONResponse:
    data = _read_upload(file, wizard)
    filename = file.filename or "document.pdf"
    if not filename.lower().endswith(".pdf"):
        raise HTTPException(
            status_code=400,
            detail="Text can only be extracted from PDFs. Upload images for AI processing instead.",
        )
    return JSONResponse(wizard.extract_text(session_id, filename, data))


@app.get("/review/{session_id}")
async def review_page(session_id: str, wizard: ScopeWizard = Depends(get_wizard)):
    record = wizard.load_record(session_id)
    if record is None:
        return RedirectResponse(url="/upload", status_code=303)
    return JSONResponse(jsonable_encoder(review_payload(record)))


@app.post("/api/sessions/{session_id}/actions")
async def review_action(
    session_id: str,
    action: Dict[str, Any] = Body(...),
    wizard: ScopeWizard = Depends(get_wizard),
) -> JSONResponse:
    record = _require_record(wizard, session_id)
    return JSONResponse(jsonable_encoder(wizard.apply_action(session_id, record, action)))


@app.post("/api/sessions/{session_id}/finalize")
async def finalize(
    session_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    wizard: ScopeWizard = Depends(get_wizard),
) -> JSONResponse:
    record = _require_record(wizard, session_id)
    body = body or {}
    signature = Signature.from_dict(body.get("signature"))
    payload = wizard.finalize(session_id, record, rep=body.get("rep"), signature=signature)
    return JSONResponse(jsonable_encoder(payload))


@app.get("/summary/{session_id}")
async def summary_page(session_id: str, wizard: ScopeWizard = Depends(get_wizard)):
    record = wizard.load_record(session_id)
    if record is None:
        return RedirectResponse(url="/upload", status_code=303)
    payload = review_payload(record)
    payload["filename"] = summary_filename(record)
    return JSONResponse(jsonable_encoder(payload))


@app.get("/api/sessions/{session_id}/summary.pdf")
async def download_summary(
    session_id: str,
    wizard: ScopeWizard = Depends(get_wizard),
) -> StreamingResponse:
    record = _require_record(wizard, session_id)
    pdf_bytes, filename = wizard.export_pdf(session_id, record)
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/sessions/{session_id}/send")
async def send_summary(
    session_id: str,
    wizard: ScopeWizard = Depends(get_wizard),
) -> JSONResponse:
    record = _require_record(wizard, session_id)
    result = await wizard.send(session_id, record)
    return JSONResponse(jsonable_encoder(result))


@app.delete("/api/sessions/{session_id}")
async def start_over(
    session_id: str,
    wizard: ScopeWizard = Depends(get_wizard),
) -> JSONResponse:
    wizard.start_over(session_id)
    return JSONResponse({"status": "ok"})


@app.get("/healthz")
async def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "server:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").lower(),
    )
