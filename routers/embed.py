"""
Embed script endpoint and the cross-origin JSON submission sink.
"""
import logging
import os

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_session
from models.fields import MalformedContentError, parse_content
from services.embed_bundle import generate_bundle
from services.forms_service_async import AsyncFormsService
from services.submissions_service import AsyncSubmissionsService
from services.validation import invalid_fields, marshal_values
from utils.limiter import limiter, SUBMIT_RATE_LIMIT

logger = logging.getLogger("backend.embed")

router = APIRouter(tags=["embed"])

NO_CACHE = "no-cache, no-store, must-revalidate"


def public_base_url(request: Request) -> str:
    """Absolute origin for generated URLs: PUBLIC_BASE_URL, else the request's own base URL."""
    configured = (os.getenv("PUBLIC_BASE_URL") or "").strip()
    return (configured or str(request.base_url)).rstrip("/")


@router.get("/api/embed/{form_id}/js")
async def embed_script(form_id: str, request: Request, session: AsyncSession = Depends(get_session)):
    """Serve the self-contained embed bundle for a published form."""
    form = await AsyncFormsService.get_published_form(session, form_id)
    if not form:
        return PlainTextResponse("Form not found or not published", status_code=status.HTTP_404_NOT_FOUND)

    submit_url = f"{public_base_url(request)}/api/submit-form/{form_id}"
    try:
        document = parse_content(form["content"])
        script = generate_bundle(form_id, document, submit_url, form["theme"])
    except MalformedContentError as e:
        logger.warning("Invalid content for form %s: %s", form_id, e)
        return PlainTextResponse("Invalid form content", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception:
        logger.exception("Error generating bundle for form %s", form_id)
        return PlainTextResponse("Error generating form bundle", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return PlainTextResponse(
        script,
        media_type="application/javascript",
        headers={"Cache-Control": NO_CACHE},
    )


@router.post("/api/submit-form/{form_id}")
@limiter.limit(SUBMIT_RATE_LIMIT)
async def submit_form(form_id: str, request: Request, session: AsyncSession = Depends(get_session)):
    """Accept a JSON submission from an embedded form."""
    form = await AsyncFormsService.get_published_form(session, form_id)
    if not form:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found or not published")

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must be JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Submission must be a JSON object")

    try:
        document = parse_content(form["content"])
    except MalformedContentError as e:
        logger.warning("Invalid content for form %s: %s", form_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Invalid form content")

    invalid = invalid_fields(document, payload)
    if invalid:
        ordered = [f.id for f in document if f.id in invalid]
        logger.info("Rejected submission for form %s: %d invalid fields", form_id, len(ordered))
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": {"invalid": ordered}})

    data = marshal_values(document, payload)
    metadata = {
        "userAgent": request.headers.get("user-agent"),
        "referer": request.headers.get("referer"),
        "origin": request.headers.get("origin"),
    }
    await AsyncSubmissionsService.create_submission(session, form_id, data, metadata)
    return {"success": True}
