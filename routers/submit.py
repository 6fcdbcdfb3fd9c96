"""
Direct submission page: /submit/{share_url}
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_session
from models.fields import MalformedContentError, parse_content
from services.forms_service_async import AsyncFormsService
from services.submission_renderer import (
    SubmissionSession, SubmitOutcome, render_form_page, render_submitted_page,
)
from services.submissions_service import AsyncSubmissionsService
from utils.limiter import limiter, SUBMIT_RATE_LIMIT

logger = logging.getLogger("backend.submit")

router = APIRouter(tags=["submit"])

# Image fields carry their encoded data URL in a text part across re-renders
MAX_FORM_PART_BYTES = 30 * 1024 * 1024


async def _load_form(session: AsyncSession, share_url: str):
    form = await AsyncFormsService.get_form_by_share_url(session, share_url)
    if not form:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    try:
        document = parse_content(form["content"])
    except MalformedContentError as e:
        logger.warning("Invalid content for form %s: %s", form["id"], e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Invalid form content")
    return form, document


@router.get("/submit/{share_url}", response_class=HTMLResponse)
async def submission_page(share_url: str, request: Request, session: AsyncSession = Depends(get_session)):
    form, document = await _load_form(session, share_url)
    await AsyncFormsService.increment_visits(session, form["id"])
    html = render_form_page(
        form["name"],
        document,
        theme_name=form["theme"],
        action=request.url.path,
    )
    return HTMLResponse(content=html)


@router.post("/submit/{share_url}", response_class=HTMLResponse)
@limiter.limit(SUBMIT_RATE_LIMIT)
async def submit_page(share_url: str, request: Request, session: AsyncSession = Depends(get_session)):
    form, document = await _load_form(session, share_url)
    form_data = await request.form(max_part_size=MAX_FORM_PART_BYTES)

    metadata = {
        "userAgent": request.headers.get("user-agent"),
        "referer": request.headers.get("referer"),
        "origin": request.headers.get("origin"),
    }

    async def sink(data):
        try:
            await AsyncSubmissionsService.create_submission(session, form["id"], data, metadata)
        except Exception:
            await session.rollback()
            raise

    submission = SubmissionSession(document, sink)
    try:
        await submission.capture(form_data)
        outcome = await submission.submit()
    finally:
        await form_data.close()

    if outcome is SubmitOutcome.SUBMITTED:
        return HTMLResponse(content=render_submitted_page(form["theme"]))

    status_code = (
        status.HTTP_422_UNPROCESSABLE_ENTITY if outcome is SubmitOutcome.INVALID
        else status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    html = render_form_page(
        form["name"],
        document,
        values=submission.values,
        errors=submission.errors,
        theme_name=form["theme"],
        action=request.url.path,
        failed=submission.failed,
    )
    return HTMLResponse(content=html, status_code=status_code)
