"""
Authoring API: create, edit, publish and inspect forms.

Every endpoint is scoped by the `user_id` query parameter.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_session
from models.base import FormCreateModel, ContentUpdateModel
from models.fields import MalformedContentError, parse_content, validate_content, dump_content
from routers.embed import public_base_url
from services.embed_bundle import embed_code
from services.field_registry import get_contract, palette
from services.forms_service_async import AsyncFormsService
from services.styles import build_stylesheet
from services.submissions_service import AsyncSubmissionsService

logger = logging.getLogger("backend.forms")

router = APIRouter(prefix="/api/forms", tags=["forms"])


async def _owned_form(session: AsyncSession, form_id: str, user_id: str):
    form = await AsyncFormsService.get_form_by_id(session, form_id, user_id)
    if not form:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    return form


def _content_error(e: MalformedContentError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": str(e), "errors": e.errors},
    )


def _with_content(form):
    """Form dict with its content document parsed for the response."""
    try:
        content = [f.to_json() for f in parse_content(form["content"])]
    except MalformedContentError as e:
        logger.warning("Stored content for form %s is malformed: %s", form["id"], e)
        raise _content_error(e)
    return {**form, "content": content}


@router.get("/field-types")
async def get_field_types():
    """Designer palette with each type's default attributes"""
    return {"fieldTypes": palette()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_form(
    form_data: FormCreateModel,
    user_id: str,
    session: AsyncSession = Depends(get_session),
):
    """Create an empty form. A duplicate name gets a " (n)" suffix."""
    form = await AsyncFormsService.create_form(
        session, user_id, form_data.name, form_data.description, form_data.theme
    )
    return _with_content(form)


@router.get("")
async def get_forms(
    user_id: str,
    limit: int = 100,
    offset: int = 0,
    session: AsyncSession = Depends(get_session),
):
    """Get forms for a user with pagination"""
    forms = await AsyncFormsService.get_forms_by_user(session, user_id, limit, offset)
    # Listing omits the content documents
    return {"forms": [{k: v for k, v in f.items() if k != "content"} for f in forms]}


@router.get("/stats")
async def get_form_stats(user_id: str, session: AsyncSession = Depends(get_session)):
    return await AsyncFormsService.get_form_stats(session, user_id)


@router.get("/{form_id}")
async def get_form(form_id: str, user_id: str, session: AsyncSession = Depends(get_session)):
    """Get a form by ID (must belong to the provided user_id)."""
    form = await _owned_form(session, form_id, user_id)
    return _with_content(form)


@router.put("/{form_id}/content")
async def update_form_content(
    form_id: str,
    payload: ContentUpdateModel,
    user_id: str,
    session: AsyncSession = Depends(get_session),
):
    """Replace the content document. Published forms are frozen."""
    form = await _owned_form(session, form_id, user_id)
    if form["published"]:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Published forms cannot be edited")

    try:
        fields = validate_content(parse_content(payload.content))
    except MalformedContentError as e:
        raise _content_error(e)

    updated = await AsyncFormsService.update_form_content(
        session, form_id, user_id, dump_content(fields), payload.theme
    )
    if not updated:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Published forms cannot be edited")
    return _with_content(await AsyncFormsService.get_form_by_id(session, form_id, user_id))


@router.post("/{form_id}/publish")
async def publish_form(form_id: str, user_id: str, session: AsyncSession = Depends(get_session)):
    """Validate the content document, then publish. Publishing is idempotent."""
    form = await _owned_form(session, form_id, user_id)
    try:
        validate_content(parse_content(form["content"]))
    except MalformedContentError as e:
        raise _content_error(e)
    if not form["published"]:
        await AsyncFormsService.publish_form(session, form_id, user_id)
    return _with_content(await AsyncFormsService.get_form_by_id(session, form_id, user_id))


@router.delete("/{form_id}")
async def delete_form(form_id: str, user_id: str, session: AsyncSession = Depends(get_session)):
    deleted = await AsyncFormsService.delete_form(session, form_id, user_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found")
    return {"success": True}


@router.get("/{form_id}/embed-code")
async def get_embed_code(form_id: str, user_id: str, request: Request, session: AsyncSession = Depends(get_session)):
    """Snippet a host page pastes to render the form."""
    form = await _owned_form(session, form_id, user_id)
    if not form["published"]:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Form must be published before embedding")
    return embed_code(form_id, public_base_url(request))


@router.get("/{form_id}/submissions")
async def get_form_submissions(
    form_id: str,
    user_id: str,
    limit: int = 100,
    offset: int = 0,
    session: AsyncSession = Depends(get_session),
):
    await _owned_form(session, form_id, user_id)
    submissions = await AsyncSubmissionsService.get_form_submissions(session, form_id, limit, offset)
    return {"submissions": submissions}


@router.get("/{form_id}/preview", response_class=HTMLResponse)
async def preview_form(form_id: str, user_id: str, session: AsyncSession = Depends(get_session)):
    """Read-only designer preview of every field"""
    form = await _owned_form(session, form_id, user_id)
    try:
        fields = validate_content(parse_content(form["content"]))
    except MalformedContentError as e:
        raise _content_error(e)
    body = "\n".join(get_contract(f.type).designer_html(f) for f in fields)
    html = f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>Preview</title>
  <style>{build_stylesheet(form["theme"])}</style>
</head>
<body>
<div class="quick-form">
{body}
</div>
</body>
</html>"""
    return HTMLResponse(content=html)
