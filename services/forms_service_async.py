"""
Async Forms service module for form persistence
"""

import uuid
import logging
from typing import Dict, Any, List, Optional
from sqlalchemy import text, Integer, String, bindparam
from sqlalchemy.ext.asyncio import AsyncSession

from utils.data_normalization import normalize_db_row

logger = logging.getLogger("backend.forms")

_FORM_COLUMNS = """
    id, user_id, name, description, theme, content, published, share_url,
    visits, submissions, created_at, updated_at
"""


def _to_form(row) -> Optional[Dict[str, Any]]:
    """Map a forms row to the camelCase shape the API returns.

    `content` stays the raw persisted text; callers parse it.
    """
    if row is None:
        return None
    data = normalize_db_row(dict(row), bool_fields=["published"])
    return {
        "id": data.get("id"),
        "userId": data.get("user_id"),
        "name": data.get("name"),
        "description": data.get("description") or "",
        "theme": data.get("theme") or "default",
        "content": data.get("content") or "[]",
        "published": data.get("published", False),
        "shareUrl": data.get("share_url"),
        "visits": data.get("visits") or 0,
        "submissions": data.get("submissions") or 0,
        "createdAt": data.get("created_at"),
        "updatedAt": data.get("updated_at"),
    }


class AsyncFormsService:
    """Async service for handling form operations"""

    @staticmethod
    async def unique_form_name(session: AsyncSession, user_id: str, name: str) -> str:
        """Return `name`, or `name (n)` with the smallest n not taken by this user"""
        query = text(
            "SELECT name FROM forms WHERE user_id = :user_id AND (name = :name OR name LIKE :pattern)"
        )
        result = await session.execute(query, {"user_id": user_id, "name": name, "pattern": f"{name} (%)"})
        taken = {row["name"] for row in result.mappings().all()}
        if name not in taken:
            return name
        n = 1
        while f"{name} ({n})" in taken:
            n += 1
        return f"{name} ({n})"

    @staticmethod
    async def create_form(
        session: AsyncSession,
        user_id: str,
        name: str,
        description: str = "",
        theme: str = "default",
    ) -> Dict[str, Any]:
        """Create an empty, unpublished form"""
        form_id = str(uuid.uuid4())
        unique_name = await AsyncFormsService.unique_form_name(session, user_id, name)
        await session.execute(
            text(
                """
                INSERT INTO forms (id, user_id, name, description, theme, content, published, share_url, visits, submissions)
                VALUES (:id, :user_id, :name, :description, :theme, '[]', FALSE, :share_url, 0, 0)
                """
            ),
            {
                "id": form_id,
                "user_id": user_id,
                "name": unique_name,
                "description": description or "",
                "theme": theme,
                "share_url": str(uuid.uuid4()),
            },
        )
        logger.info("Created form %s for user %s", form_id, user_id)
        return await AsyncFormsService.get_form_by_id(session, form_id)

    @staticmethod
    async def get_forms_by_user(session: AsyncSession, user_id: str, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        """Get forms for a specific user, newest first"""
        safe_limit = int(limit) if isinstance(limit, int) else 100
        safe_offset = max(0, int(offset) if isinstance(offset, int) else 0)
        query = (
            text(
                f"""
                SELECT {_FORM_COLUMNS} FROM forms
                WHERE user_id = :user_id
                ORDER BY created_at DESC
                LIMIT :limit_val OFFSET :offset_val
                """
            )
            .bindparams(
                bindparam("user_id", type_=String),
                bindparam("limit_val", type_=Integer),
                bindparam("offset_val", type_=Integer),
            )
        )
        result = await session.execute(
            query,
            {"user_id": user_id, "limit_val": safe_limit, "offset_val": safe_offset},
        )
        return [_to_form(row) for row in result.mappings().all()]

    @staticmethod
    async def get_form_by_id(session: AsyncSession, form_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Get a form by ID, optionally checking user ownership"""
        query_text = f"SELECT {_FORM_COLUMNS} FROM forms WHERE id = :form_id"
        params = {"form_id": form_id}

        if user_id:
            query_text += " AND user_id = :user_id"
            params["user_id"] = user_id

        result = await session.execute(text(query_text), params)
        return _to_form(result.mappings().first())

    @staticmethod
    async def get_published_form(session: AsyncSession, form_id: str) -> Optional[Dict[str, Any]]:
        """Get a form by ID only if it is published"""
        form = await AsyncFormsService.get_form_by_id(session, form_id)
        if form and form["published"]:
            return form
        return None

    @staticmethod
    async def get_form_by_share_url(session: AsyncSession, share_url: str) -> Optional[Dict[str, Any]]:
        """Get a published form by its public share URL token"""
        result = await session.execute(
            text(f"SELECT {_FORM_COLUMNS} FROM forms WHERE share_url = :share_url"),
            {"share_url": share_url},
        )
        form = _to_form(result.mappings().first())
        if form and form["published"]:
            return form
        return None

    @staticmethod
    async def update_form_content(
        session: AsyncSession,
        form_id: str,
        user_id: str,
        content: str,
        theme: Optional[str] = None,
    ) -> bool:
        """Replace the content document of an unpublished form.

        Returns False when no unpublished form matched.
        """
        sets = ["content = :content", "updated_at = CURRENT_TIMESTAMP"]
        params = {"form_id": form_id, "user_id": user_id, "content": content}
        if theme is not None:
            sets.append("theme = :theme")
            params["theme"] = theme
        result = await session.execute(
            text(
                f"UPDATE forms SET {', '.join(sets)} "
                "WHERE id = :form_id AND user_id = :user_id AND published = FALSE"
            ),
            params,
        )
        return result.rowcount > 0

    @staticmethod
    async def publish_form(session: AsyncSession, form_id: str, user_id: str) -> bool:
        result = await session.execute(
            text(
                "UPDATE forms SET published = TRUE, updated_at = CURRENT_TIMESTAMP "
                "WHERE id = :form_id AND user_id = :user_id"
            ),
            {"form_id": form_id, "user_id": user_id},
        )
        if result.rowcount:
            logger.info("Published form %s", form_id)
        return result.rowcount > 0

    @staticmethod
    async def delete_form(session: AsyncSession, form_id: str, user_id: str) -> bool:
        """Delete a form with its submissions and analytics events"""
        form = await AsyncFormsService.get_form_by_id(session, form_id, user_id)
        if not form:
            return False
        params = {"form_id": form_id}
        await session.execute(text("DELETE FROM analytics WHERE form_id = :form_id"), params)
        await session.execute(text("DELETE FROM submissions WHERE form_id = :form_id"), params)
        await session.execute(text("DELETE FROM forms WHERE id = :form_id"), params)
        logger.info("Deleted form %s", form_id)
        return True

    @staticmethod
    async def increment_visits(session: AsyncSession, form_id: str) -> None:
        await session.execute(
            text("UPDATE forms SET visits = visits + 1 WHERE id = :form_id"),
            {"form_id": form_id},
        )

    @staticmethod
    async def get_form_stats(session: AsyncSession, user_id: str) -> Dict[str, Any]:
        """Aggregate visits and submissions across a user's forms"""
        result = await session.execute(
            text(
                """
                SELECT COALESCE(SUM(visits), 0) AS visits, COALESCE(SUM(submissions), 0) AS submissions
                FROM forms WHERE user_id = :user_id
                """
            ),
            {"user_id": user_id},
        )
        row = result.mappings().first()
        visits = int(row["visits"] or 0) if row else 0
        submissions = int(row["submissions"] or 0) if row else 0

        submission_rate = (submissions / visits) * 100 if visits > 0 else 0
        bounce_rate = 100 - submission_rate
        return {
            "visits": visits,
            "submissions": submissions,
            "submissionRate": submission_rate,
            "bounceRate": bounce_rate,
        }
