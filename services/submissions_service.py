"""
Submissions service module: stores submissions and their analytics events
"""

import json
import uuid
import logging
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from models.validators import validate_submission, validate_analytics
from utils.data_normalization import normalize_db_row

logger = logging.getLogger("backend.submissions")

FORM_SUBMISSION_EVENT = "FORM_SUBMISSION"


class SubmissionValidationError(ValueError):
    def __init__(self, errors):
        super().__init__("Invalid submission")
        self.errors = errors


class AsyncSubmissionsService:
    """Async service for handling form submissions"""

    @staticmethod
    async def create_submission(
        session: AsyncSession,
        form_id: str,
        data: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Store a submission, bump the form's counter and record a FORM_SUBMISSION event.

        `data` must already be restricted to the form's input fields.
        """
        is_valid, submission = validate_submission({"form_id": form_id, "data": data, "metadata": metadata or {}})
        if not is_valid:
            raise SubmissionValidationError(submission)

        submission_id = str(uuid.uuid4())
        await session.execute(
            text("INSERT INTO submissions (id, form_id, content) VALUES (:id, :form_id, :content)"),
            {"id": submission_id, "form_id": form_id, "content": json.dumps(submission.data, ensure_ascii=False)},
        )
        await session.execute(
            text("UPDATE forms SET submissions = submissions + 1 WHERE id = :form_id"),
            {"form_id": form_id},
        )

        event_metadata = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "fieldCount": len(submission.data),
            **submission.metadata,
        }
        is_valid, event = validate_analytics({
            "form_id": form_id,
            "event": FORM_SUBMISSION_EVENT,
            "submission_id": submission_id,
            "metadata": event_metadata,
        })
        if not is_valid:
            raise SubmissionValidationError(event)
        await session.execute(
            text(
                """
                INSERT INTO analytics (id, form_id, submission_id, event, metadata)
                VALUES (:id, :form_id, :submission_id, :event, :metadata)
                """
            ),
            {
                "id": str(uuid.uuid4()),
                "form_id": form_id,
                "submission_id": submission_id,
                "event": event.event,
                "metadata": json.dumps(event.metadata, ensure_ascii=False),
            },
        )
        logger.info("Stored submission %s for form %s (%d fields)", submission_id, form_id, len(submission.data))
        return submission_id

    @staticmethod
    async def get_form_submissions(session: AsyncSession, form_id: str, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        """Get stored submissions for a form, newest first, with content parsed"""
        result = await session.execute(
            text(
                """
                SELECT id, form_id, content, created_at FROM submissions
                WHERE form_id = :form_id
                ORDER BY created_at DESC
                LIMIT :limit_val OFFSET :offset_val
                """
            ),
            {"form_id": form_id, "limit_val": int(limit), "offset_val": max(0, int(offset))},
        )
        rows = [normalize_db_row(dict(row), json_fields=["content"]) for row in result.mappings().all()]
        return [
            {"id": r["id"], "formId": r["form_id"], "content": r["content"], "createdAt": r["created_at"]}
            for r in rows
        ]

    @staticmethod
    async def get_form_events(session: AsyncSession, form_id: str, event: Optional[str] = None) -> List[Dict[str, Any]]:
        """Analytics events for a form, optionally filtered by event name"""
        query_text = "SELECT id, form_id, submission_id, event, metadata, created_at FROM analytics WHERE form_id = :form_id"
        params = {"form_id": form_id}
        if event:
            query_text += " AND event = :event"
            params["event"] = event
        result = await session.execute(text(query_text), params)
        return [normalize_db_row(dict(row), json_fields=["metadata"]) for row in result.mappings().all()]
