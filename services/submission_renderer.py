"""
Server-rendered submission page.

SubmissionSession is the per-visit state machine behind POST /submit/{share_url}:

    editing --submit()--> (invalid) editing
            --submit()--> pending --sink ok--> submitted
                                  --sink err--> editing (values kept)
"""
import asyncio
import logging
from enum import Enum
from html import escape
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from models.fields import FieldInstance
from services.field_registry import get_contract
from services.styles import build_stylesheet
from services.validation import invalid_fields, marshal_values

logger = logging.getLogger("backend.submit")

THANK_YOU_TITLE = "Form submitted"
THANK_YOU_TEXT = "Thank you for submitting the form, you can close this page now."
INVALID_TEXT = "Please check the form for errors."
ERROR_TEXT = "Failed to submit form. Please try again."

Sink = Callable[[Dict[str, Any]], Awaitable[Any]]


class SubmitOutcome(str, Enum):
    INVALID = "invalid"
    SUBMITTED = "submitted"
    ERROR = "error"


class SubmissionStateError(RuntimeError):
    """submit() called while a submission is in flight or already done."""


class SubmissionSession:
    def __init__(self, document: List[FieldInstance], sink: Sink):
        self.document = document
        self.sink = sink
        self.values: Dict[str, Any] = {}
        self.errors: Set[str] = set()
        self.pending = False
        self.submitted = False
        self.failed = False

    def submit_value(self, field_id: str, value: Any) -> None:
        self.values[field_id] = value

    async def capture(self, form) -> Dict[str, Any]:
        """Capture every input field from a multipart form.

        Captures run concurrently; all of them finish before this returns.
        """
        inputs = [f for f in self.document if get_contract(f.type).is_input]
        results = await asyncio.gather(*(get_contract(f.type).capture(f, form) for f in inputs))
        for field, value in zip(inputs, results):
            self.submit_value(field.id, value)
        return self.values

    async def submit(self) -> SubmitOutcome:
        if self.pending or self.submitted:
            raise SubmissionStateError("Submission already in progress or completed")

        self.failed = False
        self.errors = invalid_fields(self.document, self.values)
        if self.errors:
            return SubmitOutcome.INVALID

        self.pending = True
        try:
            await self.sink(marshal_values(self.document, self.values))
        except Exception:
            logger.exception("Submission sink failed")
            self.failed = True
            return SubmitOutcome.ERROR
        finally:
            self.pending = False
        self.submitted = True
        return SubmitOutcome.SUBMITTED


# --------------
# Pages
# --------------

def _page(title: str, theme_name: Optional[str], body: str) -> str:
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{escape(title)}</title>
  <style>{build_stylesheet(theme_name)}</style>
</head>
<body>
{body}
</body>
</html>"""


def render_form_page(
    name: str,
    document: List[FieldInstance],
    values: Optional[Dict[str, Any]] = None,
    errors: Optional[Set[str]] = None,
    theme_name: Optional[str] = None,
    action: str = "",
    failed: bool = False,
) -> str:
    """Full HTML page with every field rendered through its contract."""
    values = values or {}
    errors = errors or set()
    fields = "\n".join(
        get_contract(f.type).form_html(f, values.get(f.id), f.id in errors)
        for f in document
    )
    banner = ""
    if failed:
        banner = f'<div class="quick-form-error" role="alert">{escape(ERROR_TEXT)}</div>'
    elif errors:
        banner = f'<div class="quick-form-error" role="alert">{escape(INVALID_TEXT)}</div>'
    body = (
        f'<form class="quick-form" method="post" action="{escape(action)}" enctype="multipart/form-data" novalidate>\n'
        f"{fields}\n"
        f"{banner}\n"
        '<button class="quick-form-submit" type="submit">Submit</button>\n'
        "</form>"
    )
    return _page(name, theme_name, body)


def render_submitted_page(theme_name: Optional[str] = None) -> str:
    body = (
        '<div class="quick-form"><div class="quick-form-thanks">'
        f'<h1 class="quick-form-title">{escape(THANK_YOU_TITLE)}</h1>'
        f'<p class="quick-form-paragraph">{escape(THANK_YOU_TEXT)}</p>'
        "</div></div>"
    )
    return _page(THANK_YOU_TITLE, theme_name, body)
