import asyncio
import base64
import io

import pytest
from PIL import Image
from starlette.datastructures import FormData, UploadFile

from models.fields import parse_content
from services.submission_renderer import (
    SubmissionSession, SubmissionStateError, SubmitOutcome, render_form_page, render_submitted_page,
)
from tests.conftest import field, png_bytes, truncated_png_bytes


class RecordingSink:
    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    async def __call__(self, values):
        self.calls.append(values)
        if self.fail:
            raise RuntimeError("storage unavailable")


def _upload(data: bytes, name: str = "photo.png") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=name)


async def test_rating_submission_marshals_value_with_range():
    document = parse_content([field("RatingScaleField", "q1", required=True, minValue=1, maxValue=5)])
    sink = RecordingSink()
    session = SubmissionSession(document, sink)

    await session.capture(FormData([("q1", "4")]))
    assert await session.submit() is SubmitOutcome.SUBMITTED
    assert sink.calls == [{"q1": {"value": 4, "minValue": 1, "maxValue": 5}}]


async def test_invalid_submission_never_reaches_sink():
    document = parse_content([
        field("TextField", "name", required=True),
        field("TextAreaField", "about", required=True),
        field("NumberField", "age"),
    ])
    sink = RecordingSink()
    session = SubmissionSession(document, sink)
    session.submit_value("age", "30")

    assert await session.submit() is SubmitOutcome.INVALID
    assert session.errors == {"name", "about"}
    assert sink.calls == []
    # Values survive for the re-render
    assert session.values["age"] == "30"


async def test_sink_failure_keeps_values_and_allows_retry():
    document = parse_content([field("TextField", "name", required=True)])
    sink = RecordingSink(fail=True)
    session = SubmissionSession(document, sink)
    session.submit_value("name", "Ada")

    assert await session.submit() is SubmitOutcome.ERROR
    assert session.failed is True
    assert session.pending is False
    assert session.values == {"name": "Ada"}

    sink.fail = False
    assert await session.submit() is SubmitOutcome.SUBMITTED
    assert len(sink.calls) == 2


async def test_submit_is_disabled_while_pending_and_after_success():
    document = parse_content([field("TextField", "name")])
    release = asyncio.Event()

    async def slow_sink(values):
        await release.wait()

    session = SubmissionSession(document, slow_sink)
    first = asyncio.create_task(session.submit())
    await asyncio.sleep(0)
    assert session.pending is True
    with pytest.raises(SubmissionStateError):
        await session.submit()

    release.set()
    assert await first is SubmitOutcome.SUBMITTED
    with pytest.raises(SubmissionStateError):
        await session.submit()


async def test_capture_joins_image_encoding_before_submit():
    document = parse_content([
        field("ImageUploadField", "photo", required=True, maxDimension=800),
        field("TextField", "caption"),
    ])
    sink = RecordingSink()
    session = SubmissionSession(document, sink)

    await session.capture(FormData([("photo", _upload(png_bytes(1200, 600))), ("caption", "Sunset")]))
    assert await session.submit() is SubmitOutcome.SUBMITTED

    stored = sink.calls[0]["photo"]
    assert stored.startswith("data:image/png;base64,")
    encoded = base64.b64decode(stored.split(",", 1)[1])
    with Image.open(io.BytesIO(encoded)) as im:
        assert im.size == (800, 400)
    assert sink.calls[0]["caption"] == "Sunset"


async def test_small_image_is_kept_as_is():
    document = parse_content([field("ImageUploadField", "photo")])
    session = SubmissionSession(document, RecordingSink())
    data = png_bytes(40, 30)
    values = await session.capture(FormData([("photo", _upload(data))]))
    assert values["photo"] == "data:image/png;base64," + base64.b64encode(data).decode("ascii")


async def test_non_image_upload_is_treated_as_absent():
    document = parse_content([field("ImageUploadField", "photo", required=True)])
    session = SubmissionSession(document, RecordingSink())
    await session.capture(FormData([("photo", _upload(b"not an image", "notes.txt"))]))
    assert await session.submit() is SubmitOutcome.INVALID


async def test_truncated_upload_is_treated_as_absent():
    document = parse_content([
        field("ImageUploadField", "photo", required=True),
        field("TextField", "name"),
    ])
    session = SubmissionSession(document, RecordingSink())
    values = await session.capture(FormData([("photo", _upload(truncated_png_bytes())), ("name", "Ada")]))
    assert values == {"photo": None, "name": "Ada"}
    assert await session.submit() is SubmitOutcome.INVALID
    assert session.errors == {"photo"}


async def test_image_over_pixel_cap_is_treated_as_absent(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    document = parse_content([field("ImageUploadField", "photo")])
    session = SubmissionSession(document, RecordingSink())
    values = await session.capture(FormData([("photo", _upload(png_bytes(40, 40)))]))
    assert values["photo"] is None


async def test_carried_image_survives_rerender():
    document = parse_content([field("ImageUploadField", "photo", required=True)])
    carried = "data:image/png;base64,iVBORw0KGgo="
    session = SubmissionSession(document, RecordingSink())
    values = await session.capture(FormData([("photo__data", carried)]))
    assert values["photo"] == carried

    html = render_form_page("Photos", document, values=values)
    assert f'name="photo__data" value="{carried}"' in html


async def test_dual_image_and_picture_select_capture():
    document = parse_content([
        field("DualImageUpload", "pair", required=True),
        field("PictureSelectField", "pick", images=[
            {"src": "https://example.com/a.png", "label": "A"},
            {"src": "https://example.com/b.png", "label": "B"},
        ]),
    ])
    session = SubmissionSession(document, RecordingSink())
    values = await session.capture(FormData([
        ("pair_left", _upload(png_bytes(10, 10))),
        ("pick", "1"),
    ]))
    assert values["pair"]["left"].startswith("data:image/png")
    assert values["pair"]["right"] is None
    assert values["pick"] == {"url": "https://example.com/b.png", "label": "B"}
    # One side only is still empty for a required dual upload
    assert await session.submit() is SubmitOutcome.INVALID
    assert session.errors == {"pair"}


async def test_unknown_option_values_are_dropped():
    document = parse_content([
        field("SelectField", "color", options=["red", "blue"]),
        field("RatingScaleField", "score", minValue=1, maxValue=5),
        field("CheckboxField", "agree"),
    ])
    session = SubmissionSession(document, RecordingSink())
    values = await session.capture(FormData([("color", "green"), ("score", "9"), ("agree", "true")]))
    assert values == {"color": None, "score": None, "agree": True}


def test_form_page_renders_every_field_with_theme_and_errors():
    document = parse_content([
        field("TitleField", "t", title="Survey"),
        field("TextField", "name", required=True, label="Your name"),
        field("CheckboxField", "agree"),
    ])
    html = render_form_page("Survey", document, values={"name": "Ada"}, errors={"name"},
                            theme_name="modern", action="/submit/abc")
    assert html.startswith("<!doctype html>")
    assert "--qf-primary: #4f46e5" in html
    assert 'action="/submit/abc"' in html
    assert 'enctype="multipart/form-data"' in html
    assert "Your name *" in html
    assert 'value="Ada"' in html
    assert html.count('class="quick-form-field quick-form-field--invalid"') == 1
    assert "Please check the form for errors." in html


def test_failed_page_shows_generic_error():
    document = parse_content([field("TextField", "name")])
    html = render_form_page("Survey", document, failed=True)
    assert "Failed to submit form. Please try again." in html


def test_submitted_page():
    html = render_submitted_page("elegant")
    assert "Form submitted" in html
    assert "--qf-primary: #d97706" in html
