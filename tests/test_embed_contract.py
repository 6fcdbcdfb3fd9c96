"""
Both submission paths must hand the sink the same values for the same input.

The embed bundle runs under Node with a small DOM (tests/embed_harness.js);
the submission page path runs through SubmissionSession on multipart data.
"""
import base64
import io
import json
import shutil
import subprocess
from pathlib import Path

import pytest
from starlette.datastructures import FormData, UploadFile

from models.fields import parse_content
from services.embed_bundle import generate_bundle
from services.submission_renderer import SubmissionSession, SubmitOutcome
from services.validation import marshal_values
from tests.conftest import field, png_bytes

NODE = shutil.which("node")
HARNESS = Path(__file__).parent / "embed_harness.js"
FORM_ID = "form-1"
SUBMIT_URL = "https://forms.example.com/api/submit-form/form-1"
PLACEHOLDER = "https://placehold.co/200x200"

pytestmark = pytest.mark.skipif(NODE is None, reason="node is not installed")


def _run_bundle(content, actions, mounts=1):
    script = generate_bundle(FORM_ID, parse_content(content), SUBMIT_URL)
    scenario = {"bundle": script, "formId": FORM_ID, "mounts": mounts, "actions": actions}
    result = subprocess.run(
        [NODE, str(HARNESS)],
        input=json.dumps(scenario),
        capture_output=True,
        text=True,
        timeout=30,
        check=True,
    )
    return json.loads(result.stdout)


def _data_url(data: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(data).decode("ascii")


def _file_action(field_id, data, width, height, suffix=""):
    return {
        "kind": "file",
        "field": field_id,
        "suffix": suffix,
        "file": {"name": f"{field_id}{suffix}.png", "type": "image/png", "dataUrl": _data_url(data),
                 "width": width, "height": height},
    }


def _upload(data: bytes, name: str) -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=name)


CONTENT = [
    field("TitleField", "t", title="Survey"),
    field("TextField", "name", required=True),
    field("CheckboxField", "agree", required=True),
    field("RatingScaleField", "q1", required=True, minValue=1, maxValue=5),
    field("PictureSelectField", "pick", required=True, images=[
        {"src": PLACEHOLDER, "label": "Option 1"},
        {"src": PLACEHOLDER, "label": "Option 2"},
    ]),
    field("ImageUploadField", "photo", required=True),
    field("DualImageUpload", "pair", required=True),
]

PHOTO = png_bytes(40, 20)
LEFT = png_bytes(10, 10, color=(0, 0, 255))
RIGHT = png_bytes(12, 12, color=(0, 255, 0))


async def test_bundle_and_submission_page_marshal_the_same_payload():
    bundle = _run_bundle(CONTENT, [
        {"kind": "type", "field": "name", "value": "Ada"},
        {"kind": "check", "field": "agree"},
        {"kind": "click", "field": "q1", "className": "quick-form-rating-button", "index": 3},
        {"kind": "click", "field": "pick", "className": "quick-form-picture-option", "index": 1},
        _file_action("photo", PHOTO, 40, 20),
        _file_action("pair", LEFT, 10, 10, "_left"),
        _file_action("pair", RIGHT, 12, 12, "_right"),
    ])
    assert bundle["errors"] == []
    assert len(bundle["requests"]) == 1
    request = bundle["requests"][0]
    assert request["url"] == SUBMIT_URL
    assert request["method"] == "POST"

    calls = []

    async def sink(values):
        calls.append(values)

    document = parse_content(CONTENT)
    session = SubmissionSession(document, sink)
    await session.capture(FormData([
        ("name", "Ada"),
        ("agree", "true"),
        ("q1", "4"),
        ("pick", "1"),
        ("photo", _upload(PHOTO, "photo.png")),
        ("pair_left", _upload(LEFT, "left.png")),
        ("pair_right", _upload(RIGHT, "right.png")),
    ]))
    assert await session.submit() is SubmitOutcome.SUBMITTED

    expected = {
        "name": "Ada",
        "agree": True,
        "q1": {"value": 4, "minValue": 1, "maxValue": 5},
        "pick": {"url": PLACEHOLDER, "label": "Option 2"},
        "photo": _data_url(PHOTO),
        "pair": {"left": _data_url(LEFT), "right": _data_url(RIGHT)},
    }
    assert calls == [expected]
    assert request["body"] == expected
    # The JSON sink keeps the bundle's payload as it is
    assert marshal_values(document, request["body"]) == expected


async def test_mounting_twice_leaves_one_form():
    result = _run_bundle([field("TextField", "name")], [{"kind": "type", "field": "name", "value": "x"}], mounts=2)
    assert result["forms"] == 1
    assert result["styles"] == 1
    assert [r["body"] for r in result["requests"]] == [{"name": "x"}]


async def test_empty_required_rating_blocks_the_request():
    result = _run_bundle([
        field("TextField", "name"),
        field("RatingScaleField", "q1", required=True, minValue=1, maxValue=5),
    ], [{"kind": "type", "field": "name", "value": "Ada"}])
    assert result["requests"] == []
    assert result["invalid"] == ["q1"]
