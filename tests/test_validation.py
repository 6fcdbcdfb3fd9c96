from models.fields import parse_content
from services.validation import invalid_fields, marshal_values
from tests.conftest import field


def _document():
    return parse_content([
        field("TitleField", "title"),
        field("TextField", "name", required=True),
        field("CheckboxField", "agree", required=True),
        field("CheckboxField", "newsletter"),
        field("RatingScaleField", "score", required=True, minValue=0, maxValue=10),
        field("NumberField", "age"),
    ])


def test_missing_keys_count_as_empty():
    assert invalid_fields(_document(), {}) == {"name", "agree", "score"}


def test_all_failures_reported_at_once():
    invalid = invalid_fields(_document(), {"name": "", "agree": False, "score": None})
    assert invalid == {"name", "agree", "score"}


def test_zero_rating_is_valid():
    values = {"name": "Ada", "agree": True, "score": {"value": 0, "minValue": 0, "maxValue": 10}}
    assert invalid_fields(_document(), values) == set()


def test_marshal_keeps_declared_inputs_only():
    values = {
        "title": "ignored",
        "name": "Ada",
        "agree": "true",
        "score": {"value": 7, "minValue": 0, "maxValue": 10},
        "age": "",
        "injected": "nope",
    }
    assert marshal_values(_document(), values) == {
        "name": "Ada",
        "agree": True,
        "newsletter": False,
        "score": {"value": 7, "minValue": 0, "maxValue": 10},
    }


def test_values_outside_a_contract_count_as_empty():
    document = parse_content([
        field("RatingScaleField", "q1", required=True, minValue=1, maxValue=5),
        field("SelectField", "s", required=True, options=["a", "b"]),
    ])
    assert invalid_fields(document, {"q1": {"value": 999}, "s": "zzz"}) == {"q1", "s"}
    assert marshal_values(document, {"q1": {"value": "4"}, "s": "a"}) == {
        "q1": {"value": 4, "minValue": 1, "maxValue": 5},
        "s": "a",
    }
