"""
Validation engine shared by the submission page and the JSON submission sink.

Values are first coerced through their field's contract, so a payload that
arrives as JSON is judged on the same shapes the submission page captures.
"""
from typing import Any, Dict, List, Mapping, Set

from models.fields import FieldInstance
from services.field_registry import get_contract


def coerce_values(document: List[FieldInstance], values: Mapping[str, Any]) -> Dict[str, Any]:
    """Canonical value per input field; unusable shapes become None."""
    coerced: Dict[str, Any] = {}
    for field in document:
        contract = get_contract(field.type)
        if contract.is_input:
            coerced[field.id] = contract.coerce(field, values.get(field.id))
    return coerced


def invalid_fields(document: List[FieldInstance], values: Mapping[str, Any]) -> Set[str]:
    """Return the ids of every field whose value fails its type's rule.

    A key missing from `values` is treated as an empty value.
    """
    coerced = coerce_values(document, values)
    invalid = set()
    for field in document:
        if not get_contract(field.type).validate(field, coerced.get(field.id)):
            invalid.add(field.id)
    return invalid


def marshal_values(document: List[FieldInstance], values: Mapping[str, Any]) -> Dict[str, Any]:
    """Restrict a value map to the document's input fields, in document order.

    Absent values are dropped; a checkbox always carries a boolean.
    """
    coerced = coerce_values(document, values)
    payload: Dict[str, Any] = {}
    for field in document:
        contract = get_contract(field.type)
        if not contract.is_input:
            continue
        value = contract.marshal(coerced[field.id])
        if value is not None:
            payload[field.id] = value
    return payload
