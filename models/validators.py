"""
Utility functions for data validation and sanitization using Pydantic models
"""
from typing import Dict, Any, Type, TypeVar, Union, List
from pydantic import BaseModel, ValidationError

from .base import SubmissionModel, AnalyticsModel
from .fields import error_list

T = TypeVar('T', bound=BaseModel)


def validate_data(data: Dict[str, Any], model_class: Type[T]) -> tuple[bool, Union[T, List[Dict[str, Any]]]]:
    """
    Validate and sanitize input data using a Pydantic model

    Returns:
        Tuple of (is_valid, result) where result is either the validated
        model instance or a JSON-safe list of validation errors
    """
    try:
        return True, model_class(**data)
    except ValidationError as e:
        return False, error_list(e)


def validate_submission(submission_data: Dict[str, Any]) -> tuple[bool, Union[SubmissionModel, List[Dict[str, Any]]]]:
    """Validate and sanitize form submission data"""
    return validate_data(submission_data, SubmissionModel)


def validate_analytics(analytics_data: Dict[str, Any]) -> tuple[bool, Union[AnalyticsModel, List[Dict[str, Any]]]]:
    return validate_data(analytics_data, AnalyticsModel)
