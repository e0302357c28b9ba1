"""Domain layer: errors and schemas."""

from .errors import (
    DuplicateIdError,
    ErrorCodes,
    NamespaceMismatchError,
    ParseError,
    StoreError,
    TemplateError,
    TemplateNotFoundError,
    TemplateValidationError,
)
from .schemas import ConstraintViolation, Template, ValidationResult

__all__ = [
    # errors
    "TemplateError",
    "TemplateValidationError",
    "NamespaceMismatchError",
    "DuplicateIdError",
    "ParseError",
    "TemplateNotFoundError",
    "StoreError",
    "ErrorCodes",
    # schemas
    "Template",
    "ConstraintViolation",
    "ValidationResult",
]
