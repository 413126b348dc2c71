"""
Validation of import payloads before they reach the merge engine.
"""

from .import_validator import (
    ValidationResult,
    validate_json_import,
    get_validation_error_key,
)

__all__ = [
    'ValidationResult',
    'validate_json_import',
    'get_validation_error_key',
]
