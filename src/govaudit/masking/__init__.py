"""Masking - sensitive field registry and payload redaction."""

from govaudit.masking.registry import (
    SensitiveFieldRegistry,
    SensitiveFieldsConfig,
    merge_configs,
    normalize_field_name,
)
from govaudit.masking.masker import Masker

__all__ = [
    "Masker",
    "SensitiveFieldRegistry",
    "SensitiveFieldsConfig",
    "merge_configs",
    "normalize_field_name",
]
