"""Privacy protection for aggregate statistics.

Statistics from groups smaller than the suppression threshold (k=5) are
redacted before display.
"""
from .suppression import (
    MINIMUM_THRESHOLD,
    SuppressionConfig,
    SuppressionMode,
    apply_privacy_guards,
    apply_suppression,
    format_suppressed_value,
    get_suppression_warning,
    is_dataset_too_small,
    record_count,
    should_suppress,
    suppress,
)

__all__ = [
    "MINIMUM_THRESHOLD",
    "SuppressionConfig",
    "SuppressionMode",
    "apply_privacy_guards",
    "apply_suppression",
    "format_suppressed_value",
    "get_suppression_warning",
    "is_dataset_too_small",
    "record_count",
    "should_suppress",
    "suppress",
]
