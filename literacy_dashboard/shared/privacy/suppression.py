"""Small-group suppression for dashboard aggregates.

A statistic computed from fewer than MINIMUM_THRESHOLD respondents is never
shown in numeric form. Suppressed records keep their subgroup label so that
tables and charts stay complete; only the value is redacted.

None of the functions here raise on malformed input: a missing or non-numeric
count is treated as zero, which always suppresses.
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

# Minimum respondents per group (k=5)
MINIMUM_THRESHOLD = 5

# Numeric fields cleared on suppressed records
CLEARED_FIELDS = ("average_score", "score_percent")

SUPPRESSED_MARKER = "<{threshold}*"


class SuppressionMode(str, Enum):
    """How apply_suppression treats records below threshold."""
    REMOVE = "remove"
    MARK = "mark"


@dataclass(frozen=True)
class SuppressionConfig:
    """Explicit suppression settings, passed instead of module defaults."""
    threshold: int = MINIMUM_THRESHOLD
    mode: SuppressionMode = SuppressionMode.MARK


def _as_count(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    # NaN compares false against any threshold
    if not math.isfinite(value):
        return None
    return value


def record_count(record: Mapping[str, Any]) -> int:
    """Respondent count of a record: ``count``, then ``student_count``, else 0.

    A key that is present but not numeric counts as 0 rather than falling
    through to the next key.
    """
    for key in ("count", "student_count"):
        value = record.get(key)
        if value is None:
            continue
        count = _as_count(value)
        return count if count is not None else 0
    return 0


def should_suppress(count: Any, threshold: int = MINIMUM_THRESHOLD) -> bool:
    """True iff count is below threshold."""
    count = _as_count(count)
    if count is None:
        return True
    return count < threshold


def is_dataset_too_small(total_count: Any, threshold: int = MINIMUM_THRESHOLD) -> bool:
    """Same predicate as should_suppress, for whole-dataset totals."""
    return should_suppress(total_count, threshold)


def apply_suppression(
    records: Iterable[Mapping[str, Any]],
    threshold: int = MINIMUM_THRESHOLD,
    mode: Union[SuppressionMode, str] = SuppressionMode.MARK,
    *,
    cleared_fields: Sequence[str] = CLEARED_FIELDS,
) -> List[Dict[str, Any]]:
    """Apply the suppression threshold to a collection of records.

    Args:
        records: Mappings exposing ``count`` or ``student_count``
        threshold: Minimum count to display a record's statistics
        mode: ``remove`` drops records below threshold; ``mark`` (and any
            other value) keeps every record and flags it
        cleared_fields: Fields set to None on suppressed records in mark mode

    Returns:
        New list of record copies. Input records are not modified.
    """
    if mode == SuppressionMode.REMOVE:
        kept = [dict(r) for r in records if record_count(r) >= threshold]
        logger.debug(
            "SUPPRESSION_REMOVE_APPLIED",
            extra={"threshold": threshold, "kept": len(kept)}
        )
        return kept

    marked: List[Dict[str, Any]] = []
    suppressed_count = 0
    for record in records:
        item = dict(record)
        if record_count(record) < threshold:
            item["suppressed"] = True
            for name in cleared_fields:
                item[name] = None
            suppressed_count += 1
        else:
            item["suppressed"] = False
        marked.append(item)

    if suppressed_count:
        logger.info(
            "SUPPRESSION_MARK_APPLIED",
            extra={
                "threshold": threshold,
                "records": len(marked),
                "suppressed": suppressed_count,
            }
        )
    return marked


def suppress(
    records: Iterable[Mapping[str, Any]],
    config: SuppressionConfig,
) -> List[Dict[str, Any]]:
    """apply_suppression driven by an explicit SuppressionConfig."""
    return apply_suppression(records, threshold=config.threshold, mode=config.mode)


def _stringify(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_suppressed_value(
    value: Any,
    count: Any,
    threshold: int = MINIMUM_THRESHOLD,
) -> str:
    """Display string for a statistic.

    Examples:
        format_suppressed_value(82.5, 10) -> "82.5"
        format_suppressed_value(82.5, 3)  -> "<5*"
        format_suppressed_value(None, 10) -> "N/A"
    """
    if should_suppress(count, threshold):
        return SUPPRESSED_MARKER.format(threshold=threshold)
    if value is None:
        return "N/A"
    return _stringify(value)


def get_suppression_warning(threshold: int = MINIMUM_THRESHOLD) -> str:
    """Footer text disclosing the suppression rule."""
    return (
        f"* Data suppressed for privacy: groups with fewer than {threshold} "
        "students are not shown to protect individual privacy "
        "(FIPPA/PHIPA compliance)."
    )


def apply_privacy_guards(
    records: Iterable[Mapping[str, Any]],
    threshold: int = MINIMUM_THRESHOLD,
) -> List[Dict[str, Any]]:
    """Mark-mode suppression for records keyed on ``student_count``.

    Never filters. Every output record carries ``suppressed``; suppressed
    records have ``average_score`` cleared.
    """
    guarded: List[Dict[str, Any]] = []
    for record in records:
        item = dict(record)
        hidden = should_suppress(_as_count(record.get("student_count")) or 0, threshold)
        item["suppressed"] = hidden
        if hidden:
            item["average_score"] = None
        guarded.append(item)
    return guarded
