"""Dashboard view models.

Assembles the JSON served for the overview page and the four detail
pages from whatever the data coordinator currently holds.
"""
from typing import Any, Dict, List, Mapping, Optional

from literacy_dashboard.services.data_service.config import (
    CORRELATIONS,
    DEMOGRAPHIC_BREAKDOWN,
    FEATURE_COEFFICIENTS,
    MENTAL_HEALTH,
    QUESTION_ACCURACY,
    QUESTION_LOOKUP,
    STUDENTS,
)
from literacy_dashboard.shared.models import (
    DEMOGRAPHIC_CATEGORIES,
    DETAIL_VIEWS,
    DashboardView,
)
from literacy_dashboard.shared.privacy import (
    MINIMUM_THRESHOLD,
    format_suppressed_value,
    get_suppression_warning,
    is_dataset_too_small,
)

from . import metrics

OVERVIEW_TITLE = "Student Mental Health Literacy Dashboard"
OVERVIEW_SUBTITLE = (
    "Real-time insights into student mental health knowledge and resource awareness"
)

KPI_RATES = (
    "avg_literacy_score",
    "crisis_awareness_rate",
    "after_hours_awareness_rate",
    "service_access_rate",
)


class UnknownViewError(ValueError):
    """Requested view or category does not exist."""


def _suppression_block(threshold: int) -> Dict[str, Any]:
    return {"threshold": threshold, "warning": get_suppression_warning(threshold)}


def _with_question_text(
    rows: List[Dict[str, Any]],
    lookup: Mapping[str, str],
) -> List[Dict[str, Any]]:
    for row in rows:
        if not row.get("QuestionText"):
            row["QuestionText"] = metrics.question_text(lookup, str(row.get("Question", "")))
    return rows


def build_overview(
    source,
    category: str = "campus",
    threshold: int = MINIMUM_THRESHOLD,
) -> Dict[str, Any]:
    """Overview page view model.

    Args:
        source: Object with ``get(name, default)``, normally a DataCoordinator
        category: Demographic category for the breakdown chart
        threshold: Suppression threshold

    Raises:
        UnknownViewError: If category is not a demographic category
    """
    if category not in DEMOGRAPHIC_CATEGORIES:
        raise UnknownViewError(
            f"Unknown category {category!r}, expected one of {list(DEMOGRAPHIC_CATEGORIES)}"
        )

    students = source.get(STUDENTS.name, [])
    lookup = metrics.build_question_lookup(source.get(QUESTION_LOOKUP.name, []))
    accuracy = source.get(QUESTION_ACCURACY.name, [])

    kpis = metrics.compute_kpis(students)
    total = kpis.total_students
    too_small = is_dataset_too_small(total, threshold)

    kpi_values = kpis.to_dict()
    kpi_display = {
        "total_students": str(total),
    }
    for key in KPI_RATES:
        kpi_display[key] = format_suppressed_value(f"{kpi_values[key]:.1f}%", total, threshold)
        if too_small:
            kpi_values[key] = None

    return {
        "view": DashboardView.OVERVIEW.value,
        "title": OVERVIEW_TITLE,
        "subtitle": OVERVIEW_SUBTITLE,
        "dataset_too_small": too_small,
        "kpis": kpi_values,
        "kpi_display": kpi_display,
        "demographics": {
            "category": category,
            "categories": list(DEMOGRAPHIC_CATEGORIES),
            "rows": metrics.demographic_breakdown(
                source.get(DEMOGRAPHIC_BREAKDOWN.name, []), category, threshold
            ),
        },
        "top_questions": _with_question_text(metrics.top_questions(accuracy), lookup),
        "bottom_questions": _with_question_text(metrics.bottom_questions(accuracy), lookup),
        "score_distribution": (
            [] if too_small
            else [b.to_dict() for b in metrics.score_distribution(students)]
        ),
        "feature_importance": [
            f.to_dict()
            for f in metrics.map_feature_importance(source.get(FEATURE_COEFFICIENTS.name, []))
        ],
        "mental_health": metrics.mental_health_comparison(
            source.get(MENTAL_HEALTH.name, []), students, threshold
        ),
        "correlations": list(source.get(CORRELATIONS.name, [])),
        "suppression": _suppression_block(threshold),
    }


def parse_view(value: str) -> DashboardView:
    try:
        return DashboardView(value)
    except ValueError:
        raise UnknownViewError(f"Unknown view {value!r}") from None


def build_detail_view(
    source,
    view: DashboardView,
    threshold: int = MINIMUM_THRESHOLD,
) -> Dict[str, Any]:
    """Detail page view model: one suppressed breakdown per category.

    Raises:
        UnknownViewError: If view has no detail page
    """
    detail = DETAIL_VIEWS.get(view)
    if detail is None:
        raise UnknownViewError(f"View {view.value!r} has no detail breakdown")

    students = source.get(STUDENTS.name, [])
    sections = metrics.detail_breakdown(students, detail.metric, threshold)
    return {
        "view": view.value,
        "title": detail.title,
        "subtitle": detail.subtitle,
        "metric": detail.metric.value,
        "sections": [s.to_dict() for s in sections],
        "suppression": _suppression_block(threshold),
    }


def lookup_question(source, qid: str) -> Optional[str]:
    """Full text of a question, or None if unknown."""
    lookup = metrics.build_question_lookup(source.get(QUESTION_LOOKUP.name, []))
    return metrics.question_text(lookup, qid)
