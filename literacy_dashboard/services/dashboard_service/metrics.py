"""Derived dashboard metrics.

Pure functions over the rows of the survey resources. Every per-subgroup
aggregate leaves this module suppression-marked: groups below the
threshold keep their label but lose their value.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from literacy_dashboard.shared.models import (
    BREAKDOWN_CATEGORIES,
    FEATURE_LABELS,
    DashboardMetric,
    DetailSection,
    FeatureImportance,
    Kpis,
    ScoreBand,
    ScoreBin,
    SubgroupStat,
)
from literacy_dashboard.shared.privacy import (
    MINIMUM_THRESHOLD,
    apply_privacy_guards,
    apply_suppression,
)

logger = logging.getLogger(__name__)

SCORE_BIN_EDGES = ((0, 20), (20, 40), (40, 60), (60, 80), (80, 100))

HIGH_BAND_MIN = 90
MEDIUM_BAND_MIN = 80


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def _rate(matching: int, total: int) -> float:
    return matching / total * 100 if total else 0.0


def compute_kpis(students: Sequence[Mapping[str, Any]]) -> Kpis:
    """Headline KPIs over every response; all zero for an empty dataset."""
    total = len(students)
    avg_score = (
        sum(_number(row.get("score_percent")) for row in students) / total
        if total else 0.0
    )
    return Kpis(
        total_students=total,
        avg_literacy_score=avg_score,
        crisis_awareness_rate=_rate(sum(1 for r in students if r.get("Q10") == 1), total),
        after_hours_awareness_rate=_rate(sum(1 for r in students if r.get("Q13") == 1), total),
        service_access_rate=_rate(
            sum(1 for r in students if r.get("mentalHealth") == "Yes"), total
        ),
    )


def filter_demographics(
    rows: Iterable[Mapping[str, Any]],
    category: str,
) -> List[Dict[str, Any]]:
    """Rows of demographic_breakdown.json for one demographic category."""
    return [dict(r) for r in rows if r.get("demographic_category") == category]


def score_band(average_score: Optional[float]) -> Optional[ScoreBand]:
    """Colour band for an average score; None when the score is hidden."""
    if average_score is None:
        return None
    if average_score > HIGH_BAND_MIN:
        return ScoreBand.HIGH
    if average_score > MEDIUM_BAND_MIN:
        return ScoreBand.MEDIUM
    return ScoreBand.LOW


def demographic_breakdown(
    rows: Iterable[Mapping[str, Any]],
    category: str,
    threshold: int = MINIMUM_THRESHOLD,
) -> List[Dict[str, Any]]:
    """Suppressed, banded demographic rows for one category."""
    guarded = apply_privacy_guards(filter_demographics(rows, category), threshold)
    for row in guarded:
        band = score_band(row.get("average_score"))
        row["band"] = band.value if band else None
    return guarded


def rank_questions(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Questions ordered by accuracy, highest first. Ties keep input order."""
    return sorted((dict(r) for r in rows), key=lambda r: -_number(r.get("Accuracy")))


def top_questions(rows: Iterable[Mapping[str, Any]], n: int = 5) -> List[Dict[str, Any]]:
    return rank_questions(rows)[:n]


def bottom_questions(rows: Iterable[Mapping[str, Any]], n: int = 5) -> List[Dict[str, Any]]:
    """The n least accurate questions, lowest first."""
    ranked = rank_questions(rows)
    return list(reversed(ranked[-n:])) if n > 0 else []


def score_distribution(students: Iterable[Mapping[str, Any]]) -> List[ScoreBin]:
    """Histogram of score_percent in 20-point bins.

    Bounds are inclusive on both ends, so a score on a boundary (20, 40,
    60, 80) is counted in both adjacent bins.
    """
    bins = [ScoreBin(range=f"{lo}-{hi}%", min=lo, max=hi) for lo, hi in SCORE_BIN_EDGES]
    for row in students:
        score = _number(row.get("score_percent"))
        for score_bin in bins:
            if score_bin.contains(score):
                score_bin.count += 1
    return bins


def map_feature_importance(rows: Iterable[Mapping[str, Any]]) -> List[FeatureImportance]:
    """Label grouped_coef_df.json rows by position and round to 1 decimal."""
    mapped = []
    for index, row in enumerate(rows):
        label = FEATURE_LABELS[index] if index < len(FEATURE_LABELS) else f"Feature {index + 1}"
        mapped.append(FeatureImportance(
            feature=label,
            importance=round(_number(row.get("Total_Coefficient")), 1),
        ))
    return mapped


def build_question_lookup(rows: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    """Map question IDs to text, keyed as given, upper- and lower-cased."""
    lookup: Dict[str, str] = {}
    for row in rows:
        qid = row.get("QID")
        text = row.get("Questions")
        if not isinstance(qid, str) or text is None:
            continue
        lookup[qid] = text
        lookup[qid.upper()] = text
        lookup[qid.lower()] = text
    return lookup


def question_text(lookup: Mapping[str, str], qid: str) -> Optional[str]:
    return lookup.get(qid) or lookup.get(qid.upper())


def _metric_hit(row: Mapping[str, Any], metric: DashboardMetric) -> float:
    if metric is DashboardMetric.LITERACY:
        return _number(row.get("score_percent"))
    if metric is DashboardMetric.MENTAL_HEALTH:
        return 1.0 if row.get("mentalHealth") == "Yes" else 0.0
    return 1.0 if row.get(metric.value) == 1 else 0.0


def subgroup_stats(
    students: Iterable[Mapping[str, Any]],
    category: str,
    metric: DashboardMetric,
) -> List[SubgroupStat]:
    """Metric value per subgroup of one category, in first-seen order.

    Literacy is the mean score; other metrics are the percentage of
    positive responses. Values are rounded to 1 decimal.
    """
    groups: Dict[str, List[float]] = {}
    for row in students:
        subgroup = row.get(category)
        if category == "mentalHealth" and subgroup == "Unsure":
            continue
        groups.setdefault(str(subgroup), []).append(_metric_hit(row, metric))

    stats = []
    for name, hits in groups.items():
        mean = sum(hits) / len(hits)
        value = mean if metric is DashboardMetric.LITERACY else mean * 100
        stats.append(SubgroupStat(name=name, value=round(value, 1), count=len(hits)))
    return stats


def detail_breakdown(
    students: Sequence[Mapping[str, Any]],
    metric: DashboardMetric,
    threshold: int = MINIMUM_THRESHOLD,
) -> List[DetailSection]:
    """Per-category breakdown of a metric for a detail view.

    Program subgroups are sorted by value, highest first; suppressed
    programs sort last.
    """
    sections = []
    for category, label in BREAKDOWN_CATEGORIES.items():
        data = apply_suppression(
            (s.to_dict() for s in subgroup_stats(students, category, metric)),
            threshold=threshold,
            cleared_fields=("value",),
        )
        if category == "program":
            # Suppressed programs last, in first-seen order
            data.sort(key=lambda d: (d["suppressed"], -(d["value"] or 0)))
        sections.append(DetailSection(category=label, data=data))

    logger.debug(
        "DETAIL_BREAKDOWN_COMPUTED",
        extra={"metric": metric.value, "students": len(students), "threshold": threshold}
    )
    return sections


def mental_health_comparison(
    rows: Iterable[Mapping[str, Any]],
    students: Iterable[Mapping[str, Any]],
    threshold: int = MINIMUM_THRESHOLD,
) -> List[Dict[str, Any]]:
    """mental_health_df.json rows with respondent counts, suppression-marked.

    The resource carries no counts, so each group's size is taken from
    the student rows.
    """
    counts: Dict[str, int] = {}
    for row in students:
        group = row.get("mentalHealth")
        counts[group] = counts.get(group, 0) + 1

    with_counts = [
        {**row, "student_count": counts.get(row.get("mentalHealth"), 0)}
        for row in rows
    ]
    return apply_suppression(with_counts, threshold=threshold)
