"""Survey dataset and dashboard domain models.

Rows arrive as plain JSON objects and are kept as dicts. The dataclasses
here describe what the dashboard derives from them.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# Categories selectable on the overview demographic chart
DEMOGRAPHIC_CATEGORIES = ("campus", "year", "housing", "status")

# Categories shown on detail views, in display order
BREAKDOWN_CATEGORIES: Dict[str, str] = {
    "campus": "Campus",
    "year": "Year",
    "housing": "Housing",
    "status": "Status",
    "program": "Program",
    "mentalHealth": "Mental Health Support",
}

# grouped_coef_df.json rows are ordered by these features
FEATURE_LABELS = ("program", "year", "campus", "housing", "status")


class ScoreBand(Enum):
    """Colour band for a demographic average score."""
    HIGH = "high"           # > 90%
    MEDIUM = "medium"       # > 80%
    LOW = "low"             # <= 80%


class DashboardMetric(Enum):
    """Metric a detail view breaks down by subgroup."""
    LITERACY = "literacy"           # mean score_percent
    CRISIS = "Q10"                  # knows crisis pathway
    AFTER_HOURS = "Q13"             # knows after-hours resources
    MENTAL_HEALTH = "mentalHealth"  # has used support services


class DashboardView(Enum):
    """Navigable dashboard pages."""
    OVERVIEW = "overview"
    LITERACY = "literacy"
    CRISIS = "crisis"
    AFTER_HOURS = "afterhours"
    MENTAL_HEALTH = "mentalhealth"


@dataclass(frozen=True)
class ViewDetail:
    """Heading and metric of a detail view."""
    title: str
    subtitle: str
    metric: DashboardMetric


DETAIL_VIEWS: Dict[DashboardView, ViewDetail] = {
    DashboardView.LITERACY: ViewDetail(
        title="Average Literacy Score",
        subtitle="Detailed breakdown by demographic groups",
        metric=DashboardMetric.LITERACY,
    ),
    DashboardView.CRISIS: ViewDetail(
        title="Crisis Pathway Awareness (Q10)",
        subtitle="Students who know how to access crisis services",
        metric=DashboardMetric.CRISIS,
    ),
    DashboardView.AFTER_HOURS: ViewDetail(
        title="After-Hours Awareness (Q13)",
        subtitle="Awareness of after-hours mental health resources",
        metric=DashboardMetric.AFTER_HOURS,
    ),
    DashboardView.MENTAL_HEALTH: ViewDetail(
        title="Mental Health Support Access",
        subtitle="Students with mental health support",
        metric=DashboardMetric.MENTAL_HEALTH,
    ),
}


@dataclass(frozen=True)
class Kpis:
    """Headline figures computed over every survey response."""
    total_students: int
    avg_literacy_score: float
    crisis_awareness_rate: float
    after_hours_awareness_rate: float
    service_access_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScoreBin:
    """Histogram bin over score_percent, bounds inclusive."""
    range: str
    min: float
    max: float
    count: int = 0

    def contains(self, score: float) -> bool:
        return self.min <= score <= self.max

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FeatureImportance:
    """Summed regression coefficient for one demographic feature."""
    feature: str
    importance: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SubgroupStat:
    """Metric value for one subgroup of a breakdown category."""
    name: str
    value: Optional[float]
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DetailSection:
    """One "By <category>" chart of a detail view.

    ``data`` holds suppression-marked subgroup records.
    """
    category: str
    data: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "data": self.data}
