"""Shared domain models for the literacy dashboard."""
from .survey import (
    BREAKDOWN_CATEGORIES,
    DEMOGRAPHIC_CATEGORIES,
    DETAIL_VIEWS,
    FEATURE_LABELS,
    DashboardMetric,
    DashboardView,
    DetailSection,
    FeatureImportance,
    Kpis,
    ScoreBand,
    ScoreBin,
    SubgroupStat,
    ViewDetail,
)

__all__ = [
    "BREAKDOWN_CATEGORIES",
    "DEMOGRAPHIC_CATEGORIES",
    "DETAIL_VIEWS",
    "FEATURE_LABELS",
    "DashboardMetric",
    "DashboardView",
    "DetailSection",
    "FeatureImportance",
    "Kpis",
    "ScoreBand",
    "ScoreBin",
    "SubgroupStat",
    "ViewDetail",
]
