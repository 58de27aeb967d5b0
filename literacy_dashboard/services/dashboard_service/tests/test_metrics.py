"""Tests for derived dashboard metrics."""
import pytest

from literacy_dashboard.services.dashboard_service import metrics
from literacy_dashboard.shared.models import DashboardMetric, ScoreBand


def student(campus="Sault", program="BSc", score=80.0, q10=1, q13=0, mental_health="No",
            year="1", housing="On", status="Domestic"):
    return {
        "campus": campus,
        "year": year,
        "program": program,
        "housing": housing,
        "status": status,
        "mentalHealth": mental_health,
        "Q10": q10,
        "Q13": q13,
        "score_percent": score,
    }


@pytest.fixture
def students():
    """Six students at Sault, two at Brampton."""
    return (
        [student(score=s, q10=1 if i < 3 else 0) for i, s in enumerate([70, 80, 90, 100, 60, 80])]
        + [student(campus="Brampton", score=50, q10=0, q13=1, mental_health="Yes") for _ in range(2)]
    )


class TestComputeKpis:
    """Tests for headline KPIs."""

    def test_kpis(self, students):
        kpis = metrics.compute_kpis(students)

        assert kpis.total_students == 8
        assert kpis.avg_literacy_score == pytest.approx(580 / 8)
        assert kpis.crisis_awareness_rate == pytest.approx(3 / 8 * 100)
        assert kpis.after_hours_awareness_rate == pytest.approx(25.0)
        assert kpis.service_access_rate == pytest.approx(25.0)

    def test_empty_dataset_is_zero(self):
        kpis = metrics.compute_kpis([])
        assert kpis.to_dict() == {
            "total_students": 0,
            "avg_literacy_score": 0.0,
            "crisis_awareness_rate": 0.0,
            "after_hours_awareness_rate": 0.0,
            "service_access_rate": 0.0,
        }

    def test_only_exact_one_counts_as_aware(self):
        kpis = metrics.compute_kpis([student(q10="1"), student(q10=1)])
        assert kpis.crisis_awareness_rate == pytest.approx(50.0)


class TestDemographics:
    """Tests for the overview demographic chart."""

    @pytest.fixture
    def rows(self):
        return [
            {"subgroup": "Sault", "average_score": 91.2, "student_count": 40, "demographic_category": "campus"},
            {"subgroup": "Brampton", "average_score": 84.0, "student_count": 12, "demographic_category": "campus"},
            {"subgroup": "Timmins", "average_score": 60.0, "student_count": 3, "demographic_category": "campus"},
            {"subgroup": "Year 1", "average_score": 70.0, "student_count": 30, "demographic_category": "year"},
        ]

    def test_filter_by_category(self, rows):
        assert [r["subgroup"] for r in metrics.filter_demographics(rows, "year")] == ["Year 1"]

    def test_breakdown_suppresses_and_bands(self, rows):
        result = metrics.demographic_breakdown(rows, "campus")

        assert [r["subgroup"] for r in result] == ["Sault", "Brampton", "Timmins"]
        assert [r["band"] for r in result] == ["high", "medium", None]
        assert result[2]["suppressed"] is True
        assert result[2]["average_score"] is None

    def test_breakdown_custom_threshold(self, rows):
        result = metrics.demographic_breakdown(rows, "campus", threshold=20)
        assert [r["suppressed"] for r in result] == [False, True, True]

    @pytest.mark.parametrize("score,band", [
        (95, ScoreBand.HIGH),
        (90, ScoreBand.MEDIUM),
        (80.1, ScoreBand.MEDIUM),
        (80, ScoreBand.LOW),
        (None, None),
    ])
    def test_score_band(self, score, band):
        assert metrics.score_band(score) is band


class TestQuestions:
    """Tests for question ranking and lookup."""

    @pytest.fixture
    def accuracy(self):
        return [{"Question": f"Q{i:02d}", "Accuracy": a} for i, a in
                enumerate([55, 90, 72, 90, 40, 66, 81], start=1)]

    def test_rank_descending_stable(self, accuracy):
        ranked = metrics.rank_questions(accuracy)
        assert [q["Question"] for q in ranked] == ["Q02", "Q04", "Q07", "Q03", "Q06", "Q01", "Q05"]

    def test_top_five(self, accuracy):
        assert [q["Question"] for q in metrics.top_questions(accuracy)] == \
            ["Q02", "Q04", "Q07", "Q03", "Q06"]

    def test_bottom_five_lowest_first(self, accuracy):
        assert [q["Question"] for q in metrics.bottom_questions(accuracy)] == \
            ["Q05", "Q01", "Q06", "Q03", "Q07"]

    def test_fewer_than_five(self):
        rows = [{"Question": "Q01", "Accuracy": 10}, {"Question": "Q02", "Accuracy": 20}]
        assert [q["Question"] for q in metrics.bottom_questions(rows)] == ["Q01", "Q02"]

    def test_lookup_keys_all_cases(self):
        lookup = metrics.build_question_lookup([{"QID": "q01", "Questions": "Where is help?"}])
        assert lookup == {"q01": "Where is help?", "Q01": "Where is help?"}
        assert metrics.question_text(lookup, "Q01") == "Where is help?"
        assert metrics.question_text(lookup, "q01") == "Where is help?"
        assert metrics.question_text(lookup, "Q99") is None

    def test_lookup_skips_malformed_rows(self):
        assert metrics.build_question_lookup([{"QID": 3, "Questions": "x"}, {"Questions": "y"}]) == {}


class TestScoreDistribution:
    """Tests for the score histogram."""

    def test_bins(self):
        rows = [{"score_percent": s} for s in [5, 25, 45, 65, 85, 95, 100]]
        bins = metrics.score_distribution(rows)

        assert [b.range for b in bins] == ["0-20%", "20-40%", "40-60%", "60-80%", "80-100%"]
        assert [b.count for b in bins] == [1, 1, 1, 1, 3]

    def test_boundary_counts_in_both_bins(self):
        bins = metrics.score_distribution([{"score_percent": 40}])
        assert [b.count for b in bins] == [0, 1, 1, 0, 0]

    def test_out_of_range_ignored(self):
        bins = metrics.score_distribution([{"score_percent": 120}])
        assert sum(b.count for b in bins) == 0


class TestFeatureImportance:
    """Tests for coefficient labelling."""

    def test_labels_by_position(self):
        rows = [{"Total_Coefficient": v} for v in [1.26, 0.84, 0.33, 0.11, 0.05, 0.01]]
        result = metrics.map_feature_importance(rows)

        assert [f.feature for f in result] == [
            "program", "year", "campus", "housing", "status", "Feature 6",
        ]
        assert result[0].importance == 1.3
        assert result[5].importance == 0.0


class TestDetailBreakdown:
    """Tests for detail view breakdowns."""

    def test_sections_in_order(self, students):
        sections = metrics.detail_breakdown(students, DashboardMetric.LITERACY)
        assert [s.category for s in sections] == [
            "Campus", "Year", "Housing", "Status", "Program", "Mental Health Support",
        ]

    def test_literacy_mean_and_suppression(self, students):
        campus = metrics.detail_breakdown(students, DashboardMetric.LITERACY)[0]

        assert campus.data[0] == {"name": "Sault", "value": 80.0, "count": 6, "suppressed": False}
        assert campus.data[1] == {"name": "Brampton", "value": None, "count": 2, "suppressed": True}

    def test_rate_metric(self, students):
        campus = metrics.detail_breakdown(students, DashboardMetric.CRISIS)[0]
        assert campus.data[0]["value"] == 50.0

    def test_mental_health_skips_unsure(self):
        rows = [student(mental_health="Unsure") for _ in range(6)] + \
            [student(mental_health="No") for _ in range(5)]
        section = metrics.detail_breakdown(rows, DashboardMetric.MENTAL_HEALTH)[5]
        assert [d["name"] for d in section.data] == ["No"]
        assert section.data[0]["value"] == 0.0

    def test_program_sorted_with_suppressed_last(self):
        rows = (
            [student(program="Arts", score=60) for _ in range(5)]
            + [student(program="Nursing", score=99) for _ in range(2)]
            + [student(program="BSc", score=85) for _ in range(5)]
        )
        program = metrics.detail_breakdown(rows, DashboardMetric.LITERACY)[4]
        assert [d["name"] for d in program.data] == ["BSc", "Arts", "Nursing"]
        assert program.data[2]["value"] is None

    def test_subgroup_values_rounded(self):
        rows = [student(score=s) for s in [70, 70, 71]]
        stats = metrics.subgroup_stats(rows, "campus", DashboardMetric.LITERACY)
        assert stats[0].value == 70.3


class TestMentalHealthComparison:
    """Tests for the support-access comparison chart."""

    def test_counts_from_students(self, students):
        rows = [
            {"mentalHealth": "No", "score_percent": 80.0},
            {"mentalHealth": "Yes", "score_percent": 50.0},
        ]
        result = metrics.mental_health_comparison(rows, students)

        assert result[0] == {"mentalHealth": "No", "score_percent": 80.0,
                             "student_count": 6, "suppressed": False}
        assert result[1]["suppressed"] is True
        assert result[1]["score_percent"] is None
