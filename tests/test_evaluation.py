import unittest

from campus_connect import CriterionScore, Evaluation, grade_for, summarize
from campus_connect.evaluation import (
    STATUS_PENDING,
    STATUS_SUBMITTED,
    apply_scores,
    completion_percentage,
    compute_total,
    validate_score,
)


def _evaluation(total: float, status: str = STATUS_SUBMITTED, scores: tuple = ()) -> Evaluation:
    criteria = tuple(
        CriterionScore(name, max_score, score)
        for (name, max_score), score in zip((("Methodology", 50), ("Implementation", 50)), scores)
    )
    return Evaluation(
        project_id="p1",
        assessor_id=f"a{total}",
        assessor_name="Assessor",
        assessor_role="Supervisor",
        criteria=criteria,
        total_score=total,
        status=status,
    )


class TestSummarize(unittest.TestCase):
    def test_empty_list_returns_zeroed_summary(self) -> None:
        summary = summarize([])

        self.assertEqual(summary.average_total, 0)
        self.assertEqual(summary.submitted_count, 0)
        self.assertEqual(summary.total_count, 0)
        self.assertEqual(summary.criteria_summary, [])

    def test_pending_evaluations_are_ignored(self) -> None:
        summary = summarize([_evaluation(80), _evaluation(50, STATUS_PENDING)])

        self.assertEqual(summary.average_total, 80)
        self.assertEqual(summary.submitted_count, 1)
        self.assertEqual(summary.total_count, 2)

    def test_only_pending_evaluations_give_zero_average(self) -> None:
        summary = summarize([_evaluation(50, STATUS_PENDING, (20, 30))])

        self.assertEqual(summary.average_total, 0)
        self.assertEqual(summary.total_count, 1)
        self.assertEqual(summary.criteria_summary, [])

    def test_averages_totals_and_criteria(self) -> None:
        summary = summarize([_evaluation(70, scores=(30, 40)), _evaluation(90, scores=(40, 50))])

        self.assertEqual(summary.average_total, 80)
        self.assertEqual([item.name for item in summary.criteria_summary], ["Methodology", "Implementation"])
        self.assertEqual([item.average for item in summary.criteria_summary], [35, 45])
        self.assertEqual(summary.criteria_summary[0].max_score, 50)
        self.assertEqual(summary.criteria_summary[0].percentage, 70)

    def test_missing_scores_are_excluded_from_criterion_average(self) -> None:
        summary = summarize([_evaluation(10, scores=(10, None)), _evaluation(0, scores=(None, None))])

        self.assertEqual(summary.criteria_summary[0].average, 10)
        self.assertEqual(summary.criteria_summary[1].average, 0)

    def test_criteria_follow_first_submitted_evaluation(self) -> None:
        shorter = _evaluation(40, scores=(40,))
        longer = _evaluation(60, scores=(20, 40))

        summary = summarize([_evaluation(0, STATUS_PENDING, (1, 1)), shorter, longer])

        self.assertEqual(len(summary.criteria_summary), 1)
        self.assertEqual(summary.criteria_summary[0].average, 30)

    def test_summary_grade_and_dict(self) -> None:
        payload = summarize([_evaluation(85, scores=(40, 45))]).to_dict()

        self.assertEqual(payload["grade"], {"grade": "A", "label": "Excellent"})
        self.assertEqual(payload["submitted_count"], 1)
        self.assertEqual(payload["criteria_summary"][1]["average"], 45)


class TestGradeFor(unittest.TestCase):
    def test_band_boundaries(self) -> None:
        cases = [
            (100, "A"),
            (85, "A"),
            (84.999, "B"),
            (70, "B"),
            (69.9, "C"),
            (55, "C"),
            (54.99, "D"),
            (40, "D"),
            (39.999, "F"),
            (0, "F"),
        ]
        for score, letter in cases:
            with self.subTest(score=score):
                self.assertEqual(grade_for(score).letter, letter)

    def test_labels(self) -> None:
        self.assertEqual(str(grade_for(72)), "B (Good)")
        self.assertEqual(str(grade_for(10)), "F (Fail)")


class TestScoreHelpers(unittest.TestCase):
    def setUp(self) -> None:
        self.criteria = (
            CriterionScore("Methodology", 25),
            CriterionScore("Implementation", 30, 20),
        )

    def test_compute_total_skips_unscored(self) -> None:
        self.assertEqual(compute_total(self.criteria), 20)

    def test_completion_percentage(self) -> None:
        self.assertEqual(completion_percentage(self.criteria), 50)
        self.assertEqual(completion_percentage([]), 0)

    def test_validate_score_bounds(self) -> None:
        self.assertEqual(validate_score(self.criteria[0], 25), 25)
        self.assertEqual(validate_score(self.criteria[0], "12"), 12)
        with self.assertRaises(ValueError):
            validate_score(self.criteria[0], 26)
        with self.assertRaises(ValueError):
            validate_score(self.criteria[0], -1)
        with self.assertRaises(ValueError):
            validate_score(self.criteria[0], "high")

    def test_validate_score_rejects_non_finite_values(self) -> None:
        for value in ("nan", float("nan"), "inf", float("-inf")):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    validate_score(self.criteria[0], value)
        with self.assertRaises(ValueError):
            apply_scores(self.criteria, scores=["nan"])

    def test_apply_scores_keeps_values_for_none_entries(self) -> None:
        updated = apply_scores(self.criteria, scores=[18, None], comments=["Solid", None])

        self.assertEqual(updated[0].score, 18)
        self.assertEqual(updated[0].comment, "Solid")
        self.assertEqual(updated[1].score, 20)

    def test_apply_scores_rejects_extra_entries(self) -> None:
        with self.assertRaises(ValueError):
            apply_scores(self.criteria, scores=[1, 2, 3])

    def test_apply_scores_rejects_non_list(self) -> None:
        with self.assertRaises(ValueError):
            apply_scores(self.criteria, scores={"Methodology": 10})


if __name__ == "__main__":
    unittest.main()
