import itertools
import random
import unittest

from mindcare.backend.app import triage_engine
from mindcare.backend.app.triage_engine import InvalidInput, RiskLevel, classify


def phq9_with_total(total, self_harm=0):
    answers = [0] * 9
    answers[8] = self_harm
    remaining = total - self_harm
    for index in range(8):
        step = min(3, remaining)
        answers[index] = step
        remaining -= step
    assert remaining == 0
    return answers


def gad7_with_total(total):
    answers = [0] * 7
    remaining = total
    for index in range(7):
        step = min(3, remaining)
        answers[index] = step
        remaining -= step
    assert remaining == 0
    return answers


class ClassifyTests(unittest.TestCase):
    def test_all_zero_is_low(self):
        self.assertEqual(classify([0] * 9, [0] * 7), RiskLevel.LOW)

    def test_all_max_is_crisis(self):
        self.assertEqual(classify([3] * 9, [3] * 7), RiskLevel.CRISIS)

    def test_all_max_without_self_harm_still_crisis_from_scores(self):
        phq9 = [3] * 8 + [0]
        self.assertEqual(classify(phq9, [3] * 7), RiskLevel.CRISIS)

    def test_self_harm_item_alone_forces_crisis(self):
        self.assertEqual(classify([0, 0, 0, 0, 0, 0, 0, 0, 1], [0] * 7), RiskLevel.CRISIS)

    def test_self_harm_item_forces_crisis_for_every_other_answer(self):
        rng = random.Random(7)
        for _ in range(200):
            phq9 = [rng.randint(0, 3) for _ in range(8)] + [rng.randint(1, 3)]
            gad7 = [rng.randint(0, 3) for _ in range(7)]
            self.assertEqual(classify(phq9, gad7), RiskLevel.CRISIS)

    def test_phq9_above_nineteen_is_crisis(self):
        self.assertEqual(classify(phq9_with_total(20), [0] * 7), RiskLevel.CRISIS)

    def test_phq9_of_nineteen_is_elevated(self):
        self.assertEqual(classify(phq9_with_total(19), [0] * 7), RiskLevel.ELEVATED)

    def test_phq9_of_ten_is_elevated(self):
        self.assertEqual(classify(phq9_with_total(10), [0] * 7), RiskLevel.ELEVATED)

    def test_gad7_above_fourteen_is_crisis(self):
        self.assertEqual(classify([0] * 9, gad7_with_total(15)), RiskLevel.CRISIS)

    def test_gad7_of_fourteen_is_elevated(self):
        self.assertEqual(classify([0] * 9, gad7_with_total(14)), RiskLevel.ELEVATED)

    def test_gad7_of_ten_is_elevated(self):
        self.assertEqual(classify([0] * 9, gad7_with_total(10)), RiskLevel.ELEVATED)

    def test_both_nine_is_low(self):
        self.assertEqual(classify(phq9_with_total(9), gad7_with_total(9)), RiskLevel.LOW)

    def test_accepts_tuples(self):
        self.assertEqual(classify(tuple([0] * 9), tuple([0] * 7)), RiskLevel.LOW)

    def test_total_and_deterministic_over_sampled_inputs(self):
        rng = random.Random(42)
        for _ in range(500):
            phq9 = [rng.randint(0, 3) for _ in range(9)]
            gad7 = [rng.randint(0, 3) for _ in range(7)]
            first = classify(phq9, gad7)
            self.assertIn(first, set(RiskLevel))
            self.assertEqual(first, classify(list(phq9), list(gad7)))

    def test_exhaustive_phq9_totals_against_thresholds(self):
        for phq_total, gad_total in itertools.product(range(0, 25), range(0, 22)):
            level = classify(phq9_with_total(phq_total), gad7_with_total(gad_total))
            if phq_total > 19 or gad_total > 14:
                self.assertEqual(level, RiskLevel.CRISIS)
            elif phq_total > 9 or gad_total > 9:
                self.assertEqual(level, RiskLevel.ELEVATED)
            else:
                self.assertEqual(level, RiskLevel.LOW)


class InvalidInputTests(unittest.TestCase):
    def test_short_phq9_rejected(self):
        with self.assertRaises(InvalidInput):
            classify([0] * 8, [0] * 7)

    def test_short_gad7_rejected(self):
        with self.assertRaises(InvalidInput):
            classify([0] * 9, [0] * 6)

    def test_long_sequence_rejected(self):
        with self.assertRaises(InvalidInput):
            classify([0] * 10, [0] * 7)

    def test_out_of_range_rejected(self):
        with self.assertRaises(InvalidInput):
            classify([0] * 8 + [4], [0] * 7)
        with self.assertRaises(InvalidInput):
            classify([0] * 9, [-1] + [0] * 6)

    def test_non_integer_rejected(self):
        with self.assertRaises(InvalidInput):
            classify([0] * 8 + [1.0], [0] * 7)
        with self.assertRaises(InvalidInput):
            classify([0] * 8 + [True], [0] * 7)
        with self.assertRaises(InvalidInput):
            classify("000000000", [0] * 7)

    def test_missing_sequence_rejected(self):
        with self.assertRaises(InvalidInput):
            classify(None, [0] * 7)

    def test_invalid_input_is_a_value_error(self):
        self.assertTrue(issubclass(InvalidInput, ValueError))


class TriageOutcomeTests(unittest.TestCase):
    def test_scores_are_derived_from_answers(self):
        result = triage_engine.assess([1, 2, 3, 0, 1, 2, 3, 0, 0], [3, 3, 0, 0, 1, 1, 2])
        self.assertEqual(result.phq9_score, 12)
        self.assertEqual(result.gad7_score, 10)

    def test_destinations(self):
        self.assertEqual(triage_engine.destination_for(RiskLevel.CRISIS), "crisis")
        self.assertEqual(triage_engine.destination_for(RiskLevel.ELEVATED), "results")
        self.assertEqual(triage_engine.destination_for(RiskLevel.LOW), "selfhelp")

    def test_severity_bands(self):
        bands = triage_engine.PHQ9_SEVERITY_BANDS
        self.assertEqual(triage_engine.severity_band(0, bands), "minimal")
        self.assertEqual(triage_engine.severity_band(10, bands), "moderate")
        self.assertEqual(triage_engine.severity_band(27, bands), "severe")
        self.assertEqual(triage_engine.severity_band(15, triage_engine.GAD7_SEVERITY_BANDS), "severe")

    def test_triage_reports_self_harm_reason(self):
        outcome = triage_engine.triage([0] * 8 + [2], [0] * 7)
        self.assertEqual(outcome.risk_level, RiskLevel.CRISIS)
        self.assertEqual(outcome.destination, "crisis")
        self.assertIn("Reported thoughts of self-harm", outcome.reasons)

    def test_triage_low_has_no_reasons(self):
        outcome = triage_engine.triage([0] * 9, [0] * 7)
        self.assertEqual(outcome.risk_level, RiskLevel.LOW)
        self.assertEqual(outcome.reasons, [])
        self.assertEqual(outcome.phq9_severity, "minimal")


if __name__ == "__main__":
    unittest.main()
