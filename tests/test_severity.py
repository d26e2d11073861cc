import unittest

from dep_scanner.models import CRITICAL, HIGH, LOW, MEDIUM, SEVERITY_ORDER
from dep_scanner.severity import classify, score_from_vector, severity_from_label, severity_from_score

CRITICAL_V31 = "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H"


class TestSeverityMapping(unittest.TestCase):
    def test_score_bands(self):
        cases = [(10.0, CRITICAL), (9.8, CRITICAL), (9.0, CRITICAL), (8.9, HIGH), (7.0, HIGH),
                 (6.9, MEDIUM), (4.0, MEDIUM), (3.9, LOW), (0.0, LOW)]
        for score, expected in cases:
            self.assertEqual(severity_from_score(score), expected, score)

    def test_score_is_monotone(self):
        previous = 0
        for tenth in range(0, 101):
            rank = SEVERITY_ORDER[severity_from_score(tenth / 10)]
            self.assertGreaterEqual(rank, previous)
            previous = rank

    def test_labels(self):
        self.assertEqual(severity_from_label("critical"), CRITICAL)
        self.assertEqual(severity_from_label("HIGH"), HIGH)
        self.assertEqual(severity_from_label("NONE"), LOW)
        self.assertIsNone(severity_from_label("bogus"))
        self.assertIsNone(severity_from_label(None))

    def test_score_from_vector(self):
        self.assertAlmostEqual(score_from_vector(CRITICAL_V31), 9.8)
        self.assertAlmostEqual(score_from_vector("AV:N/AC:L/Au:N/C:C/I:C/A:C"), 10.0)
        self.assertIsNone(score_from_vector("garbage"))
        self.assertIsNone(score_from_vector(None))


class TestClassify(unittest.TestCase):
    def test_score_wins(self):
        metrics = {"cvssMetricV31": [{"type": "Primary", "cvssData": {
            "baseScore": 9.8, "vectorString": CRITICAL_V31, "baseSeverity": "LOW"}}]}
        self.assertEqual(classify(metrics), (CRITICAL, 9.8, CRITICAL_V31))

    def test_vector_used_when_score_missing(self):
        metrics = {"cvssMetricV30": [{"cvssData": {"vectorString": CRITICAL_V31}}]}
        severity, score, vector = classify(metrics)
        self.assertEqual(severity, CRITICAL)
        self.assertAlmostEqual(score, 9.8)

    def test_label_only(self):
        metrics = {"cvssMetricV31": [{"cvssData": {"baseSeverity": "HIGH"}}]}
        self.assertEqual(classify(metrics), (HIGH, None, None))

    def test_v2_label_lives_beside_cvss_data(self):
        metrics = {"cvssMetricV2": [{"cvssData": {}, "baseSeverity": "MEDIUM"}]}
        self.assertEqual(classify(metrics)[0], MEDIUM)

    def test_prefers_newer_metric_version(self):
        metrics = {
            "cvssMetricV2": [{"cvssData": {"baseScore": 5.0}}],
            "cvssMetricV31": [{"cvssData": {"baseScore": 7.5}}],
        }
        self.assertEqual(classify(metrics)[:2], (HIGH, 7.5))

    def test_primary_entry_preferred(self):
        metrics = {"cvssMetricV31": [
            {"type": "Secondary", "cvssData": {"baseScore": 5.0}},
            {"type": "Primary", "cvssData": {"baseScore": 9.1}},
        ]}
        self.assertEqual(classify(metrics)[0], CRITICAL)

    def test_nothing_usable_defaults_to_low(self):
        self.assertEqual(classify({}), (LOW, None, None))
        self.assertEqual(classify(None), (LOW, None, None))
        self.assertEqual(classify({"cvssMetricV31": [{"cvssData": {"baseSeverity": "NONE"}}]})[0], LOW)


if __name__ == '__main__':
    unittest.main()
