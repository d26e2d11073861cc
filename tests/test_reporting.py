import json
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from dep_scanner.exceptions import ReportError
from dep_scanner.models import CRITICAL, HIGH, LOW, MEDIUM, Coordinate, Vulnerability
from dep_scanner.reporting import (
    HtmlReportEmitter, JsonReportEmitter, build_summary, read_json_report, render_json_report,
)

LIB = Coordinate("org.example", "lib", "1.0.0", scope="compile", is_direct=True)
HTTP = Coordinate("com.ex", "http", "2.3.4", scope="implementation", is_direct=True)
CORE = Coordinate("org.springframework", "spring-core", "5.3.20", scope="compile", is_direct=False)
PUBLISHED = datetime(2021, 12, 10, 10, 15, 9, tzinfo=timezone.utc)
GENERATED = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def sample_vulnerabilities():
    return [
        Vulnerability("CVE-2022-0003", HTTP, LOW, "Low one.", None, "Upgrade to version 2.4.0 or later.", 2.1),
        Vulnerability("CVE-2022-0001", LIB, CRITICAL, "Critical <script>alert(1)</script>", PUBLISHED,
                      "Upgrade to version 1.0.1 or later.", 9.8, "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H"),
        Vulnerability("CVE-2022-0002", CORE, HIGH, "High one.", PUBLISHED, "", 7.5),
        Vulnerability("CVE-2021-0009", LIB, CRITICAL, "Another critical.", None, "", None),
    ]


class TestSummary(unittest.TestCase):
    def test_counts(self):
        summary = build_summary(sample_vulnerabilities())
        self.assertEqual(summary.to_dict(), {"total": 4, "critical": 2, "high": 1, "medium": 0, "low": 1})
        self.assertEqual(summary.count(MEDIUM), 0)

    def test_empty(self):
        self.assertEqual(build_summary([]).to_dict(), {"total": 0, "critical": 0, "high": 0, "medium": 0, "low": 0})


class TestJsonReport(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.out = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_layout(self):
        path = JsonReportEmitter().emit({LIB, HTTP, CORE}, sample_vulnerabilities(), self.out)
        self.assertEqual(path.name, "vulnerability-report.json")
        text = path.read_text(encoding="utf-8")
        self.assertTrue(text.endswith("}\n"))
        self.assertTrue(text.startswith('{\n  "summary": {'))
        document = json.loads(text)
        self.assertEqual(list(document), ["summary", "vulnerabilities"])
        entries = document["vulnerabilities"]
        self.assertEqual([e["vulnerabilityId"] for e in entries],
                         ["CVE-2021-0009", "CVE-2022-0001", "CVE-2022-0002", "CVE-2022-0003"])
        self.assertEqual(list(entries[1]), ["vulnerabilityId", "dependency", "severity", "cvssScore",
                                            "description", "publishedDate", "remediation"])
        self.assertEqual(entries[1]["dependency"], {
            "groupId": "org.example", "artifactId": "lib", "version": "1.0.0",
            "scope": "compile", "directDependency": True,
        })
        self.assertEqual(entries[1]["publishedDate"], "2021-12-10T10:15:09+00:00")
        self.assertIsNone(entries[0]["publishedDate"])
        self.assertFalse(entries[2]["dependency"]["directDependency"])

    def test_output_is_independent_of_input_order(self):
        vulns = sample_vulnerabilities()
        self.assertEqual(render_json_report(vulns), render_json_report(list(reversed(vulns))))

    def test_round_trip_preserves_histogram(self):
        vulns = sample_vulnerabilities()
        path = JsonReportEmitter().emit(set(), vulns, self.out)
        restored = read_json_report(path)
        self.assertEqual(build_summary(restored), build_summary(vulns))
        self.assertEqual(set(restored), set(vulns))
        by_id = {v.vulnerability_id: v for v in restored}
        self.assertEqual(by_id["CVE-2022-0001"].published_date, PUBLISHED)
        self.assertEqual(by_id["CVE-2022-0001"].cvss_score, 9.8)
        self.assertEqual(by_id["CVE-2022-0002"].dependency.is_direct, False)

    def test_read_missing_report(self):
        with self.assertRaises(ReportError):
            read_json_report(self.out / "missing.json")

    def test_write_failure_raises_report_error(self):
        blocker = self.out / "blocker"
        blocker.write_text("not a directory")
        with self.assertRaises(ReportError):
            JsonReportEmitter().emit(set(), [], blocker)


class TestHtmlReport(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.out = Path(self.tmp.name)
        self.emitter = HtmlReportEmitter(now=lambda: GENERATED)

    def tearDown(self):
        self.tmp.cleanup()

    def render(self, vulns):
        return self.emitter.emit(set(), vulns, self.out).read_text(encoding="utf-8")

    def test_sections_in_severity_order(self):
        page = self.render(sample_vulnerabilities())
        critical = page.index("CRITICAL (2)")
        high = page.index("HIGH (1)")
        low = page.index("LOW (1)")
        self.assertLess(critical, high)
        self.assertLess(high, low)
        self.assertNotIn("MEDIUM (", page)
        self.assertEqual(page.count('class="vulnerability critical"'), 2)

    def test_content_is_escaped(self):
        page = self.render(sample_vulnerabilities())
        self.assertNotIn("<script>alert(1)</script>", page)
        self.assertIn("&lt;script&gt;alert(1)&lt;/script&gt;", page)

    def test_header_and_details(self):
        page = self.render(sample_vulnerabilities())
        self.assertIn("2024-05-01 12:00:00", page)
        self.assertIn("Total vulnerabilities: 4", page)
        self.assertIn("org.example:lib:1.0.0", page)
        self.assertIn("Upgrade to version 1.0.1 or later.", page)
        self.assertIn("2021-12-10", page)
        self.assertIn("#dc3545", page)

    def test_empty_report(self):
        page = self.render([])
        self.assertIn("No vulnerabilities found.", page)
        self.assertIn("Total vulnerabilities: 0", page)


if __name__ == '__main__':
    unittest.main()
