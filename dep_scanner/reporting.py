# dep_scanner/reporting.py
import html
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List

from .exceptions import ReportError
from .models import CRITICAL, HIGH, LOW, MEDIUM, SEVERITIES, Coordinate, Vulnerability

logger = logging.getLogger(__name__)

HTML_REPORT_FILENAME = "vulnerability-report.html"
JSON_REPORT_FILENAME = "vulnerability-report.json"


@dataclass(frozen=True)
class ReportSummary:
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    def count(self, severity: str) -> int:
        return getattr(self, severity.lower(), 0)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
        }


def build_summary(vulnerabilities: Iterable[Vulnerability]) -> ReportSummary:
    counts = {CRITICAL: 0, HIGH: 0, MEDIUM: 0, LOW: 0}
    for vuln in vulnerabilities:
        counts[vuln.severity] = counts.get(vuln.severity, 0) + 1
    return ReportSummary(
        total=sum(counts.values()),
        critical=counts[CRITICAL],
        high=counts[HIGH],
        medium=counts[MEDIUM],
        low=counts[LOW],
    )


def sort_vulnerabilities(vulnerabilities: Iterable[Vulnerability]) -> List[Vulnerability]:
    return sorted(vulnerabilities, key=Vulnerability.sort_key)


def write_text(path: Path, content: str) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8', newline='\n') as f:
            f.write(content)
    except OSError as e:
        raise ReportError(f"Could not write {path}: {e}") from e
    logger.info(f"Report saved to: {path.resolve()}")
    return path


# --- JSON ---

def vulnerability_to_dict(vuln: Vulnerability) -> dict:
    dep = vuln.dependency
    return {
        "vulnerabilityId": vuln.vulnerability_id,
        "dependency": {
            "groupId": dep.group_id,
            "artifactId": dep.artifact_id,
            "version": dep.version,
            "scope": dep.scope,
            "directDependency": dep.is_direct,
        },
        "severity": vuln.severity,
        "cvssScore": float(vuln.cvss_score) if vuln.cvss_score is not None else None,
        "description": vuln.description,
        "publishedDate": vuln.published_date.isoformat() if vuln.published_date else None,
        "remediation": vuln.remediation,
    }


def vulnerability_from_dict(entry: dict) -> Vulnerability:
    dep = entry["dependency"]
    published = entry.get("publishedDate")
    return Vulnerability(
        vulnerability_id=entry["vulnerabilityId"],
        dependency=Coordinate(
            dep["groupId"], dep["artifactId"], dep.get("version") or "",
            scope=dep.get("scope"), is_direct=dep.get("directDependency", True),
        ),
        severity=entry["severity"],
        description=entry.get("description") or "",
        published_date=datetime.fromisoformat(published) if published else None,
        remediation=entry.get("remediation") or "",
        cvss_score=entry.get("cvssScore"),
    )


def render_json_report(vulnerabilities: Iterable[Vulnerability]) -> str:
    ordered = sort_vulnerabilities(vulnerabilities)
    document = {
        "summary": build_summary(ordered).to_dict(),
        "vulnerabilities": [vulnerability_to_dict(v) for v in ordered],
    }
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def read_json_report(path) -> List[Vulnerability]:
    """Parses a report written by JsonReportEmitter back into Vulnerability objects."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            document = json.load(f)
        return [vulnerability_from_dict(entry) for entry in document.get("vulnerabilities", [])]
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise ReportError(f"Could not read JSON report {path}: {e}") from e


class JsonReportEmitter:
    name = "JSON report"
    filename = JSON_REPORT_FILENAME

    def emit(self, dependencies, vulnerabilities, output_dir) -> Path:
        return write_text(Path(output_dir) / self.filename, render_json_report(vulnerabilities))


# --- HTML ---

HTML_CSS = """<style>
body { font-family: sans-serif; margin: 20px; background-color: #f4f7f6; color: #333; }
h1 { color: #333; border-bottom: 2px solid #6c7ae0; padding-bottom: 10px; }
h2 { margin-top: 1.5em; }
p { line-height: 1.6; }
.summary span { display: inline-block; margin-right: 1.5em; font-weight: bold; }
.vulnerability { background-color: #fff; border-left: 6px solid #999; margin: 1em 0; padding: 10px 15px; box-shadow: 0 2px 8px rgba(0,0,0,0.1); }
.vulnerability h3 { margin: 0 0 0.5em 0; }
.vulnerability.critical { border-left-color: #dc3545; }
.vulnerability.high { border-left-color: #fd7e14; }
.vulnerability.medium { border-left-color: #ffc107; }
.vulnerability.low { border-left-color: #28a745; }
.severity-CRITICAL { color: #dc3545; font-weight: bold; } .severity-HIGH { color: #fd7e14; font-weight: bold; }
.severity-MEDIUM { color: #b8860b; } .severity-LOW { color: #28a745; }
pre { white-space: pre-wrap; word-wrap: break-word; margin: 0; font-family: inherit; font-size: 0.95em; }
</style>"""


def _render_entry(vuln: Vulnerability) -> str:
    severity = vuln.severity
    score = f" ({vuln.cvss_score:.1f})" if vuln.cvss_score is not None else ""
    published = vuln.published_date.strftime("%Y-%m-%d") if vuln.published_date else "N/A"
    return (
        f'<div class="vulnerability {severity.lower()}">'
        f'<h3>{html.escape(vuln.vulnerability_id)}</h3>'
        f'<p><strong>Dependency:</strong> {html.escape(str(vuln.dependency))}</p>'
        f'<p><strong>Severity:</strong> <span class="severity-{severity}">{html.escape(severity)}{score}</span></p>'
        f'<p><strong>Description:</strong></p><pre>{html.escape(vuln.description)}</pre>'
        f'<p><strong>Published:</strong> {html.escape(published)}</p>'
        f'<p><strong>Remediation:</strong> {html.escape(vuln.remediation or "N/A")}</p>'
        f'</div>\n'
    )


def render_html_report(vulnerabilities: Iterable[Vulnerability], generated_at: datetime) -> str:
    ordered = sort_vulnerabilities(vulnerabilities)
    summary = build_summary(ordered)
    content = (
        '<!DOCTYPE html><html lang="en"><head><meta charset="UTF-8">'
        f'<title>Dependency Vulnerability Report</title>{HTML_CSS}</head><body>\n'
        '<h1>Dependency Vulnerability Report</h1>\n'
        f'<p>Generated: {html.escape(generated_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip())}</p>\n'
        f'<p>Total vulnerabilities: {summary.total}</p>\n'
        '<div class="summary">'
        + ''.join(f'<span class="severity-{s}">{s}: {summary.count(s)}</span>' for s in SEVERITIES)
        + '</div>\n'
    )
    if not ordered:
        content += "<p>No vulnerabilities found.</p>\n"
    for severity in SEVERITIES:
        section = [v for v in ordered if v.severity == severity]
        if not section:
            continue
        content += f'<h2 class="severity-{severity}">{severity} ({len(section)})</h2>\n'
        content += ''.join(_render_entry(v) for v in section)
    content += "</body></html>\n"
    return content


class HtmlReportEmitter:
    name = "HTML report"
    filename = HTML_REPORT_FILENAME

    def __init__(self, now: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self._now = now

    def emit(self, dependencies, vulnerabilities, output_dir) -> Path:
        return write_text(Path(output_dir) / self.filename,
                          render_html_report(vulnerabilities, self._now()))
