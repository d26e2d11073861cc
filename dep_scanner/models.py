# dep_scanner/models.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

CRITICAL = "CRITICAL"
HIGH = "HIGH"
MEDIUM = "MEDIUM"
LOW = "LOW"

# Report order, most severe first
SEVERITIES = (CRITICAL, HIGH, MEDIUM, LOW)
SEVERITY_ORDER = {LOW: 1, MEDIUM: 2, HIGH: 3, CRITICAL: 4}

# Version used when a script dependency declares none
LATEST_RELEASE = "latest.release"


@dataclass(frozen=True)
class Coordinate:
    """
    A declared dependency. Identity is group:artifact:version; scope and the
    direct flag ride along as metadata and do not take part in equality.
    """
    group_id: str
    artifact_id: str
    version: str = ""
    scope: Optional[str] = field(default=None, compare=False)
    is_direct: bool = field(default=True, compare=False)

    @property
    def key(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"

    def sort_key(self) -> tuple[str, str, str]:
        return (self.group_id, self.artifact_id, self.version or "")

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


@dataclass(frozen=True)
class Vulnerability:
    vulnerability_id: str
    dependency: Coordinate
    severity: str = field(compare=False)
    description: str = field(default="No description available.", compare=False)
    published_date: Optional[datetime] = field(default=None, compare=False)
    remediation: str = field(default="", compare=False)
    cvss_score: Optional[float] = field(default=None, compare=False)
    cvss_vector: Optional[str] = field(default=None, compare=False)

    @property
    def severity_rank(self) -> int:
        return SEVERITY_ORDER.get(self.severity, 0)

    def sort_key(self):
        return (-self.severity_rank, self.dependency.sort_key(), self.vulnerability_id)


def max_severity(severities) -> Optional[str]:
    """Highest band among the given severities, None for an empty input."""
    ranked = [s for s in severities if s in SEVERITY_ORDER]
    if not ranked:
        return None
    return max(ranked, key=SEVERITY_ORDER.__getitem__)
