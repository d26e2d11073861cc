# dep_scanner/severity.py
import logging
from typing import Optional

from cvss import CVSS2, CVSS3
from cvss.exceptions import CVSSError

from .models import CRITICAL, HIGH, MEDIUM, LOW

logger = logging.getLogger(__name__)

# NVD metric blocks, most preferred first
METRIC_KEYS = ('cvssMetricV40', 'cvssMetricV31', 'cvssMetricV30', 'cvssMetricV2')


def severity_from_score(score) -> str:
    """Maps a CVSS base score onto a severity band."""
    score = float(score)
    if score >= 9.0:
        return CRITICAL
    if score >= 7.0:
        return HIGH
    if score >= 4.0:
        return MEDIUM
    return LOW


def severity_from_label(label) -> Optional[str]:
    if not isinstance(label, str):
        return None
    label = label.strip().upper()
    if label in (CRITICAL, HIGH, MEDIUM, LOW):
        return label
    if label == "NONE":
        return LOW
    return None


def score_from_vector(vector) -> Optional[float]:
    """Base score computed from a CVSS v3.x or v2 vector string, None if it cannot be parsed."""
    if not isinstance(vector, str) or not vector.strip():
        return None
    vector = vector.strip()
    try:
        if vector.startswith("CVSS:3"):
            return float(CVSS3(vector).base_score)
        return float(CVSS2(vector).base_score)
    except (CVSSError, ValueError, KeyError, IndexError) as e:
        logger.debug(f"Could not parse CVSS vector '{vector}': {e}")
        return None


def _pick_metric(metrics: dict) -> Optional[dict]:
    for key in METRIC_KEYS:
        entries = metrics.get(key) or []
        if not entries:
            continue
        # NVD lists its own 'Primary' assessment first when present
        for entry in entries:
            if isinstance(entry, dict) and entry.get('type') == 'Primary':
                return entry
        if isinstance(entries[0], dict):
            return entries[0]
    return None


def classify(metrics) -> tuple[str, Optional[float], Optional[str]]:
    """
    Picks the best CVSS block from an NVD 'metrics' object and returns
    (severity, score, vector). A numeric score wins over a label; a vector
    stands in for a missing score. With nothing usable the result is LOW.
    """
    if not isinstance(metrics, dict):
        return LOW, None, None
    metric = _pick_metric(metrics)
    if metric is None:
        return LOW, None, None

    cvss_data = metric.get('cvssData') or {}
    vector = cvss_data.get('vectorString')
    score = cvss_data.get('baseScore')
    if score is not None:
        try:
            score = float(score)
        except (TypeError, ValueError):
            score = None
    if score is None:
        score = score_from_vector(vector)
    if score is not None:
        return severity_from_score(score), score, vector

    # v2 keeps the label beside cvssData rather than inside it
    label = cvss_data.get('baseSeverity') or metric.get('baseSeverity')
    return severity_from_label(label) or LOW, None, vector
