# dep_scanner/nvd_client.py
"""
Client for the NVD CVE API 2.0.

One query per coordinate, filtered server-side with a virtual CPE match string
and client-side against the affected version ranges listed in each CVE's
configurations. Requests are spaced at least `request_delay_ms` apart and
retried with exponential back-off on transport errors, 5xx and 429.
"""
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set

import requests

from .exceptions import ConfigError, NetworkError
from .models import Coordinate, Vulnerability
from .severity import classify
from .version import VersionRange, parse_relaxed

logger = logging.getLogger(__name__)

NVD_API_BASE_URL = "https://services.nvd.nist.gov/rest/json/cves/2.0"
RESULTS_PER_PAGE = 2000
DEFAULT_REQUEST_DELAY_MS = 6000
DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_MAX_RETRIES = 3

REJECTED_STATUS = "Rejected"
NO_DESCRIPTION = "No description available."
NO_FIX_REMEDIATION = "No fixed version is listed for this advisory; review it for available mitigations."

# First segment of a reverse-domain groupId that is not the organisation name
DOMAIN_PREFIXES = {
    "org", "com", "net", "io", "dev", "edu", "gov", "info", "biz", "app", "me", "co",
    "ch", "de", "uk", "eu", "fr", "nl", "be", "jp", "cn", "ru", "in", "us", "tech", "ai",
}
CPE_UNQUOTED = re.compile(r'[A-Za-z0-9_.\-]')


def cpe_escape(value: str) -> str:
    return ''.join(c if CPE_UNQUOTED.match(c) else '\\' + c for c in value)


def cpe_vendor(group_id: str) -> str:
    """org.apache.logging.log4j -> apache, com.fasterxml.jackson.core -> fasterxml, junit -> junit."""
    parts = [p for p in group_id.lower().split('.') if p]
    if not parts:
        return '*'
    if len(parts) >= 2 and parts[0] in DOMAIN_PREFIXES:
        return parts[1]
    return parts[0]


def is_concrete_version(version: Optional[str]) -> bool:
    """False for empty, sentinel, dynamic or otherwise unparseable versions."""
    return parse_relaxed(version) is not None


def virtual_match_string(coordinate: Coordinate) -> str:
    version = coordinate.version if is_concrete_version(coordinate.version) else None
    return "cpe:2.3:a:{}:{}:{}".format(
        cpe_escape(cpe_vendor(coordinate.group_id)),
        cpe_escape(coordinate.artifact_id.lower()),
        cpe_escape(version) if version else '*',
    )


# --- CVE post-processing ---

@dataclass(frozen=True)
class AffectedRange:
    range: VersionRange
    fixed_in: Optional[str] = None
    last_affected: Optional[str] = None


def _cpe_fields(criteria: str) -> Optional[List[str]]:
    if not criteria or not criteria.startswith("cpe:2.3:"):
        return None
    # Split on ':' not preceded by the CPE escape character
    fields = re.split(r'(?<!\\):', criteria)
    return fields if len(fields) >= 6 else None


def _product_matches(product: str, artifact_id: str) -> bool:
    def norm(s):
        return s.replace('\\', '').replace('_', '-').lower()
    return norm(product) == norm(artifact_id)


def _range_from_match(match: dict, cpe_version: str) -> Optional[AffectedRange]:
    start_inc = match.get('versionStartIncluding')
    start_exc = match.get('versionStartExcluding')
    end_inc = match.get('versionEndIncluding')
    end_exc = match.get('versionEndExcluding')
    # Legacy feeds occasionally carry a bare versionEnd; treated as exclusive
    end_exc = end_exc or match.get('versionEnd')

    if not any((start_inc, start_exc, end_inc, end_exc)):
        if cpe_version in ('*', ''):
            return AffectedRange(VersionRange.unbounded())
        if cpe_version == '-':
            return None
        exact = parse_relaxed(cpe_version.replace('\\', ''))
        if exact is None:
            return None
        return AffectedRange(VersionRange.exact(exact), last_affected=cpe_version.replace('\\', ''))

    lower_text = start_inc or start_exc
    upper_text = end_inc or end_exc
    lower = parse_relaxed(lower_text) if lower_text else None
    upper = parse_relaxed(upper_text) if upper_text else None
    if (lower_text and lower is None) or (upper_text and upper is None):
        logger.debug(f"Unparseable range bound in {match.get('criteria')}")
        return None
    try:
        version_range = VersionRange(lower, upper, include_lower=bool(start_inc), include_upper=bool(end_inc))
    except ValueError as e:
        logger.debug(f"Ignoring inverted range in {match.get('criteria')}: {e}")
        return None
    return AffectedRange(version_range, fixed_in=end_exc, last_affected=end_inc)


def _iter_cpe_matches(nodes):
    for node in nodes or []:
        if not isinstance(node, dict):
            continue
        for match in node.get('cpeMatch') or []:
            if isinstance(match, dict):
                yield match
        yield from _iter_cpe_matches(node.get('children'))


def affected_ranges(cve: dict, coordinate: Coordinate) -> List[AffectedRange]:
    """Version ranges from the vulnerable cpeMatch entries naming this artifact."""
    ranges = []
    for config in cve.get('configurations') or []:
        for match in _iter_cpe_matches(config.get('nodes') if isinstance(config, dict) else None):
            if not match.get('vulnerable', False):
                continue
            fields = _cpe_fields(match.get('criteria', ''))
            if fields is None or not _product_matches(fields[4], coordinate.artifact_id):
                continue
            affected = _range_from_match(match, fields[5])
            if affected is not None:
                ranges.append(affected)
    return ranges


def version_is_affected(version: Optional[str], ranges: List[AffectedRange]) -> bool:
    if not ranges:
        return True
    parsed = parse_relaxed(version)
    if parsed is None:
        return True
    return any(r.range.contains(parsed) for r in ranges)


def remediation_text(version: Optional[str], ranges: List[AffectedRange]) -> str:
    parsed = parse_relaxed(version)
    relevant = [r for r in ranges if parsed is None or r.range.contains(parsed)]
    fixes = [r for r in relevant if r.fixed_in and parse_relaxed(r.fixed_in) is not None]
    if fixes:
        best = max(fixes, key=lambda r: parse_relaxed(r.fixed_in))
        return f"Upgrade to version {best.fixed_in} or later."
    last = [r for r in relevant if r.last_affected and parse_relaxed(r.last_affected) is not None]
    if last:
        best = max(last, key=lambda r: parse_relaxed(r.last_affected))
        return f"Upgrade to a version later than {best.last_affected}."
    return NO_FIX_REMEDIATION


def english_description(cve: dict) -> str:
    for desc in cve.get('descriptions') or []:
        if isinstance(desc, dict) and desc.get('lang') == 'en' and desc.get('value'):
            return desc['value'].strip()
    return NO_DESCRIPTION


def parse_published(value) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        published = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        logger.debug(f"Unparseable published date '{value}'")
        return None
    if published.tzinfo is None:
        # NVD timestamps are UTC
        published = published.replace(tzinfo=timezone.utc)
    return published


class NvdClient:
    """Rate-limited NVD CVE API client. Owns a single requests.Session."""

    def __init__(self, api_key: Optional[str], request_delay_ms: int = DEFAULT_REQUEST_DELAY_MS,
                 base_url: str = NVD_API_BASE_URL,
                 connect_timeout: float = DEFAULT_TIMEOUT_SECONDS,
                 read_timeout: float = DEFAULT_TIMEOUT_SECONDS,
                 max_retries: int = DEFAULT_MAX_RETRIES,
                 session=None, sleep=time.sleep, clock=time.monotonic):
        if not api_key or not str(api_key).strip():
            raise ConfigError("NVD API key is missing; set nvd.api.key in the configuration file")
        if request_delay_ms < 0:
            raise ConfigError(f"nvd.request.delay.ms must not be negative (got {request_delay_ms})")
        self.base_url = base_url
        self.delay = request_delay_ms / 1000.0
        self.timeout = (connect_timeout, read_timeout)
        self.max_retries = max_retries
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({'apiKey': str(api_key).strip()})
        self._sleep = sleep
        self._clock = clock
        self._last_request_at = None

    def scan(self, coordinates: Iterable[Coordinate]) -> Set[Vulnerability]:
        findings: Set[Vulnerability] = set()
        ordered = sorted(set(coordinates), key=Coordinate.sort_key)
        logger.info(f"Querying NVD for {len(ordered)} dependencies")
        for index, coordinate in enumerate(ordered, 1):
            logger.debug(f"[{index}/{len(ordered)}] {coordinate}")
            try:
                items = self.fetch_cves(coordinate)
            except NetworkError as e:
                logger.error(f"Skipping {coordinate}: {e}")
                continue
            for item in items:
                vulnerability = self.to_vulnerability(item, coordinate)
                if vulnerability is not None and vulnerability not in findings:
                    findings.add(vulnerability)
        logger.info(f"Found {len(findings)} vulnerabilities")
        return findings

    def fetch_cves(self, coordinate: Coordinate) -> List[dict]:
        """All CVE items matching the coordinate's CPE, following pagination."""
        params = {
            'virtualMatchString': virtual_match_string(coordinate),
            'resultsPerPage': RESULTS_PER_PAGE,
            'startIndex': 0,
        }
        items: List[dict] = []
        while True:
            data = self._request(params)
            page = data.get('vulnerabilities') or []
            if not isinstance(page, list):
                raise NetworkError(f"Unexpected 'vulnerabilities' value from CVE service: {type(page).__name__}")
            items.extend(page)
            total = data.get('totalResults')
            if not isinstance(total, int):
                total = len(items)
            if not page or len(items) >= total:
                return items
            params = dict(params, startIndex=len(items))

    def to_vulnerability(self, item: dict, coordinate: Coordinate) -> Optional[Vulnerability]:
        cve = item.get('cve') if isinstance(item, dict) else None
        if not isinstance(cve, dict) or not cve.get('id'):
            logger.debug(f"Ignoring malformed CVE entry for {coordinate}")
            return None
        if cve.get('vulnStatus') == REJECTED_STATUS:
            logger.debug(f"Ignoring rejected {cve['id']}")
            return None
        ranges = affected_ranges(cve, coordinate)
        if not version_is_affected(coordinate.version, ranges):
            logger.debug(f"{cve['id']} does not affect {coordinate}")
            return None
        severity, score, vector = classify(cve.get('metrics'))
        return Vulnerability(
            vulnerability_id=cve['id'],
            dependency=coordinate,
            severity=severity,
            description=english_description(cve),
            published_date=parse_published(cve.get('published')),
            remediation=remediation_text(coordinate.version, ranges),
            cvss_score=score,
            cvss_vector=vector,
        )

    def _wait_for_slot(self):
        if self._last_request_at is None:
            return
        remaining = self.delay - (self._clock() - self._last_request_at)
        if remaining > 0:
            self._sleep(remaining)

    def _request(self, params: dict) -> dict:
        attempt = 0
        while True:
            self._wait_for_slot()
            self._last_request_at = self._clock()
            try:
                response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                error = NetworkError(f"Request to CVE service failed: {e}")
                backoff = self.delay * (2 ** attempt)
            else:
                status = response.status_code
                if status == 200:
                    try:
                        data = response.json()
                    except ValueError as e:
                        raise NetworkError(f"Invalid JSON from CVE service: {e}", status) from e
                    if not isinstance(data, dict):
                        raise NetworkError(f"Unexpected response body from CVE service: {type(data).__name__}", status)
                    return data
                if status == 429:
                    error = NetworkError("Rate limited by CVE service (HTTP 429)", status)
                    backoff = 2 * self.delay
                elif status >= 500:
                    error = NetworkError(f"CVE service returned HTTP {status}", status)
                    backoff = self.delay * (2 ** attempt)
                else:
                    raise NetworkError(f"CVE service rejected the request (HTTP {status})", status)

            if attempt >= self.max_retries:
                raise NetworkError(f"{error.message}; giving up after {attempt + 1} attempts",
                                   error.status_code)
            attempt += 1
            logger.warning(f"{error.message}; retry {attempt}/{self.max_retries} in {backoff:.1f}s")
            self._sleep(backoff)
