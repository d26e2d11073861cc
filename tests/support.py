# tests/support.py
"""Test doubles for the NVD client and helpers for building project fixtures."""
from pathlib import Path


class StubResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class StubSession:
    """
    Stands in for requests.Session. Responses are queued per CPE product
    (the artifactId part of virtualMatchString); an exhausted or missing
    queue answers with an empty result page.
    """

    def __init__(self, responses=None):
        self.headers = {}
        self.calls = []
        self.responses = {product: list(queue) for product, queue in (responses or {}).items()}

    def get(self, url, params=None, timeout=None):
        params = dict(params or {})
        self.calls.append(params)
        product = params["virtualMatchString"].split(":")[4]
        queue = self.responses.get(product)
        if queue:
            item = queue.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return StubResponse(200, cve_page([]))

    def products_queried(self):
        return [call["virtualMatchString"].split(":")[4] for call in self.calls]


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def cpe_match(vendor, product, version="*", vulnerable=True, **bounds):
    match = {
        "vulnerable": vulnerable,
        "criteria": f"cpe:2.3:a:{vendor}:{product}:{version}:*:*:*:*:*:*:*",
    }
    match.update(bounds)
    return match


def cve_item(cve_id, score=None, vector=None, label=None, matches=None,
             description="Test vulnerability.", published="2021-12-10T10:15:09.143",
             status="Analyzed", metric_key="cvssMetricV31"):
    cvss_data = {}
    if score is not None:
        cvss_data["baseScore"] = score
    if vector is not None:
        cvss_data["vectorString"] = vector
    if label is not None:
        cvss_data["baseSeverity"] = label
    cve = {
        "id": cve_id,
        "published": published,
        "vulnStatus": status,
        "descriptions": [
            {"lang": "es", "value": "Descripción."},
            {"lang": "en", "value": description},
        ],
        "metrics": {metric_key: [{"type": "Primary", "cvssData": cvss_data}]} if cvss_data else {},
    }
    if matches is not None:
        cve["configurations"] = [{"nodes": [{"operator": "OR", "negate": False, "cpeMatch": matches}]}]
    return {"cve": cve}


def cve_page(items, total=None, start_index=0):
    return {
        "resultsPerPage": len(items),
        "startIndex": start_index,
        "totalResults": len(items) if total is None else total,
        "format": "NVD_CVE",
        "version": "2.0",
        "vulnerabilities": list(items),
    }


def ok(items, total=None):
    return StubResponse(200, cve_page(items, total))


def write_files(root, files):
    """Writes {relative path: content} under root, creating directories."""
    root = Path(root)
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


def by_key(coordinates):
    return {c.key: c for c in coordinates}
