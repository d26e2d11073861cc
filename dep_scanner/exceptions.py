# dep_scanner/exceptions.py
"""
Exception hierarchy for the dependency scanner.

Fatal errors (ConfigError, UnsupportedProjectError) stop the run with exit code 1.
The others are raised inside a single stage, logged, and the pipeline carries on
with whatever partial result is available.
"""


class ScannerError(Exception):
    """Base class for every error raised by the scanner."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigError(ScannerError):
    """Missing API key or unreadable/invalid configuration."""


class UnsupportedProjectError(ScannerError):
    """No recognised build file in the project directory."""


class ParseError(ScannerError):
    """A build file exists but could not be read or parsed."""

    FILE_READ = "FILE_READ"
    MALFORMED = "MALFORMED"

    def __init__(self, message: str, kind: str = MALFORMED):
        self.kind = kind
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.kind}] {self.message}"


class CatalogError(ScannerError):
    """The TOML version catalog is malformed."""


class NetworkError(ScannerError):
    """Request to the CVE service failed, after retries where applicable."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ReportError(ScannerError):
    """Writing a report or graph file failed."""
