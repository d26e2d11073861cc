# dep_scanner/config.py
"""
Scanner configuration, read from a Java-style properties file at
~/.dependency-scanner/nvd-config.properties:

    nvd.api.key=<your NVD API key>
    nvd.request.delay.ms=6000
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .exceptions import ConfigError
from .nvd_client import (
    DEFAULT_REQUEST_DELAY_MS, DEFAULT_TIMEOUT_SECONDS, NVD_API_BASE_URL, NvdClient,
)

logger = logging.getLogger(__name__)

CONFIG_DIRNAME = ".dependency-scanner"
CONFIG_FILENAME = "nvd-config.properties"

API_KEY = "nvd.api.key"
REQUEST_DELAY_MS = "nvd.request.delay.ms"
API_URL = "nvd.api.url"
CONNECT_TIMEOUT = "nvd.timeout.connect.s"
READ_TIMEOUT = "nvd.timeout.read.s"


def default_config_path() -> Path:
    return Path.home() / CONFIG_DIRNAME / CONFIG_FILENAME


@dataclass(frozen=True)
class ScannerConfig:
    api_key: Optional[str] = None
    request_delay_ms: int = DEFAULT_REQUEST_DELAY_MS
    api_url: str = NVD_API_BASE_URL
    connect_timeout: float = DEFAULT_TIMEOUT_SECONDS
    read_timeout: float = DEFAULT_TIMEOUT_SECONDS

    def create_client(self, **kwargs) -> NvdClient:
        """Raises ConfigError when no API key is configured."""
        return NvdClient(
            self.api_key,
            request_delay_ms=self.request_delay_ms,
            base_url=self.api_url,
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
            **kwargs,
        )


# Key ends at the first '=' or ':' (optionally padded) or at whitespace
KEY_SEPARATOR = re.compile(r'\s*[=:]\s*|\s+')


def _logical_lines(content: str):
    """Yields (line number, text), joining lines that end in an odd number of backslashes."""
    pending = None
    start = 0
    for line_no, raw in enumerate(content.splitlines(), 1):
        line = raw.lstrip()
        if pending is None:
            if not line or line[0] in '#!':
                continue
            start, text = line_no, line
        else:
            text = pending + line
        if (len(text) - len(text.rstrip('\\'))) % 2 == 1:
            pending = text[:-1]
            continue
        pending = None
        yield start, text
    if pending is not None:
        yield start, pending


def parse_properties(content: str) -> Dict[str, str]:
    """
    Java properties syntax: the key is separated from the value by '=', ':'
    or whitespace; '#' and '!' start comments; a trailing backslash continues
    the value on the next line.
    """
    properties = {}
    for line_no, text in _logical_lines(content):
        match = KEY_SEPARATOR.search(text)
        if match is None:
            properties[text] = ""
            continue
        if match.start() == 0:
            logger.warning(f"Ignoring configuration line {line_no} without a key")
            continue
        properties[text[:match.start()]] = text[match.end():].strip()
    return properties


def _number(properties: Dict[str, str], key: str, default, kind):
    value = properties.get(key)
    if value is None or value == "":
        return default
    try:
        return kind(value)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {key}: '{value}' is not a number") from e


def load_config(config_path=None) -> ScannerConfig:
    path = Path(config_path) if config_path else default_config_path()
    if not path.is_file():
        logger.info(f"Configuration file '{path}' not found; using defaults")
        return ScannerConfig()
    try:
        content = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Could not read configuration file '{path}': {e}") from e

    properties = parse_properties(content)
    config = ScannerConfig(
        api_key=properties.get(API_KEY) or None,
        request_delay_ms=_number(properties, REQUEST_DELAY_MS, DEFAULT_REQUEST_DELAY_MS, int),
        api_url=properties.get(API_URL) or NVD_API_BASE_URL,
        connect_timeout=_number(properties, CONNECT_TIMEOUT, DEFAULT_TIMEOUT_SECONDS, float),
        read_timeout=_number(properties, READ_TIMEOUT, DEFAULT_TIMEOUT_SECONDS, float),
    )
    logger.info(f"Loaded configuration from {path.resolve()}")
    return config
