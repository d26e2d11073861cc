# dep_scanner/orchestrator.py
import logging
from pathlib import Path

from .detector import create_parser
from .exceptions import ReportError
from .graph import GraphEmitter
from .reporting import HtmlReportEmitter, JsonReportEmitter

logger = logging.getLogger(__name__)

OUTPUT_DIRNAME = "dependency-reports"


def default_emitters():
    # Order matters: HTML report, JSON report, then the graph page
    return [HtmlReportEmitter(), JsonReportEmitter(), GraphEmitter()]


def run_scan(project_path, config, client=None, emitters=None) -> int:
    """
    Parses the project, looks up vulnerabilities and writes the reports to
    <project>/dependency-reports/. Returns 0 on success and 1 when any emitter
    failed. ConfigError and UnsupportedProjectError propagate to the caller.
    """
    project_path = Path(project_path)
    parser = create_parser(project_path)
    if client is None:
        client = config.create_client()

    dependencies = parser.scan_project()
    logger.info(f"Scanning {len(dependencies)} dependencies for known vulnerabilities")
    vulnerabilities = client.scan(dependencies)

    output_dir = project_path / OUTPUT_DIRNAME
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Could not create output directory {output_dir}: {e}")
        return 1

    failures = 0
    for emitter in emitters if emitters is not None else default_emitters():
        try:
            emitter.emit(dependencies, vulnerabilities, output_dir)
        except ReportError as e:
            failures += 1
            logger.error(f"Failed to write {emitter.name}: {e}")
        except Exception as e:
            failures += 1
            logger.error(f"Unexpected error while writing {emitter.name}: {e}", exc_info=True)
    return 1 if failures else 0
