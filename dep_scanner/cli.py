# dep_scanner/cli.py
import logging
import sys

import click

from . import __version__
from .config import load_config
from .exceptions import ConfigError, UnsupportedProjectError
from .orchestrator import OUTPUT_DIRNAME, run_scan

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@click.command(context_settings=dict(help_option_names=['-h', '--help']))
@click.argument("project_path", type=click.Path(file_okay=False, path_type=str))
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Properties file with the NVD settings (default: ~/.dependency-scanner/nvd-config.properties).")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(__version__, prog_name="dependency-scanner")
def main(project_path, config_path, verbose):
    """
    Scans the Maven or Gradle project at PROJECT_PATH for dependencies with
    known vulnerabilities and writes HTML/JSON reports and a dependency graph
    to PROJECT_PATH/dependency-reports/.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)
    try:
        config = load_config(config_path)
        status = run_scan(project_path, config)
    except (ConfigError, UnsupportedProjectError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    except Exception as e:
        logging.getLogger(__name__).error(f"Scan failed: {e}", exc_info=True)
        click.secho(f"Error: scan failed: {e}", fg="red", err=True)
        sys.exit(1)

    if status == 0:
        click.secho(f"Scan complete. Reports written to {project_path}/{OUTPUT_DIRNAME}", fg="green")
    else:
        click.secho("Scan finished, but some reports could not be written.", fg="yellow", err=True)
    sys.exit(status)


if __name__ == "__main__":
    main()
