# dep_scanner/detector.py
import logging
from pathlib import Path
from typing import Optional, Union

from .exceptions import UnsupportedProjectError
from .gradle_parser import BUILD_FILES, SETTINGS_FILES, GradleProjectParser
from .maven_parser import POM_FILENAME, MavenProjectParser

logger = logging.getLogger(__name__)

MAVEN = "maven"
GRADLE = "gradle"


def detect_build_system(project_path) -> Optional[str]:
    """'maven' when pom.xml exists, else 'gradle' when any Gradle script exists, else None."""
    project_path = Path(project_path)
    if (project_path / POM_FILENAME).is_file():
        return MAVEN
    if any((project_path / name).is_file() for name in BUILD_FILES + SETTINGS_FILES):
        return GRADLE
    return None


def create_parser(project_path) -> Union[MavenProjectParser, GradleProjectParser]:
    project_path = Path(project_path)
    if not project_path.is_dir():
        raise UnsupportedProjectError(f"Project path {project_path} is not a directory")

    build_system = detect_build_system(project_path)
    if build_system == MAVEN:
        logger.info(f"Detected Maven project at {project_path}")
        return MavenProjectParser(project_path)
    if build_system == GRADLE:
        logger.info(f"Detected Gradle project at {project_path}")
        return GradleProjectParser(project_path)
    raise UnsupportedProjectError(
        f"No supported build file found in {project_path} "
        f"(expected {POM_FILENAME}, {', '.join(BUILD_FILES + SETTINGS_FILES)})")
