# dep_scanner/maven_parser.py
import logging
import re
from pathlib import Path
from typing import Dict, Optional, Set

from lxml import etree as ET

from .exceptions import ParseError
from .models import Coordinate

logger = logging.getLogger(__name__)

POM_FILENAME = "pom.xml"
DEFAULT_SCOPE = "compile"
PLACEHOLDER_PATTERN = re.compile(r'\$\{([^}]+)\}')
# Properties may reference each other; bounded to stop self-referencing loops
MAX_SUBSTITUTION_PASSES = 10


def _local_name(element) -> Optional[str]:
    # Comments and processing instructions have a non-string tag
    if not isinstance(element.tag, str):
        return None
    return ET.QName(element).localname


def _child(element, name: str):
    if element is None:
        return None
    for child in element:
        if _local_name(child) == name:
            return child
    return None


def _child_text(element, name: str) -> Optional[str]:
    node = _child(element, name)
    if node is not None and node.text and node.text.strip():
        return node.text.strip()
    return None


def _collect_properties(root) -> Dict[str, str]:
    properties = {}
    props_node = _child(root, 'properties')
    if props_node is not None:
        for prop in props_node:
            name = _local_name(prop)
            if name:
                properties[name] = (prop.text or "").strip()

    parent = _child(root, 'parent')
    version = _child_text(root, 'version') or _child_text(parent, 'version')
    group_id = _child_text(root, 'groupId') or _child_text(parent, 'groupId')
    artifact_id = _child_text(root, 'artifactId')
    if version:
        for key in ('project.version', 'pom.version', 'version'):
            properties.setdefault(key, version)
    if group_id:
        for key in ('project.groupId', 'pom.groupId'):
            properties.setdefault(key, group_id)
    if artifact_id:
        properties.setdefault('project.artifactId', artifact_id)
    if parent is not None:
        parent_version = _child_text(parent, 'version')
        if parent_version:
            properties.setdefault('project.parent.version', parent_version)
    return properties


def substitute_properties(value: Optional[str], properties: Dict[str, str]) -> Optional[str]:
    """Replaces ${name} placeholders; unknown placeholders are left verbatim."""
    if not value or '${' not in value:
        return value
    for _ in range(MAX_SUBSTITUTION_PASSES):
        replaced = PLACEHOLDER_PATTERN.sub(lambda m: properties.get(m.group(1), m.group(0)), value)
        if replaced == value:
            break
        value = replaced
    return value


def _read_dependencies(container, properties, is_direct: bool, source: Path) -> Set[Coordinate]:
    coordinates = set()
    if container is None:
        return coordinates
    for dep in container:
        if _local_name(dep) != 'dependency':
            continue
        group_id = substitute_properties(_child_text(dep, 'groupId'), properties)
        artifact_id = substitute_properties(_child_text(dep, 'artifactId'), properties)
        if not group_id or not artifact_id:
            logger.warning(f"Skipping dependency without groupId/artifactId in {source} (line {dep.sourceline})")
            continue
        version = substitute_properties(_child_text(dep, 'version'), properties) or ""
        scope = _child_text(dep, 'scope') or DEFAULT_SCOPE
        coordinates.add(Coordinate(group_id, artifact_id, version, scope=scope, is_direct=is_direct))
    return coordinates


def parse_pom(pom_path) -> Set[Coordinate]:
    """
    Reads one pom.xml. Dependencies of the main <dependencies> section are
    direct, those under <dependencyManagement> are not.
    Raises ParseError when the file cannot be read or is not well-formed XML.
    """
    pom_path = Path(pom_path)
    try:
        content = pom_path.read_bytes()
    except OSError as e:
        raise ParseError(f"Could not read {pom_path}: {e}", ParseError.FILE_READ) from e

    parser = ET.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = ET.fromstring(content, parser)
    except ET.XMLSyntaxError as e:
        raise ParseError(f"Malformed XML in {pom_path}: {e}", ParseError.MALFORMED) from e

    if _local_name(root) != 'project':
        raise ParseError(f"{pom_path} has root element <{_local_name(root)}>, expected <project>",
                         ParseError.MALFORMED)

    properties = _collect_properties(root)
    coordinates = _read_dependencies(_child(root, 'dependencies'), properties, True, pom_path)
    managed = _child(_child(root, 'dependencyManagement'), 'dependencies')
    # A coordinate declared in both sections keeps its direct entry
    for coordinate in _read_dependencies(managed, properties, False, pom_path):
        if coordinate not in coordinates:
            coordinates.add(coordinate)
    return coordinates


class MavenProjectParser:
    """Parser for Maven projects (pom.xml at the project root)."""

    def __init__(self, project_path):
        self.project_path = Path(project_path)

    def scan_project(self) -> Set[Coordinate]:
        pom_path = self.project_path / POM_FILENAME
        try:
            coordinates = parse_pom(pom_path)
        except ParseError as e:
            logger.error(f"Failed to parse Maven descriptor: {e}")
            return set()
        logger.info(f"Found {len(coordinates)} dependencies in {pom_path}")
        return coordinates
