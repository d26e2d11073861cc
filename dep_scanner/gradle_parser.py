# dep_scanner/gradle_parser.py
"""
Line-oriented parser for Gradle build scripts (Groovy and Kotlin DSL).

This is a textual scan, not an evaluation of the script: it recognises the
common declaration notations inside dependencies { } blocks and follows
includeBuild entries of the settings file. Anything it cannot make sense of is
logged and skipped.
"""
import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Set

from .catalog import VersionCatalog, load_catalog
from .models import Coordinate, LATEST_RELEASE

logger = logging.getLogger(__name__)

BUILD_FILES = ("build.gradle", "build.gradle.kts")
SETTINGS_FILES = ("settings.gradle", "settings.gradle.kts")

PLATFORM_SCOPE = "platform"

STANDARD_CONFIGURATIONS = (
    "implementation", "api", "compileOnly", "runtimeOnly",
    "testImplementation", "testCompileOnly", "testRuntimeOnly",
    "annotationProcessor", "kapt", "ksp", "classpath",
    "compile", "runtime", "testCompile", "testRuntime",
)
# Variant-specific names such as debugImplementation or integrationTestRuntimeOnly
CONFIGURATION_SUFFIXES = tuple(c[0].upper() + c[1:] for c in STANDARD_CONFIGURATIONS)

DEPENDENCIES_BLOCK = re.compile(r'(?<![\w.])dependencies\s*\{')
CONFIGURATIONS_BLOCK = re.compile(r'(?<![\w.])configurations\s*\{')
DECLARATION = re.compile(r'^\s*(?P<config>[A-Za-z_]\w*)\s*(?P<rest>[(\'"\s].*)$')
STRING_NOTATION = re.compile(r'^([\'"])(?P<gav>[^\'"]+)\1')
PLATFORM_NOTATION = re.compile(r'^(?:platform|enforcedPlatform)\s*\(\s*(?P<inner>.+?)\s*\)')
CATALOG_REFERENCE = re.compile(r'^libs\.(?P<alias>[A-Za-z_][\w.]*)')
KOTLIN_MODULE = re.compile(r'^kotlin\s*\(\s*"(?P<module>[^"]+)"(?:\s*,\s*"(?P<version>[^"]+)")?\s*\)')
MAP_ENTRY = r'{key}\s*[:=]\s*([\'"])(?P<value>[^\'"]*)\1'
IGNORED_NOTATIONS = re.compile(r'^(?:project|files|fileTree|gradleApi|localGroovy|testFixtures)\s*\(')

# Custom configuration declarations
CUSTOM_CONFIG_PATTERNS = (
    re.compile(r'^\s*(?:create|register|maybeCreate)\s*\(\s*[\'"](\w+)[\'"]'),
    re.compile(r'(?:val|def)\s+(\w+)\s+by\s+(?:configurations\.)?(?:creating|registering)'),
    re.compile(r'^\s*(\w+)\s*(?:\{.*)?$'),
)
CONFIGURATIONS_BLOCK_KEYWORDS = {"all", "configureEach", "named", "getByName", "matching", "resolutionStrategy"}

INCLUDE_BUILD = re.compile(r'includeBuild\s*\(?\s*[\'"]([^\'"]+)[\'"]')


def strip_comments(text: str) -> str:
    """Removes /* */ blocks and // line comments, leaving string literals intact."""
    result = []
    i, n = 0, len(text)
    quote = None
    while i < n:
        ch = text[i]
        if quote:
            result.append(ch)
            if ch == '\\' and i + 1 < n:
                result.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue
        if ch in ('"', "'"):
            quote = ch
            result.append(ch)
            i += 1
        elif text.startswith('//', i):
            end = text.find('\n', i)
            i = n if end == -1 else end
        elif text.startswith('/*', i):
            end = text.find('*/', i + 2)
            # Keep line numbers stable for log messages
            comment = text[i:n if end == -1 else end + 2]
            result.append('\n' * comment.count('\n'))
            i = n if end == -1 else end + 2
        else:
            result.append(ch)
            i += 1
    return ''.join(result)


def join_continuations(lines: Iterable[str]) -> List[str]:
    joined, pending = [], ""
    for line in lines:
        stripped = line.rstrip()
        if stripped.endswith('\\'):
            pending += stripped[:-1] + ' '
            continue
        joined.append(pending + line)
        pending = ""
    if pending:
        joined.append(pending)
    return joined


def _brace_delta(line: str) -> int:
    depth, quote = 0, None
    for ch in line:
        if quote:
            if ch == quote:
                quote = None
        elif ch in ('"', "'"):
            quote = ch
        elif ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
    return depth


def _iter_blocks(lines: List[str], opener):
    """Yields the lines inside every block opened by `opener`, tracking nested braces."""
    depth = 0
    for line in lines:
        if depth == 0:
            match = opener.search(line)
            if not match:
                continue
            remainder = line[match.end():]
            depth = 1 + _brace_delta(remainder)
            # One-line block: dependencies { implementation 'g:a:v' }
            body = remainder.rsplit('}', 1)[0] if depth <= 0 else remainder
            if body.strip():
                yield body
            depth = max(depth, 0)
            continue
        depth += _brace_delta(line)
        if depth <= 0:
            body = line.rsplit('}', 1)[0]
            if body.strip():
                yield body
            depth = 0
        else:
            yield line


def is_dependency_configuration(name: str, custom: Set[str] = frozenset()) -> bool:
    return name in STANDARD_CONFIGURATIONS or name in custom or name.endswith(CONFIGURATION_SUFFIXES)


def find_custom_configurations(lines: List[str]) -> Set[str]:
    names = set()
    for line in lines:
        match = CUSTOM_CONFIG_PATTERNS[1].search(line)
        if match:
            names.add(match.group(1))
    for line in _iter_blocks(lines, CONFIGURATIONS_BLOCK):
        for pattern in (CUSTOM_CONFIG_PATTERNS[0], CUSTOM_CONFIG_PATTERNS[2]):
            match = pattern.search(line)
            if match and match.group(1) not in CONFIGURATIONS_BLOCK_KEYWORDS:
                names.add(match.group(1))
                break
    return names


class GradleProjectParser:
    """Parser for Gradle builds: build scripts, version catalog and included builds."""

    def __init__(self, project_path, catalog: Optional[VersionCatalog] = None):
        self.project_path = Path(project_path)
        self.catalog = catalog if catalog is not None else load_catalog(self.project_path)

    def scan_project(self, visited: Optional[Set[Path]] = None) -> Set[Coordinate]:
        visited = set() if visited is None else visited
        root = self.project_path.resolve()
        if root in visited:
            logger.debug(f"Build at {root} already scanned, skipping")
            return set()
        visited.add(root)

        coordinates: Set[Coordinate] = set()
        for name in BUILD_FILES:
            build_file = root / name
            if build_file.is_file():
                coordinates |= self.parse_build_file(build_file)

        for name in SETTINGS_FILES:
            settings_file = root / name
            if settings_file.is_file():
                for included in self.included_builds(settings_file):
                    coordinates |= self._scan_included_build(included, visited)

        logger.info(f"Found {len(coordinates)} dependencies in Gradle build {root}")
        return coordinates

    def _scan_included_build(self, build_path: Path, visited: Set[Path]) -> Set[Coordinate]:
        if not build_path.is_dir():
            logger.warning(f"Included build {build_path} does not exist, skipping")
            return set()
        own_catalog = load_catalog(build_path)
        catalog = self.catalog if own_catalog.is_empty() else own_catalog
        logger.debug(f"Scanning included build {build_path}")
        return GradleProjectParser(build_path, catalog).scan_project(visited)

    def included_builds(self, settings_file: Path) -> List[Path]:
        text = self._read(settings_file)
        if text is None:
            return []
        builds = []
        for match in INCLUDE_BUILD.finditer(strip_comments(text)):
            path = Path(match.group(1))
            builds.append(path if path.is_absolute() else (settings_file.parent / path).resolve())
        return builds

    def parse_build_file(self, build_file: Path) -> Set[Coordinate]:
        text = self._read(build_file)
        if text is None:
            return set()
        return self.parse_script(text, source=str(build_file))

    def parse_script(self, text: str, source: str = "<script>") -> Set[Coordinate]:
        lines = join_continuations(strip_comments(text).splitlines())
        custom = find_custom_configurations(lines)
        if custom:
            logger.debug(f"Custom configurations in {source}: {sorted(custom)}")

        coordinates: Set[Coordinate] = set()
        for line in _iter_blocks(lines, DEPENDENCIES_BLOCK):
            for coordinate in self.parse_declaration(line, custom, source):
                if coordinate not in coordinates:
                    coordinates.add(coordinate)
        return coordinates

    def parse_declaration(self, line: str, custom: Set[str] = frozenset(),
                          source: str = "<script>") -> List[Coordinate]:
        match = DECLARATION.match(line)
        if not match or not is_dependency_configuration(match.group('config'), custom):
            return []
        config = match.group('config')
        rest = match.group('rest').strip()
        if rest.startswith('('):
            rest = rest[1:].strip()

        if IGNORED_NOTATIONS.match(rest):
            return []

        platform = PLATFORM_NOTATION.match(rest)
        if platform:
            return self._resolve_notation(platform.group('inner'), PLATFORM_SCOPE, line, source)

        # Checked after the string form so that exclude group: ... closures are not mistaken for it
        if not STRING_NOTATION.match(rest) and re.match(r'(?:group|name)\s*[:=]', rest):
            coordinate = self._parse_map_notation(rest, config)
            if coordinate is None:
                logger.warning(f"Could not parse map notation in {source}: {line.strip()}")
                return []
            return [coordinate]

        return self._resolve_notation(rest, config, line, source)

    def _resolve_notation(self, notation: str, scope: str, line: str, source: str) -> List[Coordinate]:
        string = STRING_NOTATION.match(notation)
        if string:
            coordinate = self._parse_gav(string.group('gav'), scope)
            if coordinate is None:
                logger.warning(f"Skipping malformed dependency notation in {source}: {line.strip()}")
                return []
            return [coordinate]

        reference = CATALOG_REFERENCE.match(notation)
        if reference:
            return self._resolve_catalog_reference(reference.group('alias'), scope, source)

        kotlin = KOTLIN_MODULE.match(notation)
        if kotlin:
            version = kotlin.group('version') or LATEST_RELEASE
            return [Coordinate("org.jetbrains.kotlin", f"kotlin-{kotlin.group('module')}", version, scope=scope)]

        logger.debug(f"Unrecognised dependency notation in {source}: {line.strip()}")
        return []

    def _parse_gav(self, gav: str, scope: str) -> Optional[Coordinate]:
        gav = gav.split('@', 1)[0]
        parts = [p.strip() for p in gav.split(':')]
        if len(parts) < 2 or not parts[0] or not parts[1]:
            return None
        version = parts[2] if len(parts) > 2 and parts[2] else LATEST_RELEASE
        version = self.catalog.resolve_version(version)
        return Coordinate(parts[0], parts[1], version, scope=scope)

    def _parse_map_notation(self, rest: str, config: str) -> Optional[Coordinate]:
        values = {}
        for key in ('group', 'name', 'version'):
            match = re.search(MAP_ENTRY.format(key=key), rest)
            if match:
                values[key] = match.group('value').strip()
        if not values.get('group') or not values.get('name'):
            return None
        version = self.catalog.resolve_version(values.get('version') or LATEST_RELEASE)
        return Coordinate(values['group'], values['name'], version, scope=config)

    def _resolve_catalog_reference(self, alias: str, scope: str, source: str) -> List[Coordinate]:
        # Accessor calls like libs.foo.get() are equivalent to libs.foo
        alias = re.sub(r'\.(?:get|asProvider)$', '', alias)
        if alias.startswith('versions.') or alias.startswith('plugins.'):
            return []
        if alias.startswith('bundles.'):
            bundle = alias[len('bundles.'):]
            libraries = self.catalog.resolve_bundle(bundle)
            if not libraries:
                logger.warning(f"Bundle 'libs.{alias}' not defined in version catalog ({source})")
            return [Coordinate(lib.group, lib.name, lib.version or LATEST_RELEASE, scope=scope)
                    for lib in libraries]

        library = self.catalog.resolve_library_alias(alias)
        if library is None:
            logger.warning(f"Catalog reference 'libs.{alias}' not defined in version catalog ({source})")
            return []
        return [Coordinate(library.group, library.name, library.version or LATEST_RELEASE, scope=scope)]

    @staticmethod
    def _read(path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return None
