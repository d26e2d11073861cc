# dep_scanner/catalog.py
"""
Gradle version catalog (gradle/libs.versions.toml).

Only the [versions], [libraries] and [bundles] tables are read. Plugins are
not dependencies and are ignored.
"""
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import toml

from .exceptions import CatalogError

logger = logging.getLogger(__name__)

CATALOG_RELATIVE_PATH = Path("gradle") / "libs.versions.toml"

# Preference order inside a rich version declaration
RICH_VERSION_KEYS = ('strictly', 'require', 'prefer')


def normalize_alias(alias: str) -> str:
    """Gradle exposes 'commons-lang3', 'commons_lang3' and 'commons.lang3' as the same accessor."""
    return re.sub(r'[-_]', '.', alias)


@dataclass(frozen=True)
class LibraryAlias:
    group: str
    name: str
    version: Optional[str] = None


@dataclass
class VersionCatalog:
    version_aliases: Dict[str, str] = field(default_factory=dict)
    library_aliases: Dict[str, LibraryAlias] = field(default_factory=dict)
    bundles: Dict[str, List[str]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.version_aliases or self.library_aliases or self.bundles)

    def resolve_version(self, ref: Optional[str]) -> Optional[str]:
        """'$name' or '${name}' resolves through [versions]; anything else is returned as-is."""
        if not ref or not ref.startswith('$'):
            return ref
        name = ref[1:]
        if name.startswith('{') and name.endswith('}'):
            name = name[1:-1]
        return self.version_aliases.get(name, ref)

    def resolve_library_alias(self, alias: str) -> Optional[LibraryAlias]:
        if alias in self.library_aliases:
            return self.library_aliases[alias]
        wanted = normalize_alias(alias)
        for name, library in self.library_aliases.items():
            if normalize_alias(name) == wanted:
                return library
        return None

    def resolve_bundle(self, name: str) -> List[LibraryAlias]:
        members = self.bundles.get(name)
        if members is None:
            wanted = normalize_alias(name)
            members = next((v for k, v in self.bundles.items() if normalize_alias(k) == wanted), [])
        libraries = []
        for member in members:
            library = self.resolve_library_alias(member)
            if library is None:
                logger.warning(f"Bundle '{name}' references unknown library alias '{member}'")
                continue
            libraries.append(library)
        return libraries


def _rich_version(value) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        for key in RICH_VERSION_KEYS:
            if isinstance(value.get(key), str):
                return value[key]
    return None


def _table(data: dict, name: str) -> dict:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise CatalogError(f"Malformed version catalog: [{name}] must be a table")
    return value


def _parse_versions(table) -> Dict[str, str]:
    versions = {}
    for name, value in table.items():
        resolved = _rich_version(value)
        if resolved is None:
            logger.warning(f"Ignoring version alias '{name}' with unsupported value {value!r}")
            continue
        versions[name] = resolved
    return versions


def _parse_library(name: str, value, versions: Dict[str, str]) -> Optional[LibraryAlias]:
    if isinstance(value, str):
        parts = value.split(':')
        if len(parts) < 2 or not parts[0] or not parts[1]:
            logger.warning(f"Ignoring library alias '{name}' with malformed notation '{value}'")
            return None
        return LibraryAlias(parts[0], parts[1], parts[2] if len(parts) > 2 and parts[2] else None)

    if not isinstance(value, dict):
        logger.warning(f"Ignoring library alias '{name}' with unsupported value {value!r}")
        return None

    group, artifact = value.get('group'), value.get('name')
    module = value.get('module')
    if isinstance(module, str) and ':' in module:
        group, artifact = module.split(':', 1)
    if not isinstance(group, str) or not isinstance(artifact, str) or not group or not artifact:
        logger.warning(f"Ignoring library alias '{name}' without group and name")
        return None

    version = value.get('version')
    if isinstance(version, dict) and 'ref' in version:
        ref = version['ref']
        if not isinstance(ref, str):
            logger.warning(f"Ignoring version reference {ref!r} of library alias '{name}'")
            return LibraryAlias(group, artifact, None)
        version = versions.get(ref)
        if version is None:
            logger.warning(f"Library alias '{name}' references unknown version '{ref}'")
    else:
        version = _rich_version(version)
    return LibraryAlias(group, artifact, version)


def parse_catalog(content: str) -> VersionCatalog:
    try:
        data = toml.loads(content)
    except toml.TomlDecodeError as e:
        raise CatalogError(f"Malformed version catalog: {e}") from e

    versions = _parse_versions(_table(data, 'versions'))
    libraries = {}
    for name, value in _table(data, 'libraries').items():
        library = _parse_library(name, value, versions)
        if library is not None:
            libraries[name] = library

    bundles = {}
    for name, members in _table(data, 'bundles').items():
        if isinstance(members, list):
            bundles[name] = [m for m in members if isinstance(m, str)]
        else:
            logger.warning(f"Ignoring bundle '{name}': expected a list of aliases")
    return VersionCatalog(versions, libraries, bundles)


def load_catalog(project_path) -> VersionCatalog:
    """
    Loads <project>/gradle/libs.versions.toml. A missing file gives an empty
    catalog; an unreadable or malformed one is logged and treated as absent.
    """
    catalog_path = Path(project_path) / CATALOG_RELATIVE_PATH
    if not catalog_path.is_file():
        logger.debug(f"No version catalog at {catalog_path}")
        return VersionCatalog()
    try:
        content = catalog_path.read_text(encoding='utf-8')
        catalog = parse_catalog(content)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read version catalog {catalog_path}: {e}")
        return VersionCatalog()
    except CatalogError as e:
        logger.warning(f"{e} ({catalog_path}); continuing without a catalog")
        return VersionCatalog()
    logger.info(f"Loaded version catalog with {len(catalog.library_aliases)} libraries "
                f"and {len(catalog.version_aliases)} versions")
    return catalog
