# dep_scanner/version.py
"""
Semantic version model used to decide whether an advisory's affected range
covers a declared dependency version.

Strict parsing follows SemVer 2.0 exactly. Range bounds published by the CVE
service and Maven-style dependency versions ("2.17", "5.3.RELEASE",
"1.0-SNAPSHOT") go through parse_relaxed(), which pads missing minor/patch
parts with zero.
"""
import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional

from packaging.version import Version, InvalidVersion

SEMVER_PATTERN = re.compile(
    r'^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)'
    r'(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?'
    r'(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$'
)

# Maven style: up to three numeric parts, then an optional qualifier
MAVEN_VERSION_PATTERN = re.compile(r'^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:[.-]?([A-Za-z0-9][A-Za-z0-9.-]*))?$')

# Qualifiers that mark a Maven version as a pre-release. Anything else
# (Final, RELEASE, GA, jre, ...) is a release flavour and kept as build metadata.
PRE_RELEASE_QUALIFIERS = {
    "alpha", "a", "beta", "b", "milestone", "m", "rc", "cr",
    "snapshot", "dev", "preview", "pre", "ea",
}

_PEP440_PRE_NAMES = {"a": "alpha", "b": "beta", "rc": "rc"}

DYNAMIC_VERSION_PATTERN = re.compile(
    r'^(?:\d+\.)*\+$|^latest\.(?:release|integration)$|^[\[(].*[\])]$'
)


def _compare_pre_release(left: str, right: str) -> int:
    left_parts = left.split('.')
    right_parts = right.split('.')
    for a, b in zip(left_parts, right_parts):
        a_num, b_num = a.isdigit(), b.isdigit()
        if a_num and b_num:
            if int(a) != int(b):
                return -1 if int(a) < int(b) else 1
        elif a_num:
            return -1
        elif b_num:
            return 1
        elif a != b:
            return -1 if a < b else 1
    if len(left_parts) == len(right_parts):
        return 0
    return -1 if len(left_parts) < len(right_parts) else 1


@total_ordering
@dataclass(frozen=True, eq=False)
class SemanticVersion:
    major: int
    minor: int
    patch: int
    pre_release: Optional[str] = None
    build_metadata: Optional[str] = None

    def compare_to(self, other: "SemanticVersion") -> int:
        mine = (self.major, self.minor, self.patch)
        theirs = (other.major, other.minor, other.patch)
        if mine != theirs:
            return -1 if mine < theirs else 1
        if self.pre_release is None and other.pre_release is None:
            return 0
        # A pre-release sorts below the plain release
        if self.pre_release is None:
            return 1
        if other.pre_release is None:
            return -1
        return _compare_pre_release(self.pre_release, other.pre_release)

    def __eq__(self, other):
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.compare_to(other) == 0

    def __lt__(self, other):
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.compare_to(other) < 0

    def __hash__(self):
        return hash((self.major, self.minor, self.patch, self.pre_release))

    def is_pre_release(self) -> bool:
        return self.pre_release is not None

    def is_stable(self) -> bool:
        return self.major > 0 and not self.is_pre_release()

    def is_compatible_with(self, other: "SemanticVersion") -> bool:
        if self.major != other.major:
            return False
        if self.major == 0 and self.minor != other.minor:
            return False
        return True

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre_release is not None:
            text += f"-{self.pre_release}"
        if self.build_metadata is not None:
            text += f"+{self.build_metadata}"
        return text


def parse(version_str: Optional[str]) -> Optional[SemanticVersion]:
    """Strict SemVer 2.0 parse. Returns None for anything malformed, never raises."""
    if not isinstance(version_str, str):
        return None
    match = SEMVER_PATTERN.match(version_str.strip())
    if not match:
        return None
    return SemanticVersion(
        major=int(match.group(1)),
        minor=int(match.group(2)),
        patch=int(match.group(3)),
        pre_release=match.group(4),
        build_metadata=match.group(5),
    )


def _from_pep440(version_str: str) -> Optional[SemanticVersion]:
    try:
        parsed = Version(version_str)
    except InvalidVersion:
        return None
    release = parsed.release + (0, 0)
    pre_parts = []
    if parsed.pre is not None:
        name, number = parsed.pre
        pre_parts += [_PEP440_PRE_NAMES.get(name, name), str(number)]
    if parsed.dev is not None:
        pre_parts += ["dev", str(parsed.dev)]
    build_parts = []
    if len(parsed.release) > 3:
        build_parts.append(".".join(str(p) for p in parsed.release[3:]))
    if parsed.post is not None:
        build_parts.append(f"post.{parsed.post}")
    return SemanticVersion(
        major=release[0],
        minor=release[1],
        patch=release[2],
        pre_release=".".join(pre_parts) if pre_parts else None,
        build_metadata=".".join(build_parts) if build_parts else None,
    )


def _from_maven(version_str: str) -> Optional[SemanticVersion]:
    match = MAVEN_VERSION_PATTERN.match(version_str)
    if not match:
        return None
    qualifier = match.group(4)
    pre_release = build_metadata = None
    if qualifier:
        tokens = re.findall(r'[a-z]+|\d+', qualifier.lower())
        if tokens and tokens[0] in PRE_RELEASE_QUALIFIERS:
            pre_release = ".".join(tokens)
        elif tokens:
            build_metadata = ".".join(tokens)
    return SemanticVersion(
        major=int(match.group(1)),
        minor=int(match.group(2) or 0),
        patch=int(match.group(3) or 0),
        pre_release=pre_release,
        build_metadata=build_metadata,
    )


def parse_relaxed(version_str: Optional[str]) -> Optional[SemanticVersion]:
    """
    Lenient parse for range bounds and build-file versions.
    Tries strict SemVer, then PEP 440 normalisation, then Maven qualifiers.
    Dynamic selectors ("latest.release", "1.+", ranges) return None.
    """
    if not isinstance(version_str, str):
        return None
    version_str = version_str.strip()
    if not version_str or is_dynamic_version(version_str):
        return None
    return parse(version_str) or _from_pep440(version_str) or _from_maven(version_str)


def compare(a: SemanticVersion, b: SemanticVersion) -> int:
    return a.compare_to(b)


def is_stable(version: SemanticVersion) -> bool:
    return version.is_stable()


def is_pre_release(version: SemanticVersion) -> bool:
    return version.is_pre_release()


def is_compatible_with(a: SemanticVersion, b: SemanticVersion) -> bool:
    return a.is_compatible_with(b)


def is_dynamic_version(version_str: Optional[str]) -> bool:
    """True for selectors Gradle resolves at build time: '1.+', 'latest.release', '[1.0,2.0)'."""
    if not version_str:
        return False
    return bool(DYNAMIC_VERSION_PATTERN.match(version_str.strip()))


# --- Ranges ---

RANGE_PATTERN = re.compile(r'^([\[(])\s*([^,\[\]()]*?)\s*,\s*([^,\[\]()]*?)\s*([\])])$')
EXACT_RANGE_PATTERN = re.compile(r'^\[\s*([^,\[\]()]+?)\s*\]$')


class VersionRange:
    """
    Interval over SemanticVersion. A bound of None is unbounded on that side.
    Built from bracket notation: [1.0.0,2.0.0), (1.0,], [2.3.4], (,3.0).
    """

    def __init__(self, lower: Optional[SemanticVersion] = None,
                 upper: Optional[SemanticVersion] = None,
                 include_lower: bool = True, include_upper: bool = False):
        if lower is not None and upper is not None and lower > upper:
            raise ValueError(f"Lower bound {lower} is greater than upper bound {upper}")
        self.lower = lower
        self.upper = upper
        self.include_lower = include_lower if lower is not None else False
        self.include_upper = include_upper if upper is not None else False

    @classmethod
    def parse(cls, notation: str) -> "VersionRange":
        notation = (notation or "").strip()
        exact = EXACT_RANGE_PATTERN.match(notation)
        if exact:
            version = cls._parse_bound(exact.group(1), notation)
            return cls.exact(version)

        match = RANGE_PATTERN.match(notation)
        if not match:
            raise ValueError(f"Invalid version range format: {notation!r}")
        lower_text, upper_text = match.group(2), match.group(3)
        if not lower_text and not upper_text:
            raise ValueError(f"Version range has no bounds: {notation!r}")
        lower = cls._parse_bound(lower_text, notation) if lower_text else None
        upper = cls._parse_bound(upper_text, notation) if upper_text else None
        return cls(lower, upper, match.group(1) == '[', match.group(4) == ']')

    @staticmethod
    def _parse_bound(text: str, notation: str) -> SemanticVersion:
        version = parse_relaxed(text)
        if version is None:
            raise ValueError(f"Invalid bound {text!r} in version range {notation!r}")
        return version

    @classmethod
    def exact(cls, version: SemanticVersion) -> "VersionRange":
        return cls(version, version, True, True)

    @classmethod
    def unbounded(cls) -> "VersionRange":
        return cls(None, None)

    def contains(self, version: SemanticVersion) -> bool:
        if self.lower is not None:
            cmp = version.compare_to(self.lower)
            if cmp < 0 or (cmp == 0 and not self.include_lower):
                return False
        if self.upper is not None:
            cmp = version.compare_to(self.upper)
            if cmp > 0 or (cmp == 0 and not self.include_upper):
                return False
        return True

    def intersects(self, other: "VersionRange") -> bool:
        lower, include_lower = _tighter_bound(self.lower, self.include_lower,
                                              other.lower, other.include_lower, prefer_greater=True)
        upper, include_upper = _tighter_bound(self.upper, self.include_upper,
                                              other.upper, other.include_upper, prefer_greater=False)
        if lower is None or upper is None:
            return True
        cmp = lower.compare_to(upper)
        if cmp < 0:
            return True
        return cmp == 0 and include_lower and include_upper

    def __eq__(self, other):
        if not isinstance(other, VersionRange):
            return NotImplemented
        return (self.lower, self.upper, self.include_lower, self.include_upper) == \
            (other.lower, other.upper, other.include_lower, other.include_upper)

    def __hash__(self):
        return hash((self.lower, self.upper, self.include_lower, self.include_upper))

    def __str__(self) -> str:
        if self.lower is not None and self.lower == self.upper and self.include_lower and self.include_upper:
            return f"[{self.lower}]"
        return "{}{},{}{}".format(
            "[" if self.include_lower else "(",
            self.lower if self.lower is not None else "",
            self.upper if self.upper is not None else "",
            "]" if self.include_upper else ")",
        )

    def __repr__(self) -> str:
        return f"VersionRange({str(self)!r})"


def _tighter_bound(a, a_inclusive, b, b_inclusive, prefer_greater):
    if a is None:
        return b, b_inclusive
    if b is None:
        return a, a_inclusive
    cmp = a.compare_to(b)
    if cmp == 0:
        return a, a_inclusive and b_inclusive
    a_wins = cmp > 0 if prefer_greater else cmp < 0
    return (a, a_inclusive) if a_wins else (b, b_inclusive)


# --- Constraints ---

EXACT = "EXACT"
RANGE = "RANGE"
CARET = "CARET"
TILDE = "TILDE"


class VersionConstraint:
    """Exact version, bracket range, caret (^1.2.3) or tilde (~1.2.3) constraint."""

    def __init__(self, expression: str):
        self.expression = expression.strip()
        if self.expression.startswith('^'):
            self.type = CARET
            base = self._require(self.expression[1:])
            self.range = VersionRange(base, _caret_upper_bound(base), True, False)
        elif self.expression.startswith('~'):
            self.type = TILDE
            base = self._require(self.expression[1:])
            self.range = VersionRange(base, SemanticVersion(base.major, base.minor + 1, 0), True, False)
        elif self.expression[:1] in ('[', '('):
            self.type = RANGE
            self.range = VersionRange.parse(self.expression)
        else:
            self.type = EXACT
            self.range = VersionRange.exact(self._require(self.expression))

    def _require(self, text: str) -> SemanticVersion:
        version = parse_relaxed(text)
        if version is None:
            raise ValueError(f"Invalid version constraint: {self.expression!r}")
        return version

    def is_satisfied_by(self, version: SemanticVersion) -> bool:
        return self.range.contains(version)

    def to_range(self) -> VersionRange:
        return self.range

    def __str__(self) -> str:
        return self.expression


def _caret_upper_bound(version: SemanticVersion) -> SemanticVersion:
    if version.major > 0:
        return SemanticVersion(version.major + 1, 0, 0)
    if version.minor > 0:
        return SemanticVersion(0, version.minor + 1, 0)
    return SemanticVersion(0, 0, version.patch + 1)


# --- Stability ---

STABLE = "STABLE"
RELEASE_CANDIDATE = "RELEASE_CANDIDATE"
BETA = "BETA"
ALPHA = "ALPHA"
PRE_RELEASE = "PRE_RELEASE"
EXPERIMENTAL = "EXPERIMENTAL"
DEVELOPMENT = "DEVELOPMENT"
SNAPSHOT = "SNAPSHOT"
UNKNOWN = "UNKNOWN"

_STABILITY_PATTERNS = (
    (SNAPSHOT, re.compile(r'.*-SNAPSHOT$')),
    (ALPHA, re.compile(r'.*[.-]alpha[.\d]*$', re.IGNORECASE)),
    (BETA, re.compile(r'.*[.-]beta[.\d]*$', re.IGNORECASE)),
    (RELEASE_CANDIDATE, re.compile(r'.*[.-]rc[.\d]*$', re.IGNORECASE)),
    (DEVELOPMENT, re.compile(r'.*[.-]dev[.\d]*$', re.IGNORECASE)),
)


def check_stability(version_str: Optional[str]) -> str:
    if not version_str:
        return UNKNOWN
    for level, pattern in _STABILITY_PATTERNS:
        if pattern.match(version_str):
            return level
    version = parse(version_str)
    if version is None:
        return UNKNOWN
    if version.is_pre_release():
        return PRE_RELEASE
    if version.major == 0:
        return EXPERIMENTAL
    return STABLE
