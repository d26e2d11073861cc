import unittest

from dep_scanner import version
from dep_scanner.version import (
    SemanticVersion, VersionConstraint, VersionRange, check_stability,
    is_dynamic_version, parse, parse_relaxed,
)


class TestSemanticVersionParsing(unittest.TestCase):
    def test_parse_full_version(self):
        v = parse("1.2.3-alpha.1+build.5")
        self.assertEqual((v.major, v.minor, v.patch), (1, 2, 3))
        self.assertEqual(v.pre_release, "alpha.1")
        self.assertEqual(v.build_metadata, "build.5")
        self.assertEqual(str(v), "1.2.3-alpha.1+build.5")

    def test_parse_rejects_malformed(self):
        for text in ("1.2", "01.2.3", "1.2.3-", "v1.2.3", "latest.release", "", None):
            self.assertIsNone(parse(text), text)

    def test_precedence_chain(self):
        chain = ["1.0.0-alpha", "1.0.0-alpha.1", "1.0.0-alpha.beta", "1.0.0-beta",
                 "1.0.0-beta.2", "1.0.0-beta.11", "1.0.0-rc.1", "1.0.0", "1.0.1", "1.1.0", "2.0.0"]
        versions = [parse(v) for v in chain]
        for lower, higher in zip(versions, versions[1:]):
            self.assertLess(lower, higher, f"{lower} < {higher}")
            self.assertEqual(version.compare(lower, higher), -1)
            self.assertEqual(version.compare(higher, lower), 1)

    def test_build_metadata_ignored_for_equality(self):
        self.assertEqual(parse("1.0.0+a"), parse("1.0.0+b"))
        self.assertEqual(version.compare(parse("1.0.0+a"), parse("1.0.0")), 0)
        self.assertEqual(len({parse("1.0.0+a"), parse("1.0.0+b")}), 1)

    def test_stability_predicates(self):
        self.assertTrue(version.is_stable(parse("1.0.0")))
        self.assertFalse(version.is_stable(parse("0.9.0")))
        self.assertFalse(version.is_stable(parse("1.0.0-rc.1")))
        self.assertTrue(version.is_pre_release(parse("1.0.0-rc.1")))

    def test_compatibility(self):
        self.assertTrue(version.is_compatible_with(parse("1.2.3"), parse("1.9.0")))
        self.assertFalse(version.is_compatible_with(parse("1.2.3"), parse("2.0.0")))
        self.assertFalse(version.is_compatible_with(parse("0.1.0"), parse("0.2.0")))
        self.assertTrue(version.is_compatible_with(parse("0.1.0"), parse("0.1.5")))


class TestRelaxedParsing(unittest.TestCase):
    def test_missing_parts_default_to_zero(self):
        self.assertEqual(parse_relaxed("2.17"), SemanticVersion(2, 17, 0))
        self.assertEqual(parse_relaxed("3"), SemanticVersion(3, 0, 0))

    def test_pep440_pre_release(self):
        self.assertEqual(parse_relaxed("2.0rc1"), parse("2.0.0-rc.1"))
        self.assertLess(parse_relaxed("2.0a1"), parse_relaxed("2.0b1"))

    def test_maven_qualifiers(self):
        snapshot = parse_relaxed("1.0-SNAPSHOT")
        self.assertTrue(snapshot.is_pre_release())
        self.assertLess(snapshot, parse("1.0.0"))
        self.assertEqual(parse_relaxed("5.3.RELEASE"), parse("5.3.0"))
        self.assertEqual(parse_relaxed("31.1-jre"), parse("31.1.0"))

    def test_dynamic_and_garbage_return_none(self):
        for text in ("latest.release", "1.+", "+", "[1.0,2.0)", "", "abc", None):
            self.assertIsNone(parse_relaxed(text), text)


class TestVersionRange(unittest.TestCase):
    def test_half_open_range(self):
        r = VersionRange.parse("[1.0.0,2.0.0)")
        self.assertTrue(r.contains(parse("1.0.0")))
        self.assertTrue(r.contains(parse("1.9.9")))
        self.assertFalse(r.contains(parse("2.0.0")))
        self.assertFalse(r.contains(parse("0.9.0")))

    def test_unbounded_sides(self):
        lower_only = VersionRange.parse("(1.0,]")
        self.assertFalse(lower_only.contains(parse("1.0.0")))
        self.assertTrue(lower_only.contains(parse("99.0.0")))
        upper_only = VersionRange.parse("(,2.0.0]")
        self.assertTrue(upper_only.contains(parse("0.0.1")))
        self.assertTrue(upper_only.contains(parse("2.0.0")))

    def test_exact_range(self):
        r = VersionRange.parse("[2.3.4]")
        self.assertTrue(r.contains(parse("2.3.4")))
        self.assertFalse(r.contains(parse("2.3.5")))
        self.assertEqual(str(r), "[2.3.4]")

    def test_str_round_trips(self):
        for notation in ("[1.0.0,2.0.0)", "(1.0.0,2.0.0]", "[1.0.0,)", "(,3.0.0)"):
            self.assertEqual(str(VersionRange.parse(notation)), notation)
            self.assertEqual(VersionRange.parse(str(VersionRange.parse(notation))), VersionRange.parse(notation))

    def test_invalid_ranges_raise(self):
        for notation in ("[2.0.0,1.0.0]", "1.0.0", "[abc,1.0]", "[,]", "[1.0"):
            with self.assertRaises(ValueError, msg=notation):
                VersionRange.parse(notation)

    def test_intersects_honours_inclusivity(self):
        self.assertFalse(VersionRange.parse("[1.0.0,2.0.0)").intersects(VersionRange.parse("[2.0.0,3.0.0]")))
        self.assertTrue(VersionRange.parse("[1.0.0,2.0.0]").intersects(VersionRange.parse("[2.0.0,3.0.0]")))
        self.assertTrue(VersionRange.parse("(,1.0.0)").intersects(VersionRange.parse("[0.5.0,)")))
        self.assertFalse(VersionRange.parse("(,1.0.0)").intersects(VersionRange.parse("[1.5.0,)")))


class TestVersionConstraint(unittest.TestCase):
    def test_caret_and_tilde(self):
        self.assertEqual(str(VersionConstraint("^1.2.3").to_range()), "[1.2.3,2.0.0)")
        self.assertEqual(str(VersionConstraint("^0.2.3").to_range()), "[0.2.3,0.3.0)")
        self.assertEqual(str(VersionConstraint("^0.0.3").to_range()), "[0.0.3,0.0.4)")
        self.assertEqual(str(VersionConstraint("~1.2.3").to_range()), "[1.2.3,1.3.0)")

    def test_types_and_satisfaction(self):
        exact = VersionConstraint("1.2.3")
        self.assertEqual(exact.type, version.EXACT)
        self.assertTrue(exact.is_satisfied_by(parse("1.2.3")))
        self.assertFalse(exact.is_satisfied_by(parse("1.2.4")))

        ranged = VersionConstraint("[1.0.0,1.5.0)")
        self.assertEqual(ranged.type, version.RANGE)
        self.assertTrue(ranged.is_satisfied_by(parse("1.4.9")))

        caret = VersionConstraint("^1.2.3")
        self.assertEqual(caret.type, version.CARET)
        self.assertTrue(caret.is_satisfied_by(parse("1.9.0")))
        self.assertFalse(caret.is_satisfied_by(parse("2.0.0")))

    def test_invalid_constraint(self):
        with self.assertRaises(ValueError):
            VersionConstraint("^not-a-version")


class TestStabilityAndDynamicVersions(unittest.TestCase):
    def test_check_stability(self):
        cases = {
            "1.0.0-SNAPSHOT": version.SNAPSHOT,
            "2.0.0-alpha.1": version.ALPHA,
            "2.0.0-beta2": version.BETA,
            "2.0.0-RC1": version.RELEASE_CANDIDATE,
            "1.0.0-dev": version.DEVELOPMENT,
            "1.0.0-foo": version.PRE_RELEASE,
            "0.9.1": version.EXPERIMENTAL,
            "1.2.3": version.STABLE,
            "latest.release": version.UNKNOWN,
            "": version.UNKNOWN,
        }
        for text, expected in cases.items():
            self.assertEqual(check_stability(text), expected, text)

    def test_is_dynamic_version(self):
        for text in ("1.+", "1.2.+", "+", "latest.release", "latest.integration", "[1.0,2.0)"):
            self.assertTrue(is_dynamic_version(text), text)
        for text in ("1.2.3", "1.0-SNAPSHOT", "", None):
            self.assertFalse(is_dynamic_version(text), text)


if __name__ == '__main__':
    unittest.main()
