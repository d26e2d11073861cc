import tempfile
import unittest
from pathlib import Path

from support import write_files

from dep_scanner.detector import GRADLE, MAVEN, create_parser, detect_build_system
from dep_scanner.exceptions import UnsupportedProjectError
from dep_scanner.gradle_parser import GradleProjectParser
from dep_scanner.maven_parser import MavenProjectParser


class TestDetector(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)

    def tearDown(self):
        self.tmp.cleanup()

    def test_maven(self):
        write_files(self.root, {"pom.xml": "<project/>"})
        self.assertEqual(detect_build_system(self.root), MAVEN)
        self.assertIsInstance(create_parser(self.root), MavenProjectParser)

    def test_gradle_markers(self):
        for marker in ("build.gradle", "build.gradle.kts", "settings.gradle", "settings.gradle.kts"):
            with tempfile.TemporaryDirectory() as tmp:
                write_files(tmp, {marker: ""})
                self.assertEqual(detect_build_system(tmp), GRADLE, marker)
                self.assertIsInstance(create_parser(tmp), GradleProjectParser)

    def test_pom_takes_precedence(self):
        write_files(self.root, {"pom.xml": "<project/>", "build.gradle": ""})
        self.assertEqual(detect_build_system(self.root), MAVEN)

    def test_empty_directory_is_unsupported(self):
        self.assertIsNone(detect_build_system(self.root))
        with self.assertRaises(UnsupportedProjectError):
            create_parser(self.root)

    def test_missing_directory_is_unsupported(self):
        with self.assertRaises(UnsupportedProjectError):
            create_parser(self.root / "nope")


if __name__ == '__main__':
    unittest.main()
