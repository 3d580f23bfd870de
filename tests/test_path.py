import unittest

from qbit_renamer.exceptions import InvalidPathError
from qbit_renamer.utils.path import contains_traversal, join_under, sanitize_path

DENYLIST = set(";&|`$(){}[]<>")


class TestSanitizePath(unittest.TestCase):
    def test_plain_path_is_unchanged(self):
        self.assertEqual(
            sanitize_path("Show/Season 1/Show.S01E01.mkv"),
            "Show/Season 1/Show.S01E01.mkv",
        )

    def test_strips_shell_metacharacters(self):
        self.assertEqual(sanitize_path("a/b;rm -rf $(x).mkv"), "a/brm -rf x.mkv")
        self.assertEqual(sanitize_path("Movie [2020] {x} <y> `z` a&b|c.mkv"), "Movie 2020 x y z abc.mkv")

    def test_normalizes_redundant_segments(self):
        self.assertEqual(sanitize_path("a//b/./c.mkv"), "a/b/c.mkv")
        self.assertEqual(sanitize_path("a/b/../c.mkv"), "a/c.mkv")

    def test_removes_leading_traversal(self):
        result = sanitize_path("../../etc/passwd")
        self.assertNotIn("..", result)
        self.assertTrue(result.endswith("etc/passwd"))

    def test_split_traversal_does_not_reform(self):
        for path in (".;./secret", "..;./x", ".(.)./y", "...;..../z"):
            with self.subTest(path=path):
                self.assertNotIn("..", sanitize_path(path))

    def test_output_never_contains_denylisted_characters_or_traversal(self):
        samples = [
            "a;b", "a&&b", "x|y", "`id`", "$HOME", "(sub)", "{a,b}", "[0-9]", "<in>",
            "../../../x", "a/..../b", "..a..b..", "dir/.../file", "ok/file.mkv",
        ]
        for path in samples:
            with self.subTest(path=path):
                try:
                    result = sanitize_path(path)
                except InvalidPathError:
                    continue
                self.assertFalse(DENYLIST & set(result))
                self.assertNotIn("..", result)
                self.assertTrue(result)

    def test_empty_and_non_string_inputs_are_rejected(self):
        for value in ("", None, 42, ["a"], b"bytes"):
            with self.subTest(value=value):
                with self.assertRaises(InvalidPathError):
                    sanitize_path(value)

    def test_nothing_left_after_sanitization_is_rejected(self):
        for value in ("..", ";;;", "$()", "...."):
            with self.subTest(value=value):
                with self.assertRaises(InvalidPathError) as ctx:
                    sanitize_path(value)
                self.assertIn("after sanitization", str(ctx.exception))

    def test_is_idempotent(self):
        for path in ("a/b;c.mkv", "../x/./y", "Show (2019)/S01E01.mkv"):
            with self.subTest(path=path):
                once = sanitize_path(path)
                self.assertEqual(sanitize_path(once), once)


class TestPathHelpers(unittest.TestCase):
    def test_contains_traversal(self):
        self.assertTrue(contains_traversal("a/../b"))
        self.assertFalse(contains_traversal("a/b.c/d"))

    def test_join_under_keeps_base_for_absolute_names(self):
        self.assertEqual(join_under("/downloads", "/etc/passwd"), "/downloads/etc/passwd")
        self.assertEqual(join_under("/downloads", "Show/ep1.mkv"), "/downloads/Show/ep1.mkv")


if __name__ == "__main__":
    unittest.main()
