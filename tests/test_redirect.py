"""Unit tests for redirect URI rewriting."""

import unittest

from mirrorselect.modules.redirect import build_redirect_uri, extract_domain_and_path


class TestRedirect(unittest.TestCase):
    """Tests for extract_domain_and_path and build_redirect_uri."""

    def test_extract(self):
        result = extract_domain_and_path("/https://downloads.example.net/project/foo/bar.zip")
        self.assertEqual(result, ("downloads.example.net", "project/foo/bar.zip"))

    def test_extract_collapsed_scheme(self):
        result = extract_domain_and_path("https:/downloads.example.net/a/b")
        self.assertEqual(result, ("downloads.example.net", "a/b"))

    def test_extract_no_match(self):
        self.assertIsNone(extract_domain_and_path("/just/a/path"))
        self.assertIsNone(extract_domain_and_path("https://host-only"))

    def test_build_rewrites_project_layout(self):
        uri = build_redirect_uri(
            "projects/sevenzip/files/7-Zip/23.01/7zr.exe/download", "mirror.test"
        )
        self.assertEqual(uri, "https://mirror.test/project/sevenzip/7-Zip/23.01/7zr.exe?viasf=1")

    def test_build_plain_path(self):
        self.assertEqual(build_redirect_uri("a/b.txt", "m.test"), "https://m.test/a/b.txt?viasf=1")

    def test_build_replaces_only_first_occurrence(self):
        uri = build_redirect_uri("projects/x/files/y/files/z", "m.test")
        self.assertEqual(uri, "https://m.test/project/x/y/files/z?viasf=1")


if __name__ == "__main__":
    unittest.main()
