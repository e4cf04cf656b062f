"""Unit tests for the Flask redirect endpoints."""

import json
import unittest
from unittest import mock

from mirrorselect import app as mirrorselect_app
from mirrorselect.modules.errors import PrivilegeError
from mirrorselect.modules.selection_store import SelectionStore

SOURCE = "/https://downloads.example.net/projects/sevenzip/files/7-Zip/23.01/7zr.exe/download"


class TestFlaskAPI(unittest.TestCase):
    """Tests for the Flask routes."""

    def setUp(self):
        self.store = SelectionStore()
        app = mirrorselect_app.create_app(self.store, ["all", "single", "multi"])
        app.testing = True
        self.client = app.test_client()

    def test_redirect_to_selected_mirror(self):
        self.store.publish("single", "fast.example.com")
        resp = self.client.get("/single" + SOURCE)
        self.assertEqual(resp.status_code, 301)
        self.assertEqual(
            resp.headers["Location"],
            "https://fast.example.com/project/sevenzip/7-Zip/23.01/7zr.exe?viasf=1",
        )

    def test_not_available_is_503(self):
        resp = self.client.get("/multi" + SOURCE)
        self.assertEqual(resp.status_code, 503)
        self.assertIn("Retry-After", resp.headers)
        self.assertIn("error", json.loads(resp.data))

    def test_stale_selection_still_redirects(self):
        self.store.publish("all", "fast.example.com")
        self.store.publish("all", "")
        resp = self.client.get("/all" + SOURCE)
        self.assertEqual(resp.status_code, 301)
        self.assertTrue(resp.headers["Location"].startswith("https://fast.example.com/"))

    def test_unknown_group_is_404(self):
        self.store.publish("all", "fast.example.com")
        resp = self.client.get("/nope" + SOURCE)
        self.assertEqual(resp.status_code, 404)

    def test_path_without_source_is_400(self):
        self.store.publish("all", "fast.example.com")
        resp = self.client.get("/all/just/a/file.zip")
        self.assertEqual(resp.status_code, 400)

    def test_api_group_name_is_rejected(self):
        with self.assertRaises(ValueError):
            mirrorselect_app.create_app(SelectionStore(), ["all", "api"])

    def test_selection_api(self):
        self.store.publish("all", "fast.example.com")
        resp = self.client.get("/api/selection")
        self.assertEqual(resp.status_code, 200)
        data = json.loads(resp.data)
        self.assertEqual(data["groups"]["all"]["host"], "fast.example.com")
        self.assertIsNone(data["groups"]["single"]["host"])
        self.assertIn("generated_at", data)


class TestMain(unittest.TestCase):
    """Tests for startup failures in main()."""

    def test_missing_list_exits(self):
        with self.assertRaises(SystemExit) as ctx:
            mirrorselect_app.main(["--group", "eu=/nonexistent/eu.txt"])
        self.assertEqual(ctx.exception.code, 1)

    def test_invalid_settings_exit(self):
        with self.assertRaises(SystemExit) as ctx:
            mirrorselect_app.main(["--threads", "0"])
        self.assertEqual(ctx.exception.code, 1)

    def test_missing_privilege_exits(self):
        groups = [mirrorselect_app.Group("all", ["a.test"])]
        with mock.patch.object(mirrorselect_app, "load_groups", return_value=groups), \
                mock.patch.object(mirrorselect_app.Prober, "check_privileges",
                                  side_effect=PrivilegeError("localhost", "need root")):
            with self.assertRaises(SystemExit) as ctx:
                mirrorselect_app.main([])
        self.assertEqual(ctx.exception.code, 1)

    def test_version(self):
        with mock.patch("sys.stdout"), self.assertRaises(SystemExit) as ctx:
            mirrorselect_app.main(["--version"])
        self.assertEqual(ctx.exception.code, 0)


if __name__ == "__main__":
    unittest.main()
