from __future__ import annotations

import unittest

from gitflow.config import Settings, load_settings
from gitflow.exceptions import MissingEnvError, ValidationError


class LoadSettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = load_settings({})

        self.assertEqual(settings, Settings())
        self.assertEqual(settings.gh_binary, "gh")
        self.assertIsNone(settings.github_token)

    def test_identity_prefers_explicit_variable(self) -> None:
        settings = load_settings({"GITFLOW_GITHUB_USER": "alice", "USER": "root"})

        self.assertEqual(settings.identity, "alice")

    def test_identity_falls_back_to_user(self) -> None:
        self.assertEqual(load_settings({"USER": "bob"}).identity, "bob")
        self.assertEqual(load_settings({"GITFLOW_GITHUB_USER": "", "USER": "bob"}).identity, "bob")

    def test_missing_identity_only_fails_when_required(self) -> None:
        settings = load_settings({})

        with self.assertRaises(MissingEnvError):
            settings.require_identity()

    def test_fix_fork_urls(self) -> None:
        for raw, expected in (("1", True), ("TRUE", True), ("yes", True), ("0", False), ("off", False), ("", False)):
            with self.subTest(raw=raw):
                self.assertEqual(load_settings({"GITFLOW_FIX_FORK_URLS": raw}).fix_fork_urls, expected)

    def test_invalid_boolean(self) -> None:
        with self.assertRaises(ValidationError):
            load_settings({"GITFLOW_FIX_FORK_URLS": "maybe"})

    def test_token_and_gh_binary(self) -> None:
        settings = load_settings({"GITHUB_TOKEN": "t0k", "GITFLOW_GH": "/usr/local/bin/gh"})

        self.assertEqual(settings.github_token, "t0k")
        self.assertEqual(settings.gh_binary, "/usr/local/bin/gh")


if __name__ == "__main__":
    unittest.main()
