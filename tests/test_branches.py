"""Tests for branch listing and resolution."""

from __future__ import annotations

import unittest
from pathlib import Path

from gitflow import branches
from gitflow.exceptions import AmbiguityError, GitCommandError, NotFoundError, OutputParseError, ValidationError
from gitflow.models import Branch
from gitflow.remotes import UPSTREAM_REMOTE_KEY
from gitflow.repo import Repo
from tests.fake_git import FakeGit, ref_listing, remote_listing

LIST_REFS = ("for-each-ref", "--format=%(objectname) %(refname)")


class BranchTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.git = FakeGit()
        self.git.on("config", "--list", stdout=f"{UPSTREAM_REMOTE_KEY}=upstream\n")
        self.git.on(
            "remote", "-v",
            stdout=remote_listing(origin="https://github.com/alice/proj", upstream="https://github.com/acme/proj"),
        )
        self.repo = Repo(Path("/work/repo"), runner=self.git)
        self.upstream = self.repo.remotes.list()["upstream"]


class ListRemoteBranchesTests(BranchTestCase):
    def test_filters_to_remote_prefix(self) -> None:
        self.git.on(
            *LIST_REFS,
            stdout=ref_listing(
                "refs/heads/feature",
                "refs/remotes/origin/main",
                "refs/remotes/upstream/HEAD",
                "refs/remotes/upstream/main",
                "refs/remotes/upstream/release-1.30",
                "refs/remotes/upstream-mirror/main",
                "refs/tags/v1.0",
            ),
        )

        result = branches.list_remote_branches(self.upstream)

        self.assertEqual([b.name for b in result], ["upstream/main", "upstream/release-1.30"])
        self.assertEqual([b.short_name for b in result], ["main", "release-1.30"])
        self.assertIs(result[0].remote, self.upstream)

    def test_unexpected_line(self) -> None:
        self.git.on(*LIST_REFS, stdout="deadbeef\n")

        with self.assertRaises(OutputParseError):
            branches.list_remote_branches(self.upstream)


class CurrentBranchTests(BranchTestCase):
    def test_current_branch(self) -> None:
        self.git.on("rev-parse", "--abbrev-ref", "HEAD", stdout="feature\n")

        self.assertEqual(branches.current_branch(self.repo), Branch("feature", "feature"))

    def test_detached_head(self) -> None:
        self.git.on("rev-parse", "--abbrev-ref", "HEAD", stdout="HEAD\n")

        with self.assertRaises(NotFoundError):
            branches.current_branch(self.repo)


class FindUpstreamBranchTests(BranchTestCase):
    def test_single_main(self) -> None:
        self.git.on(*LIST_REFS, stdout=ref_listing("refs/remotes/upstream/master", "refs/remotes/upstream/dev"))

        branch = branches.find_upstream_branch(self.repo)

        self.assertEqual(branch.name, "upstream/master")
        self.assertIs(branch.remote, self.upstream)

    def test_main_and_master_is_ambiguous(self) -> None:
        self.git.on(*LIST_REFS, stdout=ref_listing("refs/remotes/upstream/main", "refs/remotes/upstream/master"))

        with self.assertRaises(AmbiguityError) as caught:
            branches.find_upstream_branch(self.repo)

        self.assertEqual(caught.exception.candidates, ["upstream/main", "upstream/master"])

    def test_no_main(self) -> None:
        self.git.on(*LIST_REFS, stdout=ref_listing("refs/remotes/upstream/dev", "refs/remotes/origin/main"))

        with self.assertRaises(NotFoundError):
            branches.find_upstream_branch(self.repo)


class MergedBranchesTests(BranchTestCase):
    def test_markers(self) -> None:
        self.git.on(
            "branch", "--merged", "upstream/main",
            stdout="  feature-x\n+ in-worktree\n* current\n\n  release-1.30\n",
        )

        report = branches.merged_branches(self.repo, Branch("upstream/main", "main", self.upstream))

        self.assertEqual(report.branches, ["feature-x", "in-worktree", "release-1.30"])
        self.assertEqual(report.current, "current")

    def test_unexpected_shape(self) -> None:
        self.git.on("branch", "--merged", "upstream/main", stdout="* (HEAD detached at 1a2b3c)\n")

        with self.assertRaises(OutputParseError) as caught:
            branches.merged_branches(self.repo, Branch("upstream/main", "main", self.upstream))

        self.assertEqual(caught.exception.command, ["git", "branch", "--merged", "upstream/main"])


class MutationTests(BranchTestCase):
    def test_push_with_upstream(self) -> None:
        branches.push(self.repo, self.repo.remotes.get("origin"), "topic", set_upstream=True)

        self.assertEqual(self.git.commands[-1], ("push", "--set-upstream", "origin", "topic"))

    def test_cherry_pick_keeps_order(self) -> None:
        branches.cherry_pick(self.repo, ["a1", "b2", "c3"])

        self.assertEqual(self.git.commands[-1], ("cherry-pick", "a1", "b2", "c3"))

    def test_cherry_pick_nothing(self) -> None:
        with self.assertRaises(ValidationError):
            branches.cherry_pick(self.repo, [])

    def test_conflict_output_is_kept(self) -> None:
        self.git.on("cherry-pick", "a1", returncode=1, stdout="CONFLICT (content): Merge conflict in x.go\n")

        with self.assertRaises(GitCommandError) as caught:
            branches.cherry_pick(self.repo, ["a1"])

        self.assertIn("CONFLICT", caught.exception.stdout)

    def test_recent_branches(self) -> None:
        self.git.on(
            "for-each-ref", "--sort=-committerdate", "--count=3", "--format=%(refname:short)", "refs/heads",
            stdout="newest\nolder\noldest\n",
        )

        self.assertEqual(branches.recent_branches(self.repo, 3), ["newest", "older", "oldest"])

    def test_recent_branches_needs_positive_count(self) -> None:
        with self.assertRaises(ValidationError):
            branches.recent_branches(self.repo, 0)


if __name__ == "__main__":
    unittest.main()
