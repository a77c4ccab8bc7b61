"""
Tests for GitClient.

Unit tests mock subprocess.run and check the argv passed to git; the
integration class drives a real git binary against a local repository.
"""

import shutil
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from gitpipeline.exit_codes import GitCommandError
from gitpipeline.domain.request import FetchRequest
from gitpipeline.infra.git_client import GitClient
from gitpipeline.services.acquire_service import AcquireService


def completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def mock_run():
    with patch("gitpipeline.infra.git_client.subprocess.run") as run:
        run.return_value = completed()
        yield run


def argv(mock_run, index=-1):
    return mock_run.call_args_list[index][0][0]


class TestGitClientCommands:
    """Tests for the argv each operation produces."""

    def test_clone_with_branch(self, mock_run):
        GitClient().clone("https://example.com/r.git", "/tmp/d", branch="dev", depth=2)

        assert argv(mock_run) == [
            "git", "clone", "--single-branch", "--depth", "2",
            "--branch", "dev", "https://example.com/r.git", "/tmp/d",
        ]

    def test_clone_without_branch(self, mock_run):
        GitClient().clone("https://example.com/r.git", "/tmp/d")
        assert "--branch" not in argv(mock_run)

    def test_environment_passed(self, mock_run):
        GitClient(env={"GIT_CONFIG_COUNT": "0"}).clean("/tmp/d")

        env = mock_run.call_args.kwargs["env"]
        assert env["GIT_CONFIG_COUNT"] == "0"
        assert env["GIT_TERMINAL_PROMPT"] == "0"

    def test_current_branch(self, mock_run):
        mock_run.return_value = completed("main\n")
        assert GitClient().current_branch("/tmp/d") == "main"
        assert argv(mock_run) == ["git", "rev-parse", "--abbrev-ref", "HEAD"]

    def test_checkout_present_ref(self, mock_run):
        GitClient().checkout("/tmp/d", "v1.0")

        assert argv(mock_run, 0) == ["git", "cat-file", "-e", "v1.0^{commit}"]
        assert argv(mock_run) == ["git", "checkout", "-q", "v1.0"]
        assert mock_run.call_count == 2

    def test_checkout_fetches_missing_ref(self, mock_run):
        mock_run.side_effect = [
            completed(returncode=1),   # cat-file: not present
            completed(),               # fetch
            completed(returncode=1),   # cat-file: still no local name
            completed(),               # checkout
        ]
        GitClient().checkout("/tmp/d", "v0.9", depth=1)

        assert argv(mock_run, 1) == ["git", "fetch", "--depth", "1", "origin", "v0.9"]
        assert argv(mock_run) == ["git", "checkout", "-q", "FETCH_HEAD"]

    def test_failure_raises_with_stderr(self, mock_run):
        mock_run.return_value = completed(returncode=128, stderr="fatal: repository not found")

        with pytest.raises(GitCommandError) as exc_info:
            GitClient().clone("https://example.com/none.git", "/tmp/d")

        assert exc_info.value.returncode == 128
        assert "repository not found" in str(exc_info.value)
        assert exc_info.value.exit_code == 1

    def test_timeout_raises(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=1)
        with pytest.raises(GitCommandError, match="timed out"):
            GitClient(timeout=1).clean("/tmp/d")

    def test_missing_executable(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git")
        with pytest.raises(GitCommandError) as exc_info:
            GitClient().clean("/tmp/d")
        assert exc_info.value.returncode == 127

    def test_verify_commit_returns_bool(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="no signature")
        assert GitClient().verify_commit("/tmp/d", "abc") is False
        mock_run.return_value = completed()
        assert GitClient().verify_commit("/tmp/d", "abc") is True

    def test_clean_is_forced(self, mock_run):
        GitClient().clean("/tmp/d")
        assert argv(mock_run) == ["git", "clean", "--force", "--force", "-d"]

    def test_update_all_submodules(self, mock_run):
        GitClient().update_submodules("/tmp/d", depth=1)
        assert argv(mock_run) == [
            "git", "submodule", "update", "--init", "--recursive", "--depth", "1",
        ]

    def test_update_named_submodules_in_order(self, mock_run):
        GitClient().update_submodules("/tmp/d", paths=["b", "a"], depth=1)

        assert mock_run.call_count == 2
        assert argv(mock_run, 0)[-2:] == ["--", "b"]
        assert argv(mock_run, 1)[-2:] == ["--", "a"]

    def test_lfs_pull(self, mock_run):
        GitClient().lfs_pull("/tmp/d")
        assert argv(mock_run, 0) == ["git", "lfs", "fetch"]
        assert argv(mock_run, 1) == ["git", "lfs", "checkout"]

    def test_commit_metadata(self, mock_run):
        log = "\x1f".join([
            "c0ffee",
            "Ada <ada@example.com>",
            "2024-01-01T00:00:00+00:00",
            "Bot <bot@example.com>",
            "2024-01-02T00:00:00+00:00",
            "Fix things\n\nLonger body\n",
        ])
        mock_run.side_effect = [completed(log), completed("v1.0\nlatest\n")]

        metadata = GitClient().commit_metadata("/tmp/d", "HEAD", branch="main")

        assert metadata == [
            ("commit", "c0ffee"),
            ("author", "Ada <ada@example.com>"),
            ("author_date", "2024-01-01T00:00:00+00:00"),
            ("committer", "Bot <bot@example.com>"),
            ("committer_date", "2024-01-02T00:00:00+00:00"),
            ("branch", "main"),
            ("tags", "v1.0,latest"),
            ("message", "Fix things\n\nLonger body"),
        ]

    def test_commit_metadata_omits_same_committer_and_tags(self, mock_run):
        log = "\x1f".join(["c0ffee", "Ada <a@x>", "d1", "Ada <a@x>", "d2", "msg"])
        mock_run.side_effect = [completed(log), completed("")]

        names = [name for name, _ in GitClient().commit_metadata("/tmp/d")]

        assert names == ["commit", "author", "author_date", "committer_date", "message"]


def git(cwd, *args):
    subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com",
         "-c", "commit.gpgsign=false", *args],
        cwd=cwd, check=True, capture_output=True, text=True,
    )


@pytest.fixture
def origin(tmp_path):
    """A local repository with a main branch, a tag and a dev branch."""
    repo = tmp_path / "origin"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "checkout", "-q", "-b", "main")
    (repo / "a.txt").write_text("one\n")
    git(repo, "add", "a.txt")
    git(repo, "commit", "-q", "-m", "first")
    git(repo, "tag", "v1")
    (repo / "a.txt").write_text("two\n")
    git(repo, "commit", "-q", "-am", "second")
    git(repo, "branch", "dev")
    return repo


@pytest.mark.integration
@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestGitClientIntegration:
    """Drive a real git binary against a file:// origin."""

    def test_clone_and_describe(self, origin, tmp_path):
        client = GitClient()
        dest = tmp_path / "dest"

        client.clone(origin.as_uri(), dest, branch="main")

        assert client.current_branch(dest) == "main"
        assert (dest / "a.txt").read_text() == "two\n"
        commit = client.resolve_commit(dest)
        metadata = dict(client.commit_metadata(dest, branch="main"))
        assert metadata["commit"] == commit
        assert metadata["message"] == "second"
        assert metadata["branch"] == "main"

    def test_checkout_tag_outside_shallow_history(self, origin, tmp_path):
        client = GitClient()
        dest = tmp_path / "dest"
        client.clone(origin.as_uri(), dest, branch="main", depth=1)
        branch = client.current_branch(dest)

        client.checkout(dest, "v1", depth=1)

        assert branch == "main"
        assert client.current_branch(dest) == "HEAD"
        assert (dest / "a.txt").read_text() == "one\n"

    def test_fetch_extra_branch(self, origin, tmp_path):
        client = GitClient()
        dest = tmp_path / "dest"
        client.clone(origin.as_uri(), dest, branch="main")

        client.fetch(dest, "refs/heads/dev")
        client.create_branch(dest, "dev")

        assert client.resolve_commit(dest, "dev") == client.resolve_commit(dest, "main")

    def test_fetch_missing_branch_fails(self, origin, tmp_path):
        client = GitClient()
        dest = tmp_path / "dest"
        client.clone(origin.as_uri(), dest, branch="main")

        with pytest.raises(GitCommandError):
            client.fetch(dest, "refs/heads/nope")


@pytest.mark.integration
@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestVerifiedCheckoutIntegration:
    """Verification runs against refs that the single-branch clone does not hold."""

    def acquire_verified(self, origin, dest, ref):
        request = FetchRequest(
            uri=origin.as_uri(), branch="main", ref=ref,
            verification_keys=("KEY",), submodules="none", lfs_disabled=True,
        )
        gpg = MagicMock()
        with patch.object(GitClient, "verify_commit", return_value=True) as verify:
            snapshot = AcquireService(GitClient(), gpg).acquire(request, dest)
        gpg.import_key.assert_called_once_with("KEY")
        return snapshot, verify

    @pytest.mark.parametrize("ref, content", [("v1", "one\n"), ("dev", "two\n")])
    def test_verifies_checked_out_commit(self, origin, tmp_path, ref, content):
        dest = tmp_path / "dest"

        snapshot, verify = self.acquire_verified(origin, dest, ref)

        expected = subprocess.run(["git", "rev-parse", f"{ref}^{{commit}}"], cwd=origin,
                                  capture_output=True, text=True, check=True).stdout.strip()
        verify.assert_called_once_with(dest, expected)
        assert snapshot.current_branch == "main"
        assert (dest / "a.txt").read_text() == content
