"""
Git client infrastructure for gitpipeline.

Provides a clean abstraction over git command execution.
All git operations go through this client, making them:
- Easy to mock for testing
- Consistent in error handling
- Isolated from business logic

Commands are passed as argv lists; refs, branch names and URIs come from
the request payload and never go through a shell.
"""

import os
import subprocess
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..exit_codes import GitCommandError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Unit separator between log fields; cannot appear in names or dates.
_FIELD_SEP = "\x1f"
_METADATA_FORMAT = "%H%x1f%an <%ae>%x1f%aI%x1f%cn <%ce>%x1f%cI%x1f%B"


class GitClient:
    """
    Abstraction over git commands.

    Every failing command raises GitCommandError carrying git's stderr;
    there are no retries.

    Example:
        client = GitClient(env={"GIT_SSH_COMMAND": "ssh -i key"})
        client.clone("https://example.com/repo.git", "/tmp/dest", branch="main")
        print(client.current_branch("/tmp/dest"))
    """

    def __init__(
        self,
        executable: str = "git",
        timeout: int = 600,
        env: Optional[Dict[str, str]] = None
    ):
        """
        Initialize GitClient.

        Args:
            executable: git binary to invoke
            timeout: Per-command timeout in seconds
            env: Extra environment variables for every invocation
        """
        self.executable = executable
        self.timeout = timeout
        self.env = dict(env or {})

    def _environment(self) -> Dict[str, str]:
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        env.update(self.env)
        return env

    def _run(
        self,
        args: Sequence[str],
        cwd: Optional[PathLike] = None,
        check: bool = True
    ) -> Tuple[str, int]:
        """
        Run a git command.

        Args:
            args: Arguments after the git executable
            cwd: Working directory
            check: Raise GitCommandError on non-zero exit

        Returns:
            Tuple of (stdout, returncode)
        """
        cmd = [self.executable, *args]
        logger.debug(f"Running {' '.join(cmd)} in {cwd or os.getcwd()}")

        try:
            result = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self._environment()
            )
        except subprocess.TimeoutExpired:
            raise GitCommandError(cmd, -1, f"timed out after {self.timeout} seconds")
        except OSError as e:
            raise GitCommandError(cmd, 127, str(e))

        if result.returncode != 0:
            if check:
                logger.error(result.stderr.strip() or f"{' '.join(cmd)} failed")
                raise GitCommandError(cmd, result.returncode, result.stderr)
            logger.debug(result.stderr.strip())

        return result.stdout.strip(), result.returncode

    def clone(
        self,
        uri: str,
        destination: PathLike,
        branch: Optional[str] = None,
        depth: int = 1
    ) -> None:
        """Shallow, single-branch clone of uri into destination."""
        args = ["clone", "--single-branch", "--depth", str(depth)]
        if branch:
            args += ["--branch", branch]
        args += [uri, str(destination)]
        self._run(args)

    def current_branch(self, path: PathLike) -> str:
        """Get the branch checked out at HEAD ("HEAD" when detached)."""
        output, _ = self._run(["rev-parse", "--abbrev-ref", "HEAD"], cwd=path)
        return output

    def has_commit(self, path: PathLike, ref: str) -> bool:
        """Check whether ref resolves to a commit present in the local clone."""
        _, code = self._run(["cat-file", "-e", f"{ref}^{{commit}}"], cwd=path, check=False)
        return code == 0

    def checkout(self, path: PathLike, ref: str, depth: int = 1) -> None:
        """
        Check out ref.

        A shallow clone only holds the branch tip, so a ref that is not
        present locally is fetched from origin first.
        """
        if not self.has_commit(path, ref):
            logger.info(f"Fetching {ref} from origin")
            self._run(["fetch", "--depth", str(depth), "origin", ref], cwd=path)
            if not self.has_commit(path, ref):
                ref = "FETCH_HEAD"
        self._run(["checkout", "-q", ref], cwd=path)

    def resolve_commit(self, path: PathLike, ref: str = "HEAD") -> str:
        """Resolve ref to a full commit id."""
        output, _ = self._run(["rev-parse", "--verify", f"{ref}^{{commit}}"], cwd=path)
        return output

    def verify_commit(self, path: PathLike, commit: str) -> bool:
        """Check the OpenPGP signature on a single commit."""
        _, code = self._run(["verify-commit", commit], cwd=path, check=False)
        return code == 0

    def lfs_pull(self, path: PathLike) -> None:
        """Fetch and check out LFS objects for the current tree."""
        self._run(["lfs", "fetch"], cwd=path)
        self._run(["lfs", "checkout"], cwd=path)

    def clean(self, path: PathLike) -> None:
        """Remove untracked files and directories, including nested repositories."""
        self._run(["clean", "--force", "--force", "-d"], cwd=path)

    def update_submodules(
        self,
        path: PathLike,
        paths: Optional[Sequence[str]] = None,
        depth: int = 1
    ) -> None:
        """
        Initialize and update submodules recursively.

        Args:
            path: Repository root
            paths: Submodule paths to update, in order; None updates all
            depth: Shallow depth applied to every submodule clone
        """
        args = ["submodule", "update", "--init", "--recursive", "--depth", str(depth)]
        if paths is None:
            self._run(args, cwd=path)
            return
        for submodule in paths:
            self._run([*args, "--", submodule], cwd=path)

    def lfs_pull_submodules(self, path: PathLike) -> None:
        """Fetch and check out LFS objects inside every submodule."""
        self._run(
            ["submodule", "foreach", "--recursive", "git lfs fetch && git lfs checkout"],
            cwd=path
        )

    def fetch(self, path: PathLike, refspec: str, depth: int = 1) -> None:
        """Fetch refspec from origin into FETCH_HEAD."""
        self._run(["fetch", "--depth", str(depth), "origin", refspec], cwd=path)

    def create_branch(self, path: PathLike, name: str, start: str = "FETCH_HEAD") -> None:
        """Create (or reset) a local branch pointing at start."""
        self._run(["branch", "--force", name, start], cwd=path)

    def tags_at(self, path: PathLike, commit: str) -> List[str]:
        """List tags pointing at commit."""
        output, _ = self._run(["tag", "--points-at", commit], cwd=path)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def commit_metadata(
        self,
        path: PathLike,
        ref: str = "HEAD",
        branch: Optional[str] = None
    ) -> List[Tuple[str, str]]:
        """
        Describe a commit as ordered (name, value) pairs.

        Args:
            path: Repository root
            ref: Commit to describe
            branch: Branch name to report alongside the commit

        Returns:
            Pairs for commit, author, author_date, committer (if it differs
            from the author), committer_date, branch, tags and message
        """
        output, _ = self._run(["log", "-1", f"--format={_METADATA_FORMAT}", ref], cwd=path)
        parts = output.split(_FIELD_SEP, 5)
        if len(parts) < 6:
            logger.warning(f"Unexpected git log output for {ref}")
            return []

        commit, author, author_date, committer, committer_date, message = parts
        metadata = [
            ("commit", commit),
            ("author", author),
            ("author_date", author_date),
        ]
        if committer != author:
            metadata.append(("committer", committer))
        metadata.append(("committer_date", committer_date))
        if branch and branch != "HEAD":
            metadata.append(("branch", branch))

        tags = self.tags_at(path, commit)
        if tags:
            metadata.append(("tags", ",".join(tags)))

        metadata.append(("message", message.strip()))
        return metadata
