"""
Standard exit codes and error types for gitpipeline.

Exit codes are part of the resource protocol: the CI host only
distinguishes success, generic failure and rejected key material.
"""
from typing import Optional, Sequence

SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # Missing config, missing field, unsigned commit, git failure
INVALID_KEY = 2          # Verification key material could not be imported
USAGE_ERROR = 1          # Missing or malformed command-line arguments
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for exceptions not derived from CommandError
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'PermissionError': GENERAL_ERROR,
    'JSONDecodeError': GENERAL_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    return EXCEPTION_EXIT_CODES.get(exc.__class__.__name__, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class InputError(CommandError):
    """Raised when the request payload is malformed or incomplete."""
    def __init__(self, message: str):
        super().__init__(message, GENERAL_ERROR)


class GitCommandError(CommandError):
    """Raised when a git invocation (clone, checkout, fetch, ...) fails."""
    def __init__(self, args: Sequence[str], returncode: int, stderr: Optional[str] = None):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        message = f"git command failed with exit code {returncode}: {' '.join(self.args_list)}"
        if self.stderr:
            message += f"\n{self.stderr}"
        super().__init__(message, GENERAL_ERROR)


class InvalidKeyError(CommandError):
    """Raised when an armored verification key cannot be imported."""
    def __init__(self, message: str, key: str = ""):
        super().__init__(message, INVALID_KEY)
        self.key = key


class KeyserverError(CommandError):
    """Raised when a verification key id cannot be fetched from the keyserver."""
    def __init__(self, message: str, key_id: str = ""):
        super().__init__(message, GENERAL_ERROR)
        self.key_id = key_id


class CommitNotSignedError(CommandError):
    """Raised when the checked-out commit has no valid signature."""
    def __init__(self, commit: str):
        super().__init__(f"Commit {commit} is not signed by a trusted key", GENERAL_ERROR)
        self.commit = commit


class MissingConfigError(CommandError):
    """Raised when the pipeline discovery document is missing or unreadable."""
    def __init__(self, path: str, reason: str = "not found"):
        super().__init__(f"Pipeline config {path} {reason}", GENERAL_ERROR)
        self.path = path


class MissingPipelineFieldError(CommandError):
    """Raised when a pipeline entry lacks a required field."""
    def __init__(self, index: int, field_name: str, name: Optional[str] = None):
        label = f"'{name}'" if name else f"#{index}"
        super().__init__(
            f"Pipeline entry {label} is missing required field '{field_name}'",
            GENERAL_ERROR
        )
        self.index = index
        self.field_name = field_name
        self.name = name


class UnreadablePipelineConfigError(CommandError):
    """Raised when a pipeline entry's config file cannot be read."""
    def __init__(self, name: str, path: str):
        super().__init__(f"Pipeline '{name}': config file {path} is not readable", GENERAL_ERROR)
        self.name = name
        self.path = path


class MissingVarsFileError(CommandError):
    """Raised when a vars file referenced by a pipeline cannot be read."""
    def __init__(self, name: str, path: str):
        super().__init__(f"Pipeline '{name}': vars file {path} is not readable", GENERAL_ERROR)
        self.name = name
        self.path = path
