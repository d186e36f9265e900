"""
Standard exit codes and error types for grit commands.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NO_REPOS_FOUND = 64      # Repository name not registered in the workspace
CONFIG_ERROR = 66        # Workspace document missing, corrupt or legacy
PERMISSION_ERROR = 67    # Insufficient permissions
DATA_ERROR = 70          # Data format or validation error
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'NotADirectoryError': GENERAL_ERROR,
    'PermissionError': PERMISSION_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'YAMLError': CONFIG_ERROR,
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
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when the workspace document cannot be used."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class ConfigMissingError(ConfigError):
    """Raised when no workspace document exists at the expected location."""
    def __init__(self, path):
        super().__init__(
            f"No grit workspace found at {path} (run 'grit init' first)"
        )
        self.path = path


class ConfigCorruptError(ConfigError):
    """Raised when the workspace document cannot be parsed or validated."""
    def __init__(self, path, reason: str):
        super().__init__(f"Corrupt workspace config {path}: {reason}")
        self.path = path
        self.reason = reason


class LegacyFormatError(ConfigError):
    """Raised when the document was written with the legacy symbol-key format."""
    def __init__(self, path):
        super().__init__(
            f"Workspace config {path} uses the legacy format; "
            "run 'grit convert-config' to migrate it"
        )
        self.path = path


class DirectoryMissingError(CommandError):
    """Raised when a workspace target directory does not exist."""
    def __init__(self, path):
        super().__init__(f"Directory doesn't exist: {path}", GENERAL_ERROR)
        self.path = path


class NotAGitRepoError(CommandError):
    """Raised when a path to register is not a git working copy."""
    def __init__(self, path):
        super().__init__(f"Not a git repository: {path}", DATA_ERROR)
        self.path = path


class RepositoryNotFoundError(CommandError):
    """Raised when no registered repository has the given name."""
    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(message or f"Could not find repository {name}", NO_REPOS_FOUND)
        self.name = name


class RepoNotFoundError(RepositoryNotFoundError):
    """Raised when a single-repository run cannot reach its target."""
    def __init__(self, name: str, path: Optional[str] = None):
        if path is None:
            message = f"Repository not found: {name}"
        else:
            message = f"Repository {name} not found at {path}"
        super().__init__(name, message)
        self.path = path
