"""Custom exceptions for Diffuse."""


class DiffuseError(Exception):
    """Base exception for all Diffuse errors."""


class ConfigError(DiffuseError):
    """Configuration-related errors."""


class ConfigValidationError(ConfigError):
    """Raised when a configuration is structurally or semantically invalid.

    Always raised before any analysis starts; the run aborts.
    """


class ParserError(DiffuseError):
    """Source parsing errors."""


class GitError(DiffuseError):
    """Git invocation errors."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(f"{message}: {stderr.strip()}" if stderr.strip() else message)
        self.stderr = stderr
