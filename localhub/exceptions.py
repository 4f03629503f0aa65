"""Exceptions raised by the hub registry and the remote configurator."""


class LocalHubError(Exception):
    """Base exception for all localhub errors."""

    def __init__(self, message, recovery_hint=None):
        super().__init__(message)
        self.recovery_hint = recovery_hint

    def __str__(self):
        base = super().__str__()
        if self.recovery_hint:
            return f"{base}\nHint: {self.recovery_hint}"
        return base


class InvalidNameError(LocalHubError):
    """Raised when a repository name fails validation."""

    pass


class AlreadyExistsError(LocalHubError):
    """Raised when a repository or remote with the same name already exists."""

    pass


class NotFoundError(LocalHubError):
    """Raised when a repository, a remote or a working repository is missing."""

    pass


class NotARepositoryError(NotFoundError):
    """Raised when no git repository can be opened at, or found above, a path."""

    pass


class InvalidRepositoryError(LocalHubError):
    """Raised when a hub entry does not look like a bare git repository."""

    pass


class RedundantPushUrlError(LocalHubError):
    """Raised when a push URL would not change where a remote pushes to."""

    pass


class HubIOError(LocalHubError):
    """Wraps filesystem and git config failures with the attempted action."""

    pass
