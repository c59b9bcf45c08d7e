"""Error taxonomy for graphite-git."""

from typing import Optional


class GraphiteError(Exception):
    """Base class for all graphite-git errors."""


class ConfigurationError(GraphiteError):
    """A required setting (credential, model) is missing or invalid."""


class EngineError(GraphiteError):
    """The reasoning engine failed: transport, quota, auth or malformed response."""


class ToolResolutionError(GraphiteError):
    """Owner, repo or path for a tool call could not be resolved."""


class PatchMismatchError(GraphiteError):
    """The 'search' text of a replacement is not present in the current file.

    Distinct from a write failure: it means the engine's view of the file is
    stale and it should read the file again.
    """


class SettingsError(GraphiteError):
    """The settings file cannot be read."""


class SettingsVersionError(SettingsError):
    """The settings file was written by a newer, unknown schema version."""


class RemoteError(GraphiteError):
    """A hosting API call failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RemoteNotFoundError(RemoteError):
    pass


class RemoteConflictError(RemoteError):
    """The version token sent with a write is stale."""


class RemoteAuthError(RemoteError):
    pass


class RemoteForbiddenError(RemoteAuthError):
    pass


class RateLimitError(RemoteError):
    pass
