"""Exception taxonomy. Every message is safe to show to the user as-is."""


class PokifaceError(Exception):
    """Base for all user-facing PokiFace errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UploadRejected(PokifaceError):
    """The file failed validation (kind is 'type' or 'size'). No state change happened."""

    def __init__(self, message: str, kind: str) -> None:
        super().__init__(message)
        self.kind = kind


class UploadReadError(PokifaceError):
    """The underlying file could not be read."""


class CredentialError(PokifaceError):
    """The credential was rejected before any network call (e.g. empty input)."""


class InvalidCredentialError(CredentialError):
    """The provider probe rejected the credential or could not be reached."""


class AnalysisError(PokifaceError):
    """The vision provider returned a non-2xx response or could not be reached."""


class AnalysisInProgressError(PokifaceError):
    """A second analysis was requested while one is still running."""
