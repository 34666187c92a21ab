"""
Cloud Files Errors

Every operation either returns its value or raises exactly one of these.
The underlying collaborator exception is kept on ``cause`` (and chained).
"""

from typing import Optional


class CloudFilesError(Exception):
    """Base class for all cloud files failures."""

    kind: str = "error"

    def __init__(self, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.cause = cause
        if message is None:
            message = f"{self.kind} failed: {cause}" if cause is not None else self.kind
        super().__init__(message)


class UnknownError(CloudFilesError):
    """Response did not contain the fields required to build a result."""

    kind = "unknown"

    def __init__(self, message: str = "response missing required fields"):
        super().__init__(None, message)


class MissingScopesError(CloudFilesError):
    """No active session, or the session lacks a required scope."""

    kind = "missingScopes"

    def __init__(self, message: str = "not signed in or required scopes not granted"):
        super().__init__(None, message)


class FetchError(CloudFilesError):
    kind = "fetch"

    def __init__(self, cause: BaseException):
        super().__init__(cause)


class DownloadError(CloudFilesError):
    kind = "download"

    def __init__(self, cause: BaseException):
        super().__init__(cause)


class UploadError(CloudFilesError):
    kind = "upload"

    def __init__(self, cause: BaseException):
        super().__init__(cause)


class AuthorizeError(CloudFilesError):
    kind = "authorize"

    def __init__(self, cause: BaseException):
        super().__init__(cause)


class SignInError(CloudFilesError):
    kind = "signIn"

    def __init__(self, cause: BaseException):
        super().__init__(cause)
