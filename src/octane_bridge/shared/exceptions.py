"""
Error taxonomy for the bridge
Every failure that aborts event handling derives from BridgeError
"""

from typing import Optional


class BridgeError(Exception):
    """Base class for bridge failures"""


class MissingRequiredFieldError(BridgeError, ValueError):
    """Webhook payload lacks repository, workflow or run data"""


class NotFoundError(BridgeError):
    """Lookup failed and creation was not allowed"""


class MissingCauseTypeError(BridgeError):
    """Root cause data without a cause type"""


class MissingParentDataError(BridgeError):
    """Non-root cause data without parent job data"""


class MissingTimestampsError(BridgeError):
    """Finished component without start/completion timestamps"""


class MissingConclusionError(BridgeError):
    """Finished component without a conclusion"""


class MissingScmDataError(BridgeError):
    """SCM event requested without SCM data"""


class RemoteCallError(BridgeError):
    """Non-successful response from the CI tracking server"""

    def __init__(
        self,
        status: int,
        reason: str,
        url: str,
        method: str,
        description: Optional[str] = None
    ):
        self.status = status
        self.reason = reason
        self.url = url
        self.method = method
        self.description = description or ""
        super().__init__(f"{status} - {reason} ({method} {url})")


def describe_error(error: BaseException) -> str:
    """Render an error the way it is reported at the top level"""
    if isinstance(error, RemoteCallError):
        return (
            f"{error.status} - {error.reason}\n"
            f"url: {error.url} - {error.method}\n"
            f"{error.description}"
        )
    return str(error)
