"""Error taxonomy shared by the REST API and the live channel."""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import status


class ErrorKind(str, Enum):
    """Stable, machine-checkable error kinds."""

    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    UNAUTHENTICATED = "unauthenticated"
    GATEWAY_FAILURE = "gateway_failure"
    INTERNAL_ERROR = "internal_error"


class GatewayFailureReason(str, Enum):
    """Closed set of completion failures."""

    CONTENT_FILTERED = "content_filtered"
    QUOTA_EXCEEDED = "quota_exceeded"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


GATEWAY_FAILURE_MESSAGES: Dict[GatewayFailureReason, str] = {
    GatewayFailureReason.CONTENT_FILTERED: "Message blocked for safety reasons.",
    GatewayFailureReason.QUOTA_EXCEEDED: "API quota exceeded. Try again later.",
    GatewayFailureReason.TIMEOUT: "Request timeout. Please try again.",
    GatewayFailureReason.UNKNOWN: "Sorry, I encountered an error. Please try again.",
}


class ChatError(Exception):
    """Base exception carrying a user-presentable message and an error kind."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message}


class ValidationError(ChatError):
    kind = ErrorKind.VALIDATION_ERROR
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class EmptyMessageError(ValidationError):
    default_message = "Message cannot be empty"


class NotFoundError(ChatError):
    """Missing conversation, or one the caller does not own. The two are indistinguishable."""

    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Conversation not found"


class UnauthenticatedError(ChatError):
    kind = ErrorKind.UNAUTHENTICATED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class GatewayFailure(ChatError):
    """Completion failed. The message never includes provider details."""

    kind = ErrorKind.GATEWAY_FAILURE
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, reason: GatewayFailureReason):
        self.reason = reason
        super().__init__(GATEWAY_FAILURE_MESSAGES[reason])

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["reason"] = self.reason.value
        return payload


class InternalError(ChatError):
    pass
