"""Errors raised by the gateway and converted to JSON responses at the HTTP edge."""

from typing import Any, Optional


class ChatGatewayError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InvalidRequest(ChatGatewayError):
    status_code = 400


class UnsupportedProvider(InvalidRequest):
    """Provider name outside the known set."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unsupported provider: {provider}")
        self.provider = provider


class RateLimited(ChatGatewayError):
    status_code = 429


class ChatNotFound(ChatGatewayError):
    status_code = 404

    def __init__(self, chat_id: str) -> None:
        super().__init__("Chat not found")
        self.chat_id = chat_id


class Unauthorized(ChatGatewayError):
    status_code = 401


class ProviderCallFailed(ChatGatewayError):
    """Vendor answered with a non-success status; the status is passed through."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(
            "Failed to get response from AI model",
            status_code=status_code,
            details=body,
        )
        self.body = body


class ProviderTimeout(ProviderCallFailed):
    def __init__(self, timeout: float) -> None:
        super().__init__(504, f"Provider did not respond within {timeout:g} seconds")
        self.timeout = timeout


class EmptyProviderResponse(ChatGatewayError):
    status_code = 500

    def __init__(self) -> None:
        super().__init__("No response from AI model")
