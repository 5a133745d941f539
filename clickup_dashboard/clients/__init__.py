"""HTTP-клиенты внешних сервисов."""

from .clickup import ClickUpClient
from .errors import ClickUpAPIError, ProxyResponseError, TransientFetchError
from .gemini import GeminiClient, SummaryServiceError
from .retry import request_with_retry

__all__ = [
    "ClickUpAPIError",
    "ClickUpClient",
    "GeminiClient",
    "ProxyResponseError",
    "SummaryServiceError",
    "TransientFetchError",
    "request_with_retry",
]
