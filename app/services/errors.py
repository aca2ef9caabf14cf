"""
Exceptions raised by the provider service clients.
"""

from typing import Any

# Status recorded when the provider could not be reached at all
BAD_GATEWAY = 502
GATEWAY_TIMEOUT = 504


class ConfigurationError(ValueError):
    """Raised when a required credential or setting is missing."""


class ProviderAPIError(Exception):
    """
    A provider REST call returned a non-success status or could not be completed.

    Attributes:
        provider: Short name of the provider ("heygen", "openai")
        status_code: HTTP status returned by the provider, or 502/504 when it was unreachable
        detail: Decoded JSON error body, or the raw text if it was not JSON
    """

    def __init__(self, provider: str, status_code: int, detail: Any):
        self.provider = provider
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{provider} API error {status_code}: {detail}")
