"""Errors raised inside provider adapters.

These never escape the orchestrator: they are caught at the adapter boundary
and turned into an unusable result.
"""


class ProviderResponseError(Exception):
    """Provider answered, but with an error-shaped payload."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ProviderRateLimitedError(ProviderResponseError):
    """Provider reported its own quota/rate limit (e.g. an Alpha Vantage "Note")."""
