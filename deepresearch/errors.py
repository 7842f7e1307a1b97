"""Error taxonomy shared by the search, LLM, research and memory layers."""

from __future__ import annotations


class DeepResearchError(Exception):
    """Base class for all deepresearch errors."""

    kind = "DeepResearchError"


class ConfigError(DeepResearchError):
    """Missing API key, unknown model or invalid setting. Fatal at construction."""

    kind = "ConfigError"


class AuthError(DeepResearchError):
    """Provider rejected the credentials (HTTP 401). Fatal for the run."""

    kind = "AuthError"


class RateLimited(DeepResearchError):
    """Provider answered HTTP 429."""

    kind = "RateLimited"


class ApiError(DeepResearchError):
    """Any other non-2xx response or transport failure."""

    kind = "ApiError"

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ParseError(DeepResearchError, ValueError):
    """LLM reply held no usable structured payload."""

    kind = "ParseError"


class InvalidArguments(DeepResearchError, ValueError):
    """Empty query or non-positive depth/breadth."""

    kind = "InvalidArguments"


class NoQueriesGenerated(DeepResearchError):
    """Chat hand-off produced no usable research queries."""

    kind = "NoQueriesGenerated"


class InvalidResponse(DeepResearchError):
    """LLM reply had no textual content."""

    kind = "InvalidResponse"


class MaxRetriesExceeded(DeepResearchError):
    kind = "MaxRetriesExceeded"


class LlmApiFailure(DeepResearchError):
    """LLM transport failed while an API key was configured."""

    kind = "LlmApiFailure"


def error_kind(exc: BaseException) -> str:
    """Name used for an exception in user-visible error strings."""
    if isinstance(exc, DeepResearchError):
        return exc.kind
    return type(exc).__name__
