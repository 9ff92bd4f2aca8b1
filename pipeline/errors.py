"""Error types raised by the transcript-to-trials pipeline."""

from __future__ import annotations

__all__ = [
    "PipelineError",
    "InvalidInputError",
    "UpstreamUnavailableError",
    "LLMProviderError",
]


class PipelineError(Exception):
    """Base class for pipeline failures."""


class InvalidInputError(PipelineError, ValueError):
    """Raised when the caller omits a required input such as the transcript."""


class UpstreamUnavailableError(PipelineError):
    """Raised when a remote collaborator fails or returns unusable data.

    Stages convert this into a fallback value; it never reaches the HTTP layer.
    """


class LLMProviderError(UpstreamUnavailableError):
    """Raised when the generative-text provider call fails."""
