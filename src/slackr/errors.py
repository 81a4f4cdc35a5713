"""Application-level exception types for Slackr."""

from __future__ import annotations


class SlackrError(Exception):
    """Base exception for Slackr."""


class ConfigurationError(SlackrError):
    """Base exception for configuration and startup validation errors."""


class ModelNotConfiguredError(ConfigurationError):
    """Raised when model configuration is missing."""


class EmbeddingError(SlackrError):
    """Raised when an embedding cannot be computed for a text."""


class ModelInvocationError(SlackrError):
    """Raised when the hosted language model call fails or times out."""
