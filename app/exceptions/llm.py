# ruff: noqa: D107
"""LLM gateway exceptions."""

from typing import Any

from .base import BaseAppException


class LLMServiceError(BaseAppException):
    """Base exception for LLM gateway errors."""

    def __init__(
        self,
        message: str = "LLM service error occurred",
        error_code: str = "LLM_SERVICE_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, status_code=500, error_code=error_code, details=details)


class LLMConfigurationError(LLMServiceError):
    """Exception raised when a provider credential is missing."""

    def __init__(
        self,
        message: str = "LLM provider is not properly configured",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "LLM_CONFIGURATION_ERROR", details)


class LLMProviderError(LLMServiceError):
    """Exception raised when the provider call fails or returns nothing usable."""

    def __init__(
        self,
        message: str = "LLM provider request failed",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "LLM_PROVIDER_ERROR", details)


class LLMResponseParsingError(LLMServiceError):
    """Exception raised when a structured LLM answer cannot be parsed."""

    def __init__(
        self,
        message: str = "Failed to parse LLM response",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "LLM_PARSING_ERROR", details)
