"""Common exceptions for domain, repository and service layers."""
from __future__ import annotations

class WebhookServiceError(Exception):
    """Base error for the webhook service."""

class RepositoryError(WebhookServiceError):
    """Raised when storage operations fail."""

class WebhookValidationError(WebhookServiceError):
    """Raised when a webhook configuration is incomplete or malformed."""

class TemplateNotFoundError(WebhookServiceError):
    """Raised when a webhook template name is unknown."""
