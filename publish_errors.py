#!/usr/bin/env python3
"""
Error types for the S3 file publisher.

ConfigurationError is fatal before serving; the other errors are
per-request and carry enough detail for the caller to decide on retry.
"""

from typing import Optional


class PublishError(Exception):
    """Base class for all publisher errors."""


class ConfigurationError(PublishError):
    """Required configuration value missing or invalid at startup."""


class EncodingError(PublishError):
    """Request content could not be decoded (e.g. malformed base64)."""


class SigningError(PublishError):
    """Request could not be signed."""


class NotificationError(PublishError):
    """Notification request is missing fields or has invalid values."""


class TransportError(PublishError):
    """
    Upload did not complete: network failure or non-success HTTP status.

    Attributes:
        status_code: HTTP status from the object store, None for network faults
        body: Response body snippet, when one was received
    """

    BODY_SNIPPET_LIMIT = 1024

    def __init__(self, message: str, status_code: Optional[int] = None,
                 body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        if body is not None and len(body) > self.BODY_SNIPPET_LIMIT:
            body = body[:self.BODY_SNIPPET_LIMIT]
        self.body = body

    def to_dict(self):
        return {
            'error': str(self),
            'status_code': self.status_code,
            'body': self.body,
        }
