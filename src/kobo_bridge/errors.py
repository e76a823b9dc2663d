"""Exceptions raised across the bridge."""
from __future__ import annotations

from typing import Iterable, List


class BridgeError(Exception):
    """Base class for every error the bridge raises on purpose."""


class MissingRequiredFieldsError(BridgeError, ValueError):
    """Raised before encoding when a required record field is null."""

    message = "Missing required parameters"

    def __init__(self, fields: Iterable[str]):
        self.fields: List[str] = list(fields)
        super().__init__(f"{self.message}: {', '.join(self.fields)}")


class DependentsFormatError(BridgeError, ValueError):
    """Raised when the dependents payload is not a JSON array of objects."""


class ImagePayloadError(BridgeError, ValueError):
    """Raised when an embedded image blob cannot be decoded."""


class TransportError(BridgeError, RuntimeError):
    """Raised when a result message cannot be delivered or read back."""


class SendFailedError(BridgeError):
    """The send boundary caught a failure while encoding or delivering."""
