# src/todoplus/core/errors.py

"""Error taxonomy shared by the service layer, the HTTP API and the connectors."""

from __future__ import annotations

from typing import Any


class TodoError(RuntimeError):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientInputError(TodoError):
    """Missing or malformed request input."""

    status_code = 400


class NotFoundError(TodoError):
    status_code = 404


class DeliveryError(TodoError):
    """The chat platform did not accept an outbound message."""


def error_response(message: str) -> dict[str, Any]:
    """Standard error envelope returned by the HTTP API."""
    return {"error": message}
