# Overview: Typed failures raised by the stock services and rendered by the API routes.

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError


# Store-level failures (connectivity, locking, constraint violations) are
# propagated as raised by SQLAlchemy, untranslated.
StorageFailure = SQLAlchemyError


class StockError(Exception):
    """Base for business-rule failures of stock operations."""
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientStock(StockError):
    """A decrement would take a ledger entry below zero packs."""
    http_status = 409


class EntryNotFound(StockError):
    """No ledger entry for the (item, location, unit cost) lot."""
    http_status = 404


class ItemNotFound(StockError):
    http_status = 404


class ItemAmbiguous(StockError):
    """More than one catalog item matches a (name, weight) lookup."""
    http_status = 409


class SaleNotFound(StockError):
    http_status = 404


class IdempotencyConflict(StockError):
    """An idempotency key was reused for a different request."""
    http_status = 409
