from __future__ import annotations

from pathlib import Path
from typing import Optional


class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class InsufficientStockError(AppError):
    """A sale asked for more units than the product has on hand."""

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(f"Not enough stock for {product_name}. Available: {available}")
        self.product_name = product_name
        self.available = int(available)
        self.requested = int(requested)


class PersistenceError(AppError):
    """A data file could not be read or written.

    ``path`` names the file involved when a single one is known.
    """

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None
