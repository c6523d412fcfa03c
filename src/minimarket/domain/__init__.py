from .models import Customer, Product, SaleLine, Sale
from .errors import ValidationError, NotFoundError, InsufficientStockError, PersistenceError

__all__ = [
    "Customer",
    "Product",
    "SaleLine",
    "Sale",
    "ValidationError",
    "NotFoundError",
    "InsufficientStockError",
    "PersistenceError",
]
