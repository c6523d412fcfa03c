from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


DEFAULT_TAX = 0.19


@dataclass(eq=False)
class Customer:
    id: int = 0
    name: str = ""
    surname: str = ""
    document: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Customer):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(("customer", self.id))


@dataclass(eq=False)
class Product:
    id: int = 0
    code: str = ""
    name: str = ""
    description: str = ""
    price: float = 0.0
    tax: float = DEFAULT_TAX
    discount: float = 0.0
    stock: int = 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Product):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(("product", self.id))


@dataclass(eq=False)
class SaleLine:
    """One product row of a sale.

    ``unit_price`` is a snapshot of the product's final price taken when the
    product reference was set. The four amounts below it are derived and are
    only written by ``minimarket.domain.pricing``.
    """

    id: int = 0
    product: Optional[Product] = None
    quantity: int = 0
    unit_price: float = 0.0
    base_subtotal: float = 0.0
    tax_amount: float = 0.0
    discount_amount: float = 0.0
    line_total: float = 0.0


@dataclass(eq=False)
class Sale:
    """A sale header and its lines.

    ``customer_id`` is the stored reference. It survives when ``customer``
    could not be resolved because that customer was deleted.
    """

    id: int = 0
    customer: Optional[Customer] = None
    customer_id: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    lines: list[SaleLine] = field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    discount: float = 0.0
    total: float = 0.0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sale):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(("sale", self.id))

    def find_line(self, line_id: int) -> Optional[SaleLine]:
        for line in self.lines:
            if line.id == line_id:
                return line
        return None
