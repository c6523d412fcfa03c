from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from minimarket.domain.errors import PersistenceError
from minimarket.domain.models import Customer, Product, Sale, SaleLine


CUSTOMERS_FILE = "clientes.csv"
PRODUCTS_FILE = "productos.csv"
SALES_FILE = "ventas.csv"
SALE_LINES_FILE = "detalles_venta.csv"

SEPARATOR = ","


@dataclass(frozen=True)
class SaleRecord:
    id: int
    created_at: datetime
    customer_id: int


@dataclass(frozen=True)
class SaleLineRecord:
    id: int
    sale_id: int
    product_id: int
    quantity: int
    unit_price: float


def read_lines(path: Path) -> list[str]:
    """Non-blank lines of a data file; a missing file reads as empty."""
    if not path.exists():
        return []
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"Could not read {path.name}: {exc}", path=path) from exc
    return [ln for ln in text.splitlines() if ln.strip()]


def _money(value: float) -> str:
    return f"{float(value):.2f}"


def _fields(line: str, minimum: int, what: str) -> list[str]:
    data = line.split(SEPARATOR)
    if len(data) < minimum:
        raise ValueError(f"{what} record needs {minimum} columns, found {len(data)}")
    return data


# ---------- Customers ----------
# id,name,email,phone,address,surname,document
def encode_customer(c: Customer) -> str:
    return SEPARATOR.join(
        [str(int(c.id)), c.name, c.email, c.phone, c.address, c.surname, c.document]
    )


def decode_customer(line: str) -> Customer:
    data = _fields(line, 5, "Customer")
    return Customer(
        id=int(data[0]),
        name=data[1],
        email=data[2],
        phone=data[3],
        address=data[4],
        surname=data[5] if len(data) > 5 else "",
        document=data[6] if len(data) > 6 else "",
    )


# ---------- Products ----------
# id,name,description,price,taxPercent,discountPercent,stock,code
def encode_product(p: Product) -> str:
    return SEPARATOR.join(
        [
            str(int(p.id)),
            p.name,
            p.description,
            _money(p.price),
            f"{float(p.tax) * 100.0:.2f}",
            f"{float(p.discount) * 100.0:.2f}",
            str(int(p.stock)),
            p.code,
        ]
    )


def decode_product(line: str) -> Product:
    data = _fields(line, 7, "Product")
    stock = int(data[6])
    if stock < 0:
        raise ValueError(f"Product stock must be >= 0, found {stock}")
    return Product(
        id=int(data[0]),
        name=data[1],
        description=data[2],
        price=float(data[3]),
        tax=float(data[4]) / 100.0,
        discount=float(data[5]) / 100.0,
        stock=stock,
        code=data[7] if len(data) > 7 else "",
    )


# ---------- Sales ----------
def _from_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis // 1000) + timedelta(milliseconds=millis % 1000)


# id,epochMillis,customerId,subtotal,tax,discount,total
def encode_sale(s: Sale) -> str:
    customer_id = int(s.customer.id) if s.customer is not None else int(s.customer_id)
    return SEPARATOR.join(
        [
            str(int(s.id)),
            str(int(round(s.created_at.timestamp() * 1000))),
            str(customer_id),
            _money(s.subtotal),
            _money(s.tax),
            _money(s.discount),
            _money(s.total),
        ]
    )


def decode_sale(line: str) -> SaleRecord:
    # Stored aggregates are not trusted; they are recomputed from the lines.
    data = _fields(line, 3, "Sale")
    return SaleRecord(
        id=int(data[0]),
        created_at=_from_millis(int(data[1])),
        customer_id=int(data[2]),
    )


# id,saleId,productId,quantity,unitPrice,baseSubtotal
def encode_sale_line(sale_id: int, ln: SaleLine) -> str:
    if ln.product is None:
        raise PersistenceError(f"Sale {sale_id} has a line without product.")
    return SEPARATOR.join(
        [
            str(int(ln.id)),
            str(int(sale_id)),
            str(int(ln.product.id)),
            str(int(ln.quantity)),
            _money(ln.unit_price),
            _money(ln.base_subtotal),
        ]
    )


def decode_sale_line(line: str) -> SaleLineRecord:
    data = _fields(line, 5, "Sale line")
    qty = int(data[3])
    if qty <= 0:
        raise ValueError(f"Sale line quantity must be >= 1, found {qty}")
    return SaleLineRecord(
        id=int(data[0]),
        sale_id=int(data[1]),
        product_id=int(data[2]),
        quantity=qty,
        unit_price=float(data[4]),
    )
