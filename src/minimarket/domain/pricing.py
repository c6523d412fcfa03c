from __future__ import annotations

from minimarket.domain.errors import ValidationError
from minimarket.domain.models import Product, SaleLine


def final_price(product: Product) -> float:
    price = float(product.price)
    return price + price * float(product.tax) - price * float(product.discount)


def recompute_line(line: SaleLine) -> SaleLine:
    """
    Materializes the derived amounts of a line from its current product:

      base_subtotal   = price * quantity
      tax_amount      = base_subtotal * tax
      discount_amount = base_subtotal * discount
      line_total      = base_subtotal + tax_amount - discount_amount
    """
    product = line.product
    if product is None:
        raise ValidationError("Sale line has no product.")

    base = float(product.price) * int(line.quantity)
    line.base_subtotal = base
    line.tax_amount = base * float(product.tax)
    line.discount_amount = base * float(product.discount)
    line.line_total = line.base_subtotal + line.tax_amount - line.discount_amount
    return line


def set_product(line: SaleLine, product: Product) -> SaleLine:
    if product is None:
        raise ValidationError("Sale line has no product.")
    line.product = product
    line.unit_price = final_price(product)
    return recompute_line(line)


def set_quantity(line: SaleLine, quantity: int) -> SaleLine:
    line.quantity = int(quantity)
    return recompute_line(line)


def new_line(product: Product, quantity: int, line_id: int = 0) -> SaleLine:
    line = SaleLine(id=int(line_id), quantity=int(quantity))
    return set_product(line, product)
