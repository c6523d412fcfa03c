from __future__ import annotations

import logging
from typing import Optional

from minimarket.domain import pricing, totals
from minimarket.domain.errors import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from minimarket.domain.models import Product, Sale, SaleLine
from minimarket.services.receipt_service import Receipt, ReceiptService

log = logging.getLogger("minimarket.sales")


class SalesService:
    """Open-sale workflow: start, add/remove lines, finalize.

    Stock moves with the lines: adding a line takes its quantity out of the
    product, removing it puts the same quantity back. Both stores are
    rewritten on every step.
    """

    def __init__(self, sales_repo, products_repo, customers_repo, receipts: ReceiptService | None = None):
        self.sales = sales_repo
        self.products = products_repo
        self.customers = customers_repo
        self.receipts = receipts or ReceiptService()

    def list_sales(self) -> list[Sale]:
        return self.sales.list_all()

    def get_sale(self, sale_id: int) -> Sale:
        s = self.sales.find_by_id(int(sale_id))
        if not s:
            raise NotFoundError("Sale not found.")
        return s

    def _get_product(self, product_id: int) -> Product:
        p = self.products.find_by_id(int(product_id))
        if not p:
            raise NotFoundError("Product not found.")
        return p

    def _get_line(self, sale: Sale, line_id: int) -> SaleLine:
        ln = sale.find_line(int(line_id))
        if not ln:
            raise NotFoundError("Sale line not found.")
        return ln

    @staticmethod
    def _check_quantity(quantity: int) -> int:
        qty = int(quantity)
        if qty <= 0:
            raise ValidationError("Qty must be >= 1.")
        return qty

    def start_sale(self, customer_id: Optional[int] = None) -> Sale:
        customer = None
        if customer_id:
            customer = self.customers.find_by_id(int(customer_id))
            if not customer:
                raise NotFoundError("Customer not found.")

        sale = self.sales.add(Sale(id=0, customer=customer, customer_id=customer.id if customer else 0))
        log.info("sale_started customer_id=%s", customer_id, extra={"sale_id": sale.id})
        return sale

    def add_line(self, sale_id: int, product_id: int, quantity: int) -> SaleLine:
        sale = self.get_sale(sale_id)
        qty = self._check_quantity(quantity)
        product = self._get_product(product_id)
        if qty > int(product.stock):
            raise InsufficientStockError(product.name, product.stock, qty)

        line = pricing.new_line(product, qty, line_id=self.sales.next_line_id())

        product.stock = int(product.stock) - qty
        self.products.update(product)

        totals.add_line(sale, line)
        self.sales.update(sale)
        log.info(
            "sale_line_added line_id=%s product_id=%s qty=%s total=%.2f",
            line.id, product.id, qty, sale.total,
            extra={"sale_id": sale.id},
        )
        return line

    def remove_line(self, sale_id: int, line_id: int) -> None:
        sale = self.get_sale(sale_id)
        line = self._get_line(sale, line_id)

        totals.remove_line(sale, line)

        product = self.products.find_by_id(line.product.id) if line.product is not None else None
        if product is not None:
            product.stock = int(product.stock) + int(line.quantity)
            self.products.update(product)
        else:
            log.warning("restock_skipped line_id=%s reason=product_missing", line.id, extra={"sale_id": sale.id})

        self.sales.update(sale)
        log.info(
            "sale_line_removed line_id=%s qty=%s total=%.2f", line.id, line.quantity, sale.total, extra={"sale_id": sale.id}
        )

    def change_quantity(self, sale_id: int, line_id: int, quantity: int) -> SaleLine:
        sale = self.get_sale(sale_id)
        line = self._get_line(sale, line_id)
        qty = self._check_quantity(quantity)
        if line.product is None:
            raise ValidationError("Sale line has no product.")
        product = self._get_product(line.product.id)

        delta = qty - int(line.quantity)
        if delta > int(product.stock):
            raise InsufficientStockError(product.name, product.stock, delta)

        if delta:
            product.stock = int(product.stock) - delta
            self.products.update(product)

        pricing.set_quantity(line, qty)
        totals.recompute_totals(sale)
        self.sales.update(sale)
        return line

    def finalize_sale(self, sale_id: int) -> Receipt:
        sale = self.get_sale(sale_id)
        if not sale.lines:
            raise ValidationError("Sale has no lines.")

        totals.recompute_totals(sale)
        self.sales.update(sale)

        receipt = self.receipts.build_receipt(sale)
        path = self.receipts.receipt_path(sale.id)
        if path is not None:
            self.receipts.export_receipt_excel(receipt, path)
        log.info("sale_finalized lines=%s total=%.2f receipt=%s", len(sale.lines), sale.total, path, extra={"sale_id": sale.id})
        return receipt

    def delete_sale(self, sale_id: int) -> None:
        # Stock is not returned; deleting a sale only drops its records.
        sale = self.get_sale(sale_id)
        self.sales.remove(sale)
        log.info("sale_deleted", extra={"sale_id": sale.id})

    def sale_total(self, sale_id: int) -> float:
        sale = self.get_sale(sale_id)
        return sum((ln.line_total for ln in sale.lines), 0.0)
