from __future__ import annotations

from minimarket.domain.errors import ValidationError, NotFoundError
from minimarket.domain.models import DEFAULT_TAX, Product
from minimarket.services.customer_service import check_text_fields


def _check_rates(tax: float, discount: float) -> None:
    if not 0.0 <= tax <= 1.0:
        raise ValidationError("Tax must be between 0 and 1.")
    if not 0.0 <= discount <= 1.0:
        raise ValidationError("Discount must be between 0 and 1.")


class InventoryService:
    def __init__(self, repo):
        self.repo = repo

    def list_products(self) -> list[Product]:
        return self.repo.list_all()

    def low_stock(self, threshold: int = 10) -> list[Product]:
        return sorted(
            (p for p in self.repo.list_all() if p.stock <= threshold),
            key=lambda p: (p.stock, p.name),
        )

    def get_product(self, product_id: int) -> Product:
        p = self.repo.find_by_id(int(product_id))
        if not p:
            raise NotFoundError("Product not found.")
        return p

    def add_product(
        self,
        code: str,
        name: str,
        description: str,
        price: float,
        stock: int,
        tax: float = DEFAULT_TAX,
        discount: float = 0.0,
    ) -> Product:
        f = check_text_fields(code=code, name=name, description=description)
        if not f["name"]:
            raise ValidationError("Name is required.")
        if price <= 0:
            raise ValidationError("Price must be > 0.")
        if stock < 0:
            raise ValidationError("Stock must be >= 0.")
        _check_rates(float(tax), float(discount))

        return self.repo.add(
            Product(
                id=0,
                code=f["code"],
                name=f["name"],
                description=f["description"],
                price=float(price),
                tax=float(tax),
                discount=float(discount),
                stock=int(stock),
            )
        )

    def update_product(
        self,
        product_id: int,
        price: float | None = None,
        tax: float | None = None,
        discount: float | None = None,
        name: str | None = None,
        description: str | None = None,
        code: str | None = None,
    ) -> Product:
        """
        Reprices or renames a product. Lines already in a sale keep their
        snapshot unit price, while their amounts and the sale totals are
        re-derived from the new price and written back.
        """
        product = self.get_product(product_id)

        new_price = float(price) if price is not None else product.price
        new_tax = float(tax) if tax is not None else product.tax
        new_discount = float(discount) if discount is not None else product.discount
        if new_price <= 0:
            raise ValidationError("Price must be > 0.")
        _check_rates(new_tax, new_discount)

        texts = {k: v for k, v in (("name", name), ("description", description), ("code", code)) if v is not None}
        f = check_text_fields(**texts)
        if "name" in f and not f["name"]:
            raise ValidationError("Name is required.")

        product.price = new_price
        product.tax = new_tax
        product.discount = new_discount
        for key, value in f.items():
            setattr(product, key, value)
        self.repo.update(product)
        return product

    def adjust_stock(self, product_id: int, delta: int) -> Product:
        product = self.get_product(product_id)
        new_stock = int(product.stock) + int(delta)
        if new_stock < 0:
            raise ValidationError(f"Not enough stock. Available: {product.stock}")
        product.stock = new_stock
        self.repo.update(product)
        return product

    def delete_product(self, product_id: int) -> None:
        product = self.get_product(product_id)
        self.repo.remove(product)
