from __future__ import annotations

import logging

from minimarket.domain.models import Customer, Product
from minimarket.repositories.flatfile_repo import CustomerRepository, ProductRepository

log = logging.getLogger("minimarket.store")


DEFAULT_CUSTOMERS = [
    Customer(id=1, name="Juan Pérez", email="juan@email.com", phone="123456789", address="Calle Principal 123"),
    Customer(id=2, name="María García", email="maria@email.com", phone="987654321", address="Avenida Central 456"),
    Customer(id=3, name="Carlos López", email="carlos@email.com", phone="456789123", address="Plaza Mayor 789"),
]

DEFAULT_PRODUCTS = [
    Product(id=1, name="Arroz", description="Arroz blanco premium", price=2.50, tax=0.19, discount=0.0, stock=100),
    Product(id=2, name="Leche", description="Leche entera 1L", price=1.80, tax=0.19, discount=0.0, stock=50),
    Product(id=3, name="Pan", description="Pan blanco fresco", price=1.20, tax=0.19, discount=0.0, stock=30),
]


def seed_default_data(customers: CustomerRepository, products: ProductRepository) -> bool:
    """Writes the starter catalog when either data file is missing.

    Returns True when data was written.
    """
    if customers.path.exists() and products.path.exists():
        return False

    customers.save_all(
        Customer(
            id=c.id, name=c.name, surname=c.surname, document=c.document,
            phone=c.phone, email=c.email, address=c.address,
        )
        for c in DEFAULT_CUSTOMERS
    )
    products.save_all(
        Product(
            id=p.id, code=p.code, name=p.name, description=p.description,
            price=p.price, tax=p.tax, discount=p.discount, stock=p.stock,
        )
        for p in DEFAULT_PRODUCTS
    )
    log.info("default_data_seeded customers=%s products=%s", len(DEFAULT_CUSTOMERS), len(DEFAULT_PRODUCTS))
    return True
