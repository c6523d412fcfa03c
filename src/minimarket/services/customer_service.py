from __future__ import annotations

import logging

from minimarket.domain.errors import ValidationError, NotFoundError
from minimarket.domain.models import Customer

log = logging.getLogger(__name__)


def check_text_fields(**fields: str) -> dict[str, str]:
    """Strips values and rejects characters the flat files cannot hold."""
    cleaned = {}
    for key, value in fields.items():
        text = (value or "").strip()
        if "," in text or "\n" in text or "\r" in text:
            raise ValidationError(f"Field '{key}' cannot contain commas or line breaks.")
        cleaned[key] = text
    return cleaned


class CustomerService:
    def __init__(self, repo):
        self.repo = repo

    def list_customers(self) -> list[Customer]:
        return self.repo.list_all()

    def get_customer(self, customer_id: int) -> Customer:
        c = self.repo.find_by_id(int(customer_id))
        if not c:
            raise NotFoundError("Customer not found.")
        return c

    def add_customer(
        self,
        name: str,
        surname: str = "",
        document: str = "",
        phone: str = "",
        email: str = "",
        address: str = "",
    ) -> Customer:
        f = check_text_fields(
            name=name, surname=surname, document=document, phone=phone, email=email, address=address
        )
        if not f["name"]:
            raise ValidationError("Name is required.")
        customer = self.repo.add(Customer(id=0, **f))
        log.info("customer_added id=%s", customer.id)
        return customer

    def update_customer(self, customer_id: int, **changes: str) -> Customer:
        customer = self.get_customer(customer_id)
        allowed = {"name", "surname", "document", "phone", "email", "address"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationError(f"Unknown customer fields: {', '.join(sorted(unknown))}")
        f = check_text_fields(**changes)
        if "name" in f and not f["name"]:
            raise ValidationError("Name is required.")

        for key, value in f.items():
            setattr(customer, key, value)
        self.repo.update(customer)
        return customer

    def delete_customer(self, customer_id: int) -> None:
        customer = self.get_customer(customer_id)
        self.repo.remove(customer)
        log.info("customer_deleted id=%s", customer.id)
