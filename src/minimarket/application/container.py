from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from minimarket.repositories import codecs
from minimarket.repositories.flatfile_repo import CustomerRepository, ProductRepository, SaleRepository
from minimarket.repositories.notifications import ChangeNotifier
from minimarket.repositories.seed import seed_default_data
from minimarket.services.customer_service import CustomerService
from minimarket.services.inventory_service import InventoryService
from minimarket.services.receipt_service import ReceiptService
from minimarket.services.sales_service import SalesService


@dataclass(frozen=True)
class AppContainer:
    customers_repo: CustomerRepository
    products_repo: ProductRepository
    sales_repo: SaleRepository
    customers: CustomerService
    inventory: InventoryService
    sales: SalesService
    receipts: ReceiptService


def build_container(
    data_dir: Path | str,
    receipts_dir: Path | str | None = None,
    seed: bool = False,
    strict_listeners: bool = False,
) -> AppContainer:
    data = Path(data_dir)
    data.mkdir(parents=True, exist_ok=True)

    customers_repo = CustomerRepository(data / codecs.CUSTOMERS_FILE, notifier=ChangeNotifier(strict_listeners))
    products_repo = ProductRepository(data / codecs.PRODUCTS_FILE, notifier=ChangeNotifier(strict_listeners))
    if seed:
        seed_default_data(customers_repo, products_repo)

    sales_repo = SaleRepository(
        data / codecs.SALES_FILE,
        data / codecs.SALE_LINES_FILE,
        customers=customers_repo,
        products=products_repo,
        notifier=ChangeNotifier(strict_listeners),
    )

    receipts = ReceiptService(receipts_dir)
    return AppContainer(
        customers_repo=customers_repo,
        products_repo=products_repo,
        sales_repo=sales_repo,
        customers=CustomerService(customers_repo),
        inventory=InventoryService(products_repo),
        sales=SalesService(sales_repo, products_repo, customers_repo, receipts),
        receipts=receipts,
    )
