from __future__ import annotations

import logging

from minimarket.application.container import build_container
from minimarket.config import get_app_paths
from minimarket.logging_config import setup_logging

log = logging.getLogger(__name__)


def main() -> None:
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    container = build_container(paths.data_dir, receipts_dir=paths.receipts_dir, seed=True)

    customers = container.customers.list_customers()
    products = container.inventory.list_products()
    sales = container.sales.list_sales()
    log.info(
        "store_opened data_dir=%s customers=%s products=%s sales=%s",
        paths.data_dir, len(customers), len(products), len(sales),
    )
    print(f"Data directory: {paths.data_dir}")
    print(f"Customers: {len(customers)}  Products: {len(products)}  Sales: {len(sales)}")
    low = container.inventory.low_stock()
    for p in low:
        print(f"Low stock: {p.name} ({p.stock})")


if __name__ == "__main__":
    main()
