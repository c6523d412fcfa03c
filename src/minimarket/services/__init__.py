from .customer_service import CustomerService
from .inventory_service import InventoryService
from .sales_service import SalesService
from .receipt_service import ReceiptService, Receipt, ReceiptLine

__all__ = [
    "CustomerService",
    "InventoryService",
    "SalesService",
    "ReceiptService",
    "Receipt",
    "ReceiptLine",
]
