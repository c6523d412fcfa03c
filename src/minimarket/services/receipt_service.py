from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from minimarket.domain.models import Sale

NO_CUSTOMER = "No customer"


@dataclass(frozen=True)
class ReceiptLine:
    product_name: str
    quantity: int
    unit_price: float
    line_total: float


@dataclass(frozen=True)
class Receipt:
    sale_id: int
    customer_name: str
    issued_at: str
    lines: tuple[ReceiptLine, ...]
    subtotal: float
    tax: float
    discount: float
    total: float


class ReceiptService:
    def __init__(self, receipts_dir: Path | str | None = None):
        self.receipts_dir = Path(receipts_dir) if receipts_dir else None

    def build_receipt(self, sale: Sale) -> Receipt:
        if sale.customer is not None:
            customer_name = f"{sale.customer.name} {sale.customer.surname}".strip()
        else:
            customer_name = NO_CUSTOMER

        lines = tuple(
            ReceiptLine(
                product_name=ln.product.name if ln.product is not None else "",
                quantity=int(ln.quantity),
                unit_price=float(ln.unit_price),
                line_total=float(ln.line_total),
            )
            for ln in sale.lines
        )
        return Receipt(
            sale_id=int(sale.id),
            customer_name=customer_name,
            issued_at=sale.created_at.strftime("%Y-%m-%d %H:%M"),
            lines=lines,
            subtotal=float(sale.subtotal),
            tax=float(sale.tax),
            discount=float(sale.discount),
            total=float(sale.total),
        )

    def receipt_path(self, sale_id: int) -> Path | None:
        if self.receipts_dir is None:
            return None
        return self.receipts_dir / f"Factura_{int(sale_id)}.xlsx"

    def export_receipt_excel(self, receipt: Receipt, path: Path | str) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)

        wb = Workbook()
        ws = wb.active
        ws.title = "Receipt"

        def money(cell):
            cell.number_format = "#,##0.00"

        ws["A1"] = f"Receipt No. {receipt.sale_id}"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A2"] = "Date"
        ws["B2"] = receipt.issued_at
        ws["A3"] = "Customer"
        ws["B3"] = receipt.customer_name

        header_row = 5
        for col, title in enumerate(["Product", "Qty", "Unit Price", "Line Total"], start=1):
            cell = ws.cell(row=header_row, column=col, value=title)
            cell.font = Font(bold=True)

        out_row = header_row + 1
        for ln in receipt.lines:
            for col, value in enumerate([ln.product_name, ln.quantity, ln.unit_price, ln.line_total], start=1):
                ws.cell(row=out_row, column=col, value=value)
            money(ws[f"C{out_row}"])
            money(ws[f"D{out_row}"])
            out_row += 1

        if receipt.lines:
            ref = f"A{header_row}:{get_column_letter(4)}{out_row - 1}"
            tab = Table(displayName=f"Receipt{receipt.sale_id}", ref=ref)
            tab.tableStyleInfo = TableStyleInfo(name="TableStyleMedium9", showRowStripes=True, showColumnStripes=False)
            ws.add_table(tab)

        totals_row = out_row + 1
        for i, (label, value) in enumerate(
            [
                ("Subtotal", receipt.subtotal),
                ("Tax", receipt.tax),
                ("Discount", receipt.discount),
                ("Total", receipt.total),
            ]
        ):
            r = totals_row + i
            ws[f"C{r}"] = label
            ws[f"C{r}"].font = Font(bold=True)
            ws[f"D{r}"] = value
            money(ws[f"D{r}"])

        for col, w in {"A": 34, "B": 8, "C": 14, "D": 14}.items():
            ws.column_dimensions[col].width = w

        wb.save(target)
        return target
