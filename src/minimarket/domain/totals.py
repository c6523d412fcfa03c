from __future__ import annotations

from typing import Iterable

from minimarket.domain.models import Sale, SaleLine


def recompute_totals(sale: Sale) -> Sale:
    # Summed left to right in line order so totals are reproducible.
    subtotal = 0.0
    tax = 0.0
    discount = 0.0
    total = 0.0
    for line in sale.lines:
        subtotal += line.base_subtotal
        tax += line.tax_amount
        discount += line.discount_amount
        total += line.line_total

    sale.subtotal = subtotal
    sale.tax = tax
    sale.discount = discount
    sale.total = total
    return sale


def add_line(sale: Sale, line: SaleLine) -> Sale:
    sale.lines.append(line)
    return recompute_totals(sale)


def remove_line(sale: Sale, line: SaleLine) -> bool:
    for idx, existing in enumerate(sale.lines):
        if existing is line:
            del sale.lines[idx]
            recompute_totals(sale)
            return True
    return False


def set_lines(sale: Sale, lines: Iterable[SaleLine]) -> Sale:
    sale.lines = list(lines)
    return recompute_totals(sale)
