from pathlib import Path

import pytest
from openpyxl import load_workbook

from minimarket.application.container import build_container
from minimarket.domain.errors import InsufficientStockError, NotFoundError, ValidationError


def _setup(tmp_path: Path, receipts_dir=None):
    c = build_container(tmp_path / "data", receipts_dir=receipts_dir)
    juan = c.customers.add_customer("Juan", surname="Pérez", document="123")
    arroz = c.inventory.add_product("7701", "Arroz", "Arroz blanco", 2.50, 10, tax=0.19)
    return c, juan, arroz


def test_adding_a_line_prices_it_and_takes_stock(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    sale = c.sales.start_sale(juan.id)

    line = c.sales.add_line(sale.id, arroz.id, 4)

    assert line.base_subtotal == pytest.approx(10.00)
    assert line.tax_amount == pytest.approx(1.90)
    assert line.discount_amount == pytest.approx(0.00)
    assert line.line_total == pytest.approx(11.90)
    assert c.inventory.get_product(arroz.id).stock == 6
    assert c.sales.get_sale(sale.id).total == pytest.approx(11.90)

    on_disk = build_container(tmp_path / "data").inventory.get_product(arroz.id)
    assert on_disk.stock == 6


def test_oversell_is_rejected_without_side_effects(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    sale = c.sales.start_sale(juan.id)
    c.sales.add_line(sale.id, arroz.id, 7)

    with pytest.raises(InsufficientStockError) as exc:
        c.sales.add_line(sale.id, arroz.id, 4)
    assert (exc.value.available, exc.value.requested) == (3, 4)

    assert c.inventory.get_product(arroz.id).stock == 3
    assert len(c.sales.get_sale(sale.id).lines) == 1


@pytest.mark.parametrize("qty", [0, -2])
def test_non_positive_quantity_is_rejected(tmp_path: Path, qty):
    c, juan, arroz = _setup(tmp_path)
    sale = c.sales.start_sale(juan.id)

    with pytest.raises(ValidationError, match="Qty must be >= 1"):
        c.sales.add_line(sale.id, arroz.id, qty)

    assert c.inventory.get_product(arroz.id).stock == 10
    assert c.sales.get_sale(sale.id).lines == []


def test_removing_a_line_restores_exactly_its_quantity(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    leche = c.inventory.add_product("7702", "Leche", "Entera 1L", 1.80, 50)
    sale = c.sales.start_sale(juan.id)
    first = c.sales.add_line(sale.id, arroz.id, 3)
    c.sales.add_line(sale.id, leche.id, 2)

    c.sales.remove_line(sale.id, first.id)

    current = c.sales.get_sale(sale.id)
    assert c.inventory.get_product(arroz.id).stock == 10
    assert c.inventory.get_product(leche.id).stock == 48
    assert [ln.product.name for ln in current.lines] == ["Leche"]
    assert current.total == pytest.approx(sum(ln.line_total for ln in current.lines))


def test_change_quantity_moves_stock_by_the_difference(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    sale = c.sales.start_sale(juan.id)
    line = c.sales.add_line(sale.id, arroz.id, 2)

    c.sales.change_quantity(sale.id, line.id, 5)
    assert c.inventory.get_product(arroz.id).stock == 5
    assert c.sales.get_sale(sale.id).subtotal == pytest.approx(12.50)

    c.sales.change_quantity(sale.id, line.id, 1)
    assert c.inventory.get_product(arroz.id).stock == 9

    with pytest.raises(InsufficientStockError):
        c.sales.change_quantity(sale.id, line.id, 11)
    assert c.sales.get_sale(sale.id).lines[0].quantity == 1


def test_two_line_sale_totals(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    bolsa = c.inventory.add_product("B1", "Bolsa", "Reutilizable", 5.00, 10, tax=0.0)
    sale = c.sales.start_sale(juan.id)

    c.sales.add_line(sale.id, arroz.id, 4)
    c.sales.add_line(sale.id, bolsa.id, 1)

    s = c.sales.get_sale(sale.id)
    assert s.total == pytest.approx(16.90)
    assert s.subtotal == pytest.approx(15.00)
    assert c.sales.sale_total(sale.id) == pytest.approx(16.90)


def test_deleted_customer_reloads_as_absent(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    sale = c.sales.start_sale(juan.id)
    c.sales.add_line(sale.id, arroz.id, 2)

    c.customers.delete_customer(juan.id)
    reopened = build_container(tmp_path / "data")
    loaded = reopened.sales.get_sale(sale.id)

    assert loaded.customer is None
    assert len(loaded.lines) == 1
    assert loaded.total == pytest.approx(5.95)


def test_snapshot_price_survives_reprice_and_reload(tmp_path: Path):
    c, juan, _ = _setup(tmp_path)
    cafe = c.inventory.add_product("C1", "Cafe", "Molido", 2.00, 10)
    sale = c.sales.start_sale(juan.id)
    c.sales.add_line(sale.id, cafe.id, 1)

    c.inventory.update_product(cafe.id, price=3.00)
    loaded = build_container(tmp_path / "data").sales.get_sale(sale.id)

    assert loaded.lines[0].unit_price == pytest.approx(2.38)
    assert loaded.lines[0].base_subtotal == pytest.approx(3.00)


def test_start_sale_without_customer_and_unknown_customer(tmp_path: Path):
    c, _, _ = _setup(tmp_path)

    walk_in = c.sales.start_sale()
    assert walk_in.customer is None

    with pytest.raises(NotFoundError):
        c.sales.start_sale(999)


def test_finalize_writes_receipt_workbook(tmp_path: Path):
    receipts = tmp_path / "facturas"
    c, juan, arroz = _setup(tmp_path, receipts_dir=receipts)
    sale = c.sales.start_sale(juan.id)
    c.sales.add_line(sale.id, arroz.id, 4)

    receipt = c.sales.finalize_sale(sale.id)

    assert receipt.sale_id == sale.id
    assert receipt.customer_name == "Juan Pérez"
    assert [(ln.product_name, ln.quantity) for ln in receipt.lines] == [("Arroz", 4)]
    assert receipt.total == pytest.approx(11.90)

    wb = load_workbook(receipts / f"Factura_{sale.id}.xlsx")
    ws = wb.active
    assert ws["A1"].value == f"Receipt No. {sale.id}"
    assert ws["A6"].value == "Arroz"
    assert ws["C11"].value == "Total"
    assert ws["D11"].value == pytest.approx(11.90)


def test_finalize_rejects_empty_sale(tmp_path: Path):
    c, juan, _ = _setup(tmp_path)
    sale = c.sales.start_sale(juan.id)

    with pytest.raises(ValidationError):
        c.sales.finalize_sale(sale.id)


def test_delete_sale_drops_header_and_lines(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    keep = c.sales.start_sale(juan.id)
    c.sales.add_line(keep.id, arroz.id, 1)
    drop = c.sales.start_sale(juan.id)
    c.sales.add_line(drop.id, arroz.id, 2)

    c.sales.delete_sale(drop.id)

    reopened = build_container(tmp_path / "data")
    assert [s.id for s in reopened.sales.list_sales()] == [keep.id]
    assert len(c.sales_repo.lines_path.read_text(encoding="utf-8").splitlines()) == 1
    assert c.inventory.get_product(arroz.id).stock == 7


def test_line_ids_are_unique_across_sales(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    a = c.sales.start_sale(juan.id)
    b = c.sales.start_sale(juan.id)

    ids = [
        c.sales.add_line(a.id, arroz.id, 1).id,
        c.sales.add_line(b.id, arroz.id, 1).id,
        c.sales.add_line(a.id, arroz.id, 1).id,
    ]

    assert ids == [1, 2, 3]


def test_sales_listeners_are_notified_per_mutation(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    events = []
    c.sales_repo.subscribe(events.append)
    c.products_repo.subscribe(events.append)

    sale = c.sales.start_sale(juan.id)
    c.sales.add_line(sale.id, arroz.id, 1)

    assert [(e.kind, e.action) for e in events] == [
        ("sale", "added"),
        ("product", "updated"),
        ("sale", "updated"),
    ]


def test_reprice_keeps_open_sale_total_in_step_with_disk(tmp_path: Path):
    c, juan, _ = _setup(tmp_path)
    te = c.inventory.add_product("T1", "Te", "Verde", 2.00, 10, tax=0.0)
    sale = c.sales.start_sale(juan.id)
    c.sales.add_line(sale.id, te.id, 2)

    c.inventory.update_product(te.id, price=3.00)

    in_memory = c.sales.get_sale(sale.id)
    reloaded = build_container(tmp_path / "data").sales.get_sale(sale.id)
    assert in_memory.total == pytest.approx(6.00)
    assert reloaded.total == pytest.approx(in_memory.total)
    assert in_memory.lines[0].unit_price == pytest.approx(2.00)


def test_stock_only_product_update_does_not_rewrite_sales(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    sale = c.sales.start_sale(juan.id)
    c.sales.add_line(sale.id, arroz.id, 1)
    events = []
    c.sales_repo.subscribe(events.append)

    c.inventory.adjust_stock(arroz.id, 5)

    assert events == []


def test_deleted_customer_reference_survives_later_sales_writes(tmp_path: Path):
    c, juan, arroz = _setup(tmp_path)
    sale = c.sales.start_sale(juan.id)
    c.sales.add_line(sale.id, arroz.id, 1)
    c.customers.delete_customer(juan.id)

    reopened = build_container(tmp_path / "data")
    reopened.sales.start_sale()

    header = reopened.sales_repo.path.read_text(encoding="utf-8").splitlines()
    assert header[0].split(",")[2] == str(juan.id)
    loaded = reopened.sales.get_sale(sale.id)
    assert loaded.customer is None
    assert loaded.customer_id == juan.id


def test_deleting_a_customer_detaches_it_from_loaded_sales(tmp_path: Path):
    c, juan, _ = _setup(tmp_path)
    sale = c.sales.start_sale(juan.id)

    c.customers.delete_customer(juan.id)

    assert c.sales.get_sale(sale.id).customer is None
    assert c.receipts.build_receipt(c.sales.get_sale(sale.id)).customer_name == "No customer"
