from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Generic, Iterable, Optional, TypeVar

from minimarket.domain import pricing, totals
from minimarket.domain.errors import ValidationError
from minimarket.domain.models import Customer, Product, Sale, SaleLine
from minimarket.repositories import codecs
from minimarket.repositories.identity import next_id
from minimarket.repositories.notifications import ChangeEvent, ChangeNotifier, Listener
from minimarket.repositories.unit_of_work import FileWriteBatch, UnitOfWork

log = logging.getLogger("minimarket.store")

T = TypeVar("T", Customer, Product, Sale)

Dependent = Callable[[ChangeEvent], None]


class FlatFileRepository(Generic[T]):
    """In-memory collection of one entity kind backed by a flat file.

    Every mutating call rewrites the whole file, then notifies listeners.
    The collection is read from disk lazily on first use.

    The highest id ever handed out is kept in a ``<file>.seq`` sidecar that
    is rewritten with the data file, so deleted ids stay retired across
    restarts.
    """

    kind = "entity"

    def __init__(
        self,
        path: Path | str,
        notifier: ChangeNotifier | None = None,
        uow_factory: Callable[[], UnitOfWork] | None = None,
    ):
        self.path = Path(path)
        self.seq_path = self.path.with_name(self.path.name + ".seq")
        self.notifier = notifier or ChangeNotifier()
        self.uow_factory = uow_factory or FileWriteBatch
        self._items: Optional[list[T]] = None
        self._last_id = 0
        self._dependents: list[Dependent] = []

    # ---------- codec hooks ----------
    def _encode(self, item: T) -> str:
        raise NotImplementedError

    def _decode(self, line: str) -> T:
        raise NotImplementedError

    def _context(self, path: Path | None = None, **fields) -> dict:
        return {"kind": self.kind, "file": (path or self.path).name, **fields}

    # ---------- persistence ----------
    def load_all(self) -> list[T]:
        """Reads the file; malformed records are skipped and logged."""
        items: list[T] = []
        seen: set[int] = set()
        for lineno, line in enumerate(codecs.read_lines(self.path), start=1):
            try:
                item = self._decode(line)
            except (ValueError, IndexError) as e:
                log.warning("record_skipped line=%s error=%s", lineno, e, extra=self._context())
                continue
            if item.id in seen:
                log.warning("record_skipped line=%s error=duplicate id %s", lineno, item.id, extra=self._context())
                continue
            seen.add(item.id)
            items.append(item)
        return items

    def save_all(self, items: Iterable[T]) -> None:
        items = list(items)
        if self._items is None:
            # stored marks must not be written back lower
            self._apply_marks(self._read_marks())
        self._bump_last_id(items)
        self._write(items)
        self._items = items

    def _write(self, items: list[T]) -> None:
        with self.uow_factory() as uow:
            uow.stage(self.path, (self._encode(it) for it in items))
            uow.stage(self.seq_path, self._encode_marks())

    def reload(self) -> list[T]:
        self._items = self.load_all()
        self._bump_last_id(self._items)
        self._apply_marks(self._read_marks())
        return list(self._items)

    def _collection(self) -> list[T]:
        if self._items is None:
            self.reload()
        return self._items  # type: ignore[return-value]

    # ---------- id marks ----------
    def _marks(self) -> dict[str, int]:
        return {"id": self._last_id}

    def _apply_marks(self, marks: dict[str, int]) -> None:
        self._last_id = max(self._last_id, marks.get("id", 0))

    def _encode_marks(self) -> list[str]:
        return [f"{key}={value}" for key, value in self._marks().items()]

    def _read_marks(self) -> dict[str, int]:
        marks: dict[str, int] = {}
        for line in codecs.read_lines(self.seq_path):
            key, sep, value = line.partition("=")
            try:
                if not sep:
                    raise ValueError(f"expected key=value, found {line!r}")
                marks[key.strip()] = int(value)
            except ValueError as e:
                log.warning("id_mark_skipped error=%s", e, extra=self._context(self.seq_path))
        return marks

    def _bump_last_id(self, items: Iterable[T]) -> None:
        for it in items:
            if int(it.id) > self._last_id:
                self._last_id = int(it.id)

    def allocate_id(self) -> int:
        # Ids freed by a delete are never handed out again.
        new_id = max(next_id(self._collection()), self._last_id + 1)
        self._last_id = new_id
        return new_id

    # ---------- listeners ----------
    def subscribe(self, listener: Listener) -> None:
        self.notifier.subscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self.notifier.unsubscribe(listener)

    def link(self, dependent: Dependent) -> None:
        """Registers a store that derives data from this one.

        Dependents run on every change before listeners are notified, and
        their errors propagate to the caller.
        """
        if dependent not in self._dependents:
            self._dependents.append(dependent)

    def _changed(self, action: str, entity_id: Optional[int]) -> None:
        log.info("store_changed action=%s id=%s", action, entity_id, extra=self._context(entity_id=entity_id))
        event = ChangeEvent(kind=self.kind, action=action, entity_id=entity_id)
        for dependent in list(self._dependents):
            dependent(event)
        self.notifier.notify(event)

    # ---------- collection ----------
    def list_all(self) -> list[T]:
        return list(self._collection())

    def find_by_id(self, entity_id: int) -> Optional[T]:
        for it in self._collection():
            if it.id == int(entity_id):
                return it
        return None

    def _index_of(self, entity_id: int) -> int:
        for idx, it in enumerate(self._collection()):
            if it.id == int(entity_id):
                return idx
        return -1

    def _before_write(self, entity: T) -> None:
        return None

    def add(self, entity: T) -> T:
        items = self._collection()
        if entity.id == 0:
            entity.id = self.allocate_id()
        elif self._index_of(entity.id) != -1:
            raise ValidationError(f"{self.kind.capitalize()} id {entity.id} already exists.")
        else:
            self._bump_last_id([entity])

        self._before_write(entity)
        items.append(entity)
        self._write(items)
        self._changed("added", entity.id)
        return entity

    def update(self, entity: T) -> bool:
        items = self._collection()
        idx = self._index_of(entity.id)
        if idx == -1:
            return False
        self._before_write(entity)
        items[idx] = entity
        self._write(items)
        self._changed("updated", entity.id)
        return True

    def remove(self, entity: T) -> bool:
        items = self._collection()
        idx = self._index_of(entity.id)
        if idx == -1:
            return False
        del items[idx]
        self._write(items)
        self._changed("removed", entity.id)
        return True


class CustomerRepository(FlatFileRepository[Customer]):
    kind = "customer"

    def _encode(self, item: Customer) -> str:
        return codecs.encode_customer(item)

    def _decode(self, line: str) -> Customer:
        return codecs.decode_customer(line)


class ProductRepository(FlatFileRepository[Product]):
    kind = "product"

    def _encode(self, item: Product) -> str:
        return codecs.encode_product(item)

    def _decode(self, line: str) -> Product:
        return codecs.decode_product(line)


def _amounts(line: SaleLine) -> tuple[float, float, float, float]:
    return (line.base_subtotal, line.tax_amount, line.discount_amount, line.line_total)


class SaleRepository(FlatFileRepository[Sale]):
    """Sales are stored as two files: headers and lines, both keyed by sale id.

    Customer and product references are resolved at load time against what
    is on disk for those kinds. Once loaded, the sales follow the live
    customer and product collections: a repriced product re-derives the
    amounts of every line that sells it and the affected sales are
    rewritten.
    """

    kind = "sale"

    def __init__(
        self,
        path: Path | str,
        lines_path: Path | str,
        customers: CustomerRepository,
        products: ProductRepository,
        notifier: ChangeNotifier | None = None,
        uow_factory: Callable[[], UnitOfWork] | None = None,
    ):
        super().__init__(path, notifier=notifier, uow_factory=uow_factory)
        self.lines_path = Path(lines_path)
        self.customers = customers
        self.products = products
        self._last_line_id = 0
        customers.link(self._customer_changed)
        products.link(self._product_changed)

    def _encode(self, item: Sale) -> str:
        return codecs.encode_sale(item)

    def load_all(self) -> list[Sale]:
        customers = {c.id: c for c in self.customers.load_all()}
        products = {p.id: p for p in self.products.load_all()}

        sales: dict[int, Sale] = {}
        for lineno, line in enumerate(codecs.read_lines(self.path), start=1):
            try:
                rec = codecs.decode_sale(line)
            except (ValueError, IndexError, OverflowError, OSError) as e:
                log.warning("record_skipped line=%s error=%s", lineno, e, extra=self._context())
                continue
            if rec.id in sales:
                log.warning("record_skipped line=%s error=duplicate id %s", lineno, rec.id, extra=self._context())
                continue

            customer = None
            if rec.customer_id:
                customer = customers.get(rec.customer_id)
                if customer is None:
                    log.warning(
                        "dangling_customer customer_id=%s",
                        rec.customer_id,
                        extra=self._context(sale_id=rec.id),
                    )
            sales[rec.id] = Sale(id=rec.id, customer=customer, customer_id=rec.customer_id, created_at=rec.created_at)

        for lineno, line in enumerate(codecs.read_lines(self.lines_path), start=1):
            try:
                rec = codecs.decode_sale_line(line)
            except (ValueError, IndexError) as e:
                log.warning("record_skipped line=%s error=%s", lineno, e, extra=self._context(self.lines_path))
                continue

            sale = sales.get(rec.sale_id)
            if sale is None:
                log.warning(
                    "orphan_sale_line line_id=%s",
                    rec.id,
                    extra=self._context(self.lines_path, sale_id=rec.sale_id),
                )
                continue
            product = products.get(rec.product_id)
            if product is None:
                log.warning(
                    "dangling_product line_id=%s product_id=%s",
                    rec.id,
                    rec.product_id,
                    extra=self._context(self.lines_path, sale_id=rec.sale_id),
                )
                continue

            ln = SaleLine(id=rec.id, product=product, quantity=rec.quantity, unit_price=rec.unit_price)
            sale.lines.append(pricing.recompute_line(ln))

        result = list(sales.values())
        for sale in result:
            totals.recompute_totals(sale)
        return result

    def reload(self) -> list[Sale]:
        items = super().reload()
        self._rebind(self._items or [])
        return items

    def _rebind(self, sales: list[Sale]) -> None:
        # Point loaded sales at the live customer and product objects.
        for sale in sales:
            if sale.customer is not None:
                sale.customer = self.customers.find_by_id(sale.customer.id) or sale.customer
            for ln in sale.lines:
                if ln.product is not None:
                    ln.product = self.products.find_by_id(ln.product.id) or ln.product

    # ---------- id marks ----------
    def _marks(self) -> dict[str, int]:
        return {"id": self._last_id, "line_id": self._last_line_id}

    def _apply_marks(self, marks: dict[str, int]) -> None:
        super()._apply_marks(marks)
        self._last_line_id = max(self._last_line_id, marks.get("line_id", 0))

    def _bump_last_id(self, items: Iterable[Sale]) -> None:
        super()._bump_last_id(items)
        for sale in items:
            for ln in sale.lines:
                if int(ln.id) > self._last_line_id:
                    self._last_line_id = int(ln.id)

    def next_line_id(self) -> int:
        all_lines = [ln for sale in self._collection() for ln in sale.lines]
        new_id = max(next_id(all_lines), self._last_line_id + 1)
        self._last_line_id = new_id
        return new_id

    # ---------- linked stores ----------
    def _customer_changed(self, event: ChangeEvent) -> None:
        if self._items is None or event.entity_id is None:
            return
        live = self.customers.find_by_id(event.entity_id) if event.action != "removed" else None
        for sale in self._items:
            if sale.customer_id == event.entity_id:
                # Only the id is stored, so nothing needs rewriting.
                sale.customer = live

    def _product_changed(self, event: ChangeEvent) -> None:
        if self._items is None or event.action != "updated" or event.entity_id is None:
            return
        product = self.products.find_by_id(event.entity_id)
        if product is None:
            return

        repriced: list[Sale] = []
        for sale in self._items:
            touched = False
            for ln in sale.lines:
                if ln.product is None or ln.product.id != product.id:
                    continue
                before = _amounts(ln)
                ln.product = product
                pricing.recompute_line(ln)
                touched = touched or _amounts(ln) != before
            if touched:
                totals.recompute_totals(sale)
                repriced.append(sale)

        if not repriced:
            return
        self._write(self._items)
        log.info(
            "sales_repriced product_id=%s sales=%s",
            product.id,
            len(repriced),
            extra=self._context(entity_id=product.id),
        )
        for sale in repriced:
            self._changed("updated", sale.id)

    # ---------- writes ----------
    def _before_write(self, entity: Sale) -> None:
        totals.recompute_totals(entity)

    def _write(self, items: list[Sale]) -> None:
        self._bump_last_id(items)
        for sale in items:
            for ln in sale.lines:
                if ln.id == 0:
                    self._last_line_id += 1
                    ln.id = self._last_line_id
                if ln.product is not None:
                    pricing.recompute_line(ln)
            totals.recompute_totals(sale)
        with self.uow_factory() as uow:
            uow.stage(self.path, (codecs.encode_sale(s) for s in items))
            uow.stage(
                self.lines_path,
                (codecs.encode_sale_line(s.id, ln) for s in items for ln in s.lines),
            )
            uow.stage(self.seq_path, self._encode_marks())
