# order_backoffice/database/repositories/catalog_repo.py
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import sqlite3
from typing import Iterable


class DomainError(Exception):
    """Domain-level error the controller/UI can surface (toast/snackbar)."""
    pass


@dataclass(frozen=True)
class ProductVariant:
    id: str
    label: str
    purchase_price: float
    sale_price: float
    is_default: bool = False


@dataclass(frozen=True)
class SupplierOffer:
    supplier_id: str
    price: float
    variant_id: str | None = None


@dataclass(frozen=True)
class Product:
    product_id: str
    name: str
    purchase_price: float
    sale_price: float
    kp_name: str | None = None
    variants: tuple[ProductVariant, ...] = field(default_factory=tuple)
    supplier_offers: tuple[SupplierOffer, ...] = field(default_factory=tuple)

    @property
    def display_name(self) -> str:
        return self.kp_name or self.name


@dataclass(frozen=True)
class Supplier:
    supplier_id: str
    name: str


class CatalogRepo:
    """
    Read side of the product catalog (products with nested variants and
    supplier offers, plus suppliers). Orders only ever hold weak references
    (ids) into this data.

    The write helpers exist for seeding and tests; the order core never calls them.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- TX helper ----------------------------

    @contextmanager
    def _tx(self):
        try:
            yield
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    # ---------------------------- Reads ----------------------------

    def list_products(self) -> list[Product]:
        rows = self.conn.execute(
            "SELECT product_id, name, kp_name, purchase_price, sale_price "
            "FROM products ORDER BY created_at DESC, product_id"
        ).fetchall()
        return [self._hydrate(r) for r in rows]

    def get_product(self, product_id: str) -> Product | None:
        r = self.conn.execute(
            "SELECT product_id, name, kp_name, purchase_price, sale_price "
            "FROM products WHERE product_id=?",
            (product_id,),
        ).fetchone()
        return self._hydrate(r) if r else None

    def list_suppliers(self) -> list[Supplier]:
        rows = self.conn.execute(
            "SELECT supplier_id, name FROM suppliers ORDER BY name COLLATE NOCASE"
        ).fetchall()
        return [Supplier(supplier_id=r["supplier_id"], name=r["name"]) for r in rows]

    def supplier_names(self) -> dict[str, str]:
        return {s.supplier_id: s.name for s in self.list_suppliers()}

    def _hydrate(self, r: sqlite3.Row) -> Product:
        pid = r["product_id"]
        variants = tuple(
            ProductVariant(
                id=v["variant_id"],
                label=v["label"],
                purchase_price=float(v["purchase_price"]),
                sale_price=float(v["sale_price"]),
                is_default=bool(v["is_default"]),
            )
            for v in self.conn.execute(
                "SELECT variant_id, label, purchase_price, sale_price, is_default "
                "FROM product_variants WHERE product_id=? ORDER BY position",
                (pid,),
            ).fetchall()
        )
        offers = tuple(
            SupplierOffer(
                supplier_id=o["supplier_id"],
                price=float(o["price"]),
                variant_id=o["variant_id"],
            )
            for o in self.conn.execute(
                "SELECT supplier_id, price, variant_id FROM supplier_offers "
                "WHERE product_id=? ORDER BY position",
                (pid,),
            ).fetchall()
        )
        return Product(
            product_id=pid,
            name=r["name"],
            kp_name=r["kp_name"],
            purchase_price=float(r["purchase_price"]),
            sale_price=float(r["sale_price"]),
            variants=variants,
            supplier_offers=offers,
        )

    # ---------------------------- Writes (seeding) ----------------------------

    def add_supplier(self, supplier: Supplier) -> None:
        if not supplier.name.strip():
            raise DomainError("Supplier name cannot be empty.")
        with self._tx():
            self.conn.execute(
                "INSERT INTO suppliers(supplier_id, name) VALUES (?, ?)",
                (supplier.supplier_id, supplier.name.strip()),
            )

    def add_product(self, product: Product, created_at: int = 0) -> None:
        if not product.name.strip():
            raise DomainError("Product name cannot be empty.")
        with self._tx():
            self.conn.execute(
                "INSERT INTO products(product_id, name, kp_name, purchase_price, sale_price, created_at) "
                "VALUES (?,?,?,?,?,?)",
                (product.product_id, product.name, product.kp_name,
                 product.purchase_price, product.sale_price, created_at),
            )
            self._insert_variants(product.product_id, product.variants)
            self._insert_offers(product.product_id, product.supplier_offers)

    def _insert_variants(self, product_id: str, variants: Iterable[ProductVariant]) -> None:
        for pos, v in enumerate(variants):
            self.conn.execute(
                "INSERT INTO product_variants(product_id, variant_id, label, purchase_price, "
                "sale_price, is_default, position) VALUES (?,?,?,?,?,?,?)",
                (product_id, v.id, v.label, v.purchase_price, v.sale_price, int(v.is_default), pos),
            )

    def _insert_offers(self, product_id: str, offers: Iterable[SupplierOffer]) -> None:
        for pos, o in enumerate(offers):
            self.conn.execute(
                "INSERT INTO supplier_offers(product_id, supplier_id, variant_id, price, position) "
                "VALUES (?,?,?,?,?)",
                (product_id, o.supplier_id, o.variant_id, o.price, pos),
            )
