from pathlib import Path
import logging
import sqlite3

_log = logging.getLogger(__name__)

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CATALOG (read side) ======================== */

CREATE TABLE IF NOT EXISTS suppliers (
    supplier_id TEXT PRIMARY KEY,
    name        TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS products (
    product_id     TEXT PRIMARY KEY,
    name           TEXT NOT NULL,
    kp_name        TEXT,
    purchase_price REAL NOT NULL DEFAULT 0 CHECK (purchase_price >= 0),
    sale_price     REAL NOT NULL DEFAULT 0 CHECK (sale_price >= 0),
    created_at     INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS product_variants (
    product_id     TEXT NOT NULL,
    variant_id     TEXT NOT NULL,
    label          TEXT NOT NULL,
    purchase_price REAL NOT NULL DEFAULT 0 CHECK (purchase_price >= 0),
    sale_price     REAL NOT NULL DEFAULT 0 CHECK (sale_price >= 0),
    is_default     INTEGER NOT NULL DEFAULT 0 CHECK (is_default IN (0,1)),
    position       INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (product_id, variant_id),
    FOREIGN KEY (product_id) REFERENCES products(product_id) ON DELETE CASCADE
);

/* supplier_id is a weak reference: offers may name suppliers not (yet) registered */
CREATE TABLE IF NOT EXISTS supplier_offers (
    offer_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id  TEXT NOT NULL,
    supplier_id TEXT NOT NULL,
    variant_id  TEXT,
    price       REAL NOT NULL CHECK (price >= 0),
    position    INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (product_id) REFERENCES products(product_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_supplier_offers_product ON supplier_offers(product_id);

/* ======================== ORDERS ======================== */

CREATE TABLE IF NOT EXISTS orders (
    order_id          TEXT PRIMARY KEY,
    scope             TEXT NOT NULL DEFAULT 'default' CHECK (scope IN ('default','kalaba')),
    stage             TEXT NOT NULL DEFAULT 'poruceno'
                      CHECK (stage IN ('poruceno','na_stanju','poslato','stiglo','legle_pare','vraceno')),
    title             TEXT NOT NULL,
    customer_name     TEXT NOT NULL,
    phone             TEXT NOT NULL,
    address           TEXT NOT NULL DEFAULT '',
    pickup            INTEGER NOT NULL DEFAULT 0 CHECK (pickup IN (0,1)),
    transport_cost    REAL CHECK (transport_cost IS NULL OR transport_cost >= 0),
    transport_mode    TEXT CHECK (transport_mode IS NULL OR transport_mode IN ('Kol','Joe','Smg')),
    shipping_mode     TEXT CHECK (shipping_mode IS NULL OR shipping_mode IN ('Posta','Aks','Bex')),
    shipping_owner    TEXT,
    shipment_number   TEXT,
    my_profit_percent REAL CHECK (my_profit_percent IS NULL OR (my_profit_percent BETWEEN 0 AND 100)),
    return_settled    INTEGER NOT NULL DEFAULT 0 CHECK (return_settled IN (0,1)),
    note              TEXT,
    created_at        INTEGER NOT NULL,
    sort_index        INTEGER,
    updated_at        INTEGER,
    CHECK (stage <> 'poslato' OR (shipment_number IS NOT NULL AND TRIM(shipment_number) <> ''))
);
CREATE INDEX IF NOT EXISTS idx_orders_scope_created ON orders(scope, created_at);

CREATE TABLE IF NOT EXISTS order_items (
    order_id          TEXT NOT NULL,
    item_id           TEXT NOT NULL,
    position          INTEGER NOT NULL,
    product_id        TEXT,
    variant_id        TEXT,
    variant_label     TEXT,
    supplier_id       TEXT,
    title             TEXT NOT NULL,
    quantity          INTEGER NOT NULL CHECK (quantity >= 1),
    purchase_price    REAL NOT NULL CHECK (purchase_price >= 0),
    sale_price        REAL NOT NULL CHECK (sale_price >= 0),
    manual_sale_price INTEGER NOT NULL DEFAULT 0 CHECK (manual_sale_price IN (0,1)),
    PRIMARY KEY (order_id, item_id),
    FOREIGN KEY (order_id) REFERENCES orders(order_id) ON DELETE CASCADE
);

/* Aks/Bex payout accounts, per order collection */
CREATE TABLE IF NOT EXISTS shipping_accounts (
    scope           TEXT NOT NULL,
    lookup_key      TEXT NOT NULL,
    value           TEXT NOT NULL,
    starting_amount REAL NOT NULL DEFAULT 0 CHECK (starting_amount >= 0),
    created_at      INTEGER NOT NULL,
    PRIMARY KEY (scope, lookup_key)
);
"""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection."""
    conn.executescript(SQL)


def init_schema(db_path: Path | str) -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)
        conn.commit()
    _log.info("Schema applied to %s", db_path)
