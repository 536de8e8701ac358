# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from order_backoffice.database.repositories import (
        # Catalog (read side)
        CatalogRepo, Product, ProductVariant, SupplierOffer, Supplier, CatalogDomainError,
        # Orders
        OrdersRepo, OrderListQuery, OrderPage, Pagination,
        ShippingAccount, ShippingOwners, OrdersDomainError,
    )
"""

# ---------------- Catalog ------------------
from .catalog_repo import (
    CatalogRepo,
    Product,
    ProductVariant,
    SupplierOffer,
    Supplier,
    DomainError as CatalogDomainError,
)

# ----------------- Orders ------------------
from .orders_repo import (
    OrdersRepo,
    OrderListQuery,
    OrderPage,
    Pagination,
    ShippingAccount,
    ShippingOwners,
    DomainError as OrdersDomainError,
)

__all__ = [
    # catalog_repo
    "CatalogRepo",
    "Product",
    "ProductVariant",
    "SupplierOffer",
    "Supplier",
    "CatalogDomainError",
    # orders_repo
    "OrdersRepo",
    "OrderListQuery",
    "OrderPage",
    "Pagination",
    "ShippingAccount",
    "ShippingOwners",
    "OrdersDomainError",
]
