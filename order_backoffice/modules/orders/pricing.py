"""
modules/orders/pricing.py

Resolve a line item's purchase cost and sale price from the catalog.

Purchase price, first match wins:
  1. explicitly chosen supplier's offer
  2. cheapest matching supplier offer (ties: first seen)
  3. the variant's own purchase price
  4. the product's base purchase price

Sale price: manual override if given, else the variant's, else the product's.

Do not import repos or open DB connections here.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ...database.repositories.catalog_repo import Product, ProductVariant
from ...utils.validators import try_parse_float
from .entities import OrderItem
from .errors import InvalidManualPrice

__all__ = [
    "SupplierOption",
    "ResolvedPrice",
    "resolve_variant",
    "supplier_options",
    "pick_best_supplier",
    "parse_manual_price",
    "resolve_price",
    "compose_variant_label",
    "build_line_item",
]


@dataclass(frozen=True)
class SupplierOption:
    supplier_id: str
    price: float
    supplier_name: str | None = None


@dataclass(frozen=True)
class ResolvedPrice:
    purchase: float
    sale: float
    supplier_id: str | None = None
    manual: bool = False


def resolve_variant(product: Product, variant_id: str | None = None) -> Optional[ProductVariant]:
    """Requested variant, else the default one, else the first; None when the product has none."""
    if not product.variants:
        return None
    if variant_id:
        for v in product.variants:
            if v.id == variant_id:
                return v
    for v in product.variants:
        if v.is_default:
            return v
    return product.variants[0]


def supplier_options(
    product: Product,
    variant_id: str | None = None,
    supplier_names: dict[str, str] | None = None,
) -> list[SupplierOption]:
    """
    Selectable supplier offers for one product/variant.

    Offers are matched on variant (no variant -> offers without a variant
    restriction) and collapsed by supplier id, keeping first-occurrence order.
    """
    wanted = (variant_id or "").strip() or None
    names = supplier_names or {}
    seen: set[str] = set()
    out: list[SupplierOption] = []
    for offer in product.supplier_offers:
        if (offer.variant_id or None) != wanted:
            continue
        key = str(offer.supplier_id)
        if key in seen:
            continue
        seen.add(key)
        out.append(SupplierOption(supplier_id=key, price=offer.price, supplier_name=names.get(key)))
    return out


def pick_best_supplier(options: list[SupplierOption]) -> Optional[SupplierOption]:
    best = None
    for option in options:
        if best is None or option.price < best.price:
            best = option
    return best


def parse_manual_price(raw) -> float:
    """'15,50' -> 15.5. Raises InvalidManualPrice for blank, non-finite or negative input."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise InvalidManualPrice()
    ok, value = try_parse_float(raw)
    if not ok or value is None or value < 0:
        raise InvalidManualPrice()
    return value


def resolve_price(
    product: Product,
    variant_id: str | None = None,
    supplier_id: str | None = None,
    manual_sale_price=None,
) -> ResolvedPrice:
    variant = resolve_variant(product, variant_id)
    options = supplier_options(product, variant.id if variant else None)
    best = pick_best_supplier(options)

    chosen_id = supplier_id or (options[0].supplier_id if len(options) == 1 else None)
    supplier_price = None
    if chosen_id:
        chosen = next((o for o in options if o.supplier_id == chosen_id), None)
        supplier_price = chosen.price if chosen else (best.price if best else None)
    elif best is not None:
        supplier_price = best.price

    if supplier_price is not None:
        purchase = supplier_price
    elif variant is not None:
        purchase = variant.purchase_price
    else:
        purchase = product.purchase_price

    if manual_sale_price is not None:
        sale = parse_manual_price(manual_sale_price)
        manual = True
    else:
        sale = variant.sale_price if variant is not None else product.sale_price
        manual = False

    return ResolvedPrice(purchase=purchase, sale=sale, supplier_id=chosen_id, manual=manual)


def compose_variant_label(product: Product, variant: ProductVariant | None) -> str:
    if variant is None:
        return product.display_name
    return f"{product.display_name} - {variant.label}"


def build_line_item(
    product: Product,
    *,
    variant_id: str | None = None,
    supplier_id: str | None = None,
    quantity: int = 1,
    manual_sale_price=None,
) -> OrderItem:
    """
    Snapshot a catalog product into a new OrderItem. Title and variant label
    are captured now and never re-derived from the catalog.
    """
    variant = resolve_variant(product, variant_id)
    price = resolve_price(product, variant.id if variant else None, supplier_id, manual_sale_price)
    label = compose_variant_label(product, variant) if variant else None
    return OrderItem(
        product_id=product.product_id,
        variant_id=variant.id if variant else None,
        variant_label=label,
        supplier_id=price.supplier_id,
        title=label or product.display_name,
        quantity=quantity,
        purchase_price=price.purchase,
        sale_price=price.sale,
        manual_sale_price=price.manual,
    )
