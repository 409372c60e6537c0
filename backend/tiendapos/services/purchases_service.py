"""
Purchase Service

WHY: Restocking from a supplier is recorded as one purchase document. The
purchase header, its lines and every stock increment share one transaction,
so stock never moves without a purchase that explains it.

STOCK: Each line is a single atomic UPDATE
    stock = stock + qty WHERE id = ? AND tenant_id = ?
checked through the affected-row count. A product that is missing or belongs
to another tenant aborts the whole purchase.
"""

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import Product, Purchase, PurchaseItem
from tiendapos.time_utils import utcnow
from ..validation import (
    MAX_AMOUNT,
    NotFoundError,
    ValidationError,
    coerce_int,
    require_amount,
    require_positive_int,
    require_text,
)
from .concurrency import atomic


def _clean_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    lines = []
    seen: set[int] = set()
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = coerce_int(raw.get("product_id"), f"items[{index}].product_id")
        if product_id in seen:
            raise ValidationError(f"Product {product_id} appears more than once")
        seen.add(product_id)

        qty = require_positive_int(raw.get("qty"), f"items[{index}].qty")
        if qty > MAX_AMOUNT:
            raise ValidationError(f"items[{index}].qty cannot exceed {MAX_AMOUNT}")
        lines.append({
            "product_id": product_id,
            "qty": qty,
            "cost_price": require_amount(raw.get("cost_price"), f"items[{index}].cost_price"),
        })
    return lines


def _increment_stock(tenant_id: str, product_id: int, qty: int) -> bool:
    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.tenant_id == tenant_id)
        .values(stock=Product.stock + qty)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount == 1


def record_purchase(tenant_id: str, supplier_name, items, *, operator_id: str | None = None) -> Purchase:
    """
    Record a supplier purchase and add its quantities to stock.

    items: [{"product_id": 1, "qty": 12, "cost_price": 8000}, ...]
    A product may appear once per purchase. The total is computed here as
    the sum of qty * cost_price.

    Raises ValidationError before any write, NotFoundError (after rolling
    back) when a product is not in the tenant's catalogue.
    """
    supplier_name = require_text(supplier_name, "supplier_name", max_length=255)
    lines = _clean_items(items)

    total = sum(line["qty"] * line["cost_price"] for line in lines)
    if total > MAX_AMOUNT:
        raise ValidationError(f"Purchase total cannot exceed {MAX_AMOUNT}")

    with atomic():
        for line in lines:
            if not _increment_stock(tenant_id, line["product_id"], line["qty"]):
                raise NotFoundError(f"Product {line['product_id']} not found")

        names = dict(
            db.session.query(Product.id, Product.name)
            .filter(Product.id.in_([line["product_id"] for line in lines]))
            .all()
        )

        purchase = Purchase(
            tenant_id=tenant_id,
            operator_id=operator_id,
            supplier_name=supplier_name,
            total=total,
            created_at=utcnow(),
        )
        db.session.add(purchase)
        db.session.flush()

        for line in lines:
            db.session.add(PurchaseItem(
                purchase_id=purchase.id,
                product_id=line["product_id"],
                product_name=names[line["product_id"]],
                qty=line["qty"],
                cost_price=line["cost_price"],
            ))

    return purchase


def list_purchases(tenant_id: str, *, limit: int = 50, offset: int = 0) -> list[Purchase]:
    """Tenant purchases, newest first."""
    return (
        db.session.query(Purchase)
        .filter_by(tenant_id=tenant_id)
        .order_by(Purchase.created_at.desc(), Purchase.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_purchase(tenant_id: str, purchase_id: int) -> Purchase:
    purchase = db.session.query(Purchase).filter_by(id=purchase_id, tenant_id=tenant_id).first()
    if not purchase:
        raise NotFoundError("Purchase not found")
    return purchase
