# Overview: Tenant-scoped product catalogue used by the POS screen and inventory management.

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, PurchaseItem, SaleItem
from ..validation import (
    NotFoundError,
    ValidationError,
    optional_text,
    require_amount,
    require_json_object,
    require_text,
)


WRITABLE_FIELDS = {"name", "price", "stock", "icon"}
REQUIRED_ON_CREATE = {"name", "price"}


def _clean_payload(payload, *, partial: bool) -> dict:
    """
    Validate + normalize product input.

    partial=False: create semantics (name and price required)
    partial=True: patch semantics (validate only provided keys)
    """
    payload = require_json_object(payload)

    unknown = [k for k in payload if k not in WRITABLE_FIELDS]
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    if not partial:
        missing = [f for f in sorted(REQUIRED_ON_CREATE) if f not in payload]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    patch: dict = {}
    if "name" in payload:
        patch["name"] = require_text(payload["name"], "name", max_length=255)
    if "price" in payload:
        patch["price"] = require_amount(payload["price"], "price")
    if "stock" in payload:
        patch["stock"] = require_amount(payload["stock"], "stock")
    if "icon" in payload:
        patch["icon"] = optional_text(payload["icon"], "icon", max_length=64)
    return patch


def list_products(
    tenant_id: str,
    *,
    search: str | None = None,
    page: int = 0,
    page_size: int | None = None,
) -> tuple[list[Product], bool]:
    """
    One page of products ordered by name.

    search is a case-insensitive substring match on name.
    Returns (products, has_more).
    """
    if page < 0:
        raise ValidationError("page must be >= 0")
    size = page_size or current_app.config.get("PRODUCT_PAGE_SIZE", 20)

    query = db.session.query(Product).filter_by(tenant_id=tenant_id)
    if search and search.strip():
        query = query.filter(
            func.lower(Product.name).contains(search.strip().lower(), autoescape=True)
        )

    rows = query.order_by(Product.name, Product.id).offset(page * size).limit(size + 1).all()
    return rows[:size], len(rows) > size


def get_product(tenant_id: str, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


def create_product(tenant_id: str, payload) -> Product:
    patch = _clean_payload(payload, partial=False)
    patch.setdefault("stock", 0)
    product = Product(tenant_id=tenant_id, **patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(tenant_id: str, product_id: int, payload) -> Product:
    """Edits never touch sale history: sale items keep their own snapshots."""
    patch = _clean_payload(payload, partial=True)
    product = get_product(tenant_id, product_id)
    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def delete_product(tenant_id: str, product_id: int) -> None:
    """Delete a product; sale and purchase items keep their snapshots with product_id cleared."""
    product = get_product(tenant_id, product_id)
    try:
        db.session.query(SaleItem).filter_by(product_id=product.id).update(
            {"product_id": None}, synchronize_session=False
        )
        db.session.query(PurchaseItem).filter_by(product_id=product.id).update(
            {"product_id": None}, synchronize_session=False
        )
        db.session.delete(product)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
