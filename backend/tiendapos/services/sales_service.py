"""
Sale Commit Service

WHY: A sale is recorded exactly once, with its line snapshots and stock
decrements, or not at all. The sale insert, the item inserts and every
stock decrement share one database transaction; any failure rolls all of
them back.

STOCK: Each line is a single conditional UPDATE
    stock = stock - qty WHERE id = ? AND tenant_id = ? AND stock >= qty
checked through the affected-row count, so two concurrent sales of the same
product cannot lose an update. ALLOW_NEGATIVE_STOCK drops the stock guard
but keeps the atomic decrement.

RETRIES: None. A failed commit is reported to the caller; retrying is a
manual, operator-initiated new commit (an automatic retry could double-sell).
"""

from __future__ import annotations

from enum import Enum

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import CashRegister, Product, Sale, SaleItem
from ..models.registers import REGISTER_OPEN
from tiendapos.time_utils import utcnow
from ..validation import MAX_AMOUNT, NotFoundError, ValidationError, coerce_int, require_amount
from .cart_service import Cart
from .concurrency import atomic, lock_for_update
from .register_service import RegisterClosedError


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientPaymentError(SaleError):
    """Cash tendered is below the sale total."""
    def __init__(self, total: int, tendered: int):
        self.total = total
        self.tendered = tendered
        self.shortfall = total - tendered
        super().__init__(
            f"Insufficient payment: short by {self.shortfall}",
            details={"total": total, "tendered": tendered, "shortfall": self.shortfall},
        )


class InsufficientStockError(SaleError):
    """One or more products do not have enough stock for the sale."""
    def __init__(self, items: list[dict]):
        super().__init__("Insufficient stock to commit sale", details={"items": items})
        self.items = items


def parse_payment_method(value) -> PaymentMethod:
    if isinstance(value, PaymentMethod):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("payment_method is required")
    try:
        return PaymentMethod(value.strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError(f"payment_method must be one of: {allowed}")


def _negative_stock_allowed(allow_negative_stock: bool | None) -> bool:
    if allow_negative_stock is not None:
        return allow_negative_stock
    return bool(current_app.config.get("ALLOW_NEGATIVE_STOCK", False))


def _check_register(register_id, operator_id: str) -> int:
    register_id = coerce_int(register_id, "register_id")
    register = db.session.query(CashRegister).filter_by(id=register_id).first()
    if not register or register.operator_id != operator_id or register.status != REGISTER_OPEN:
        raise RegisterClosedError(f"Register {register_id} is not open")
    return register_id


def _decrement_stock(tenant_id: str, product_id: int, qty: int, allow_negative: bool) -> bool:
    stmt = update(Product).where(
        Product.id == product_id,
        Product.tenant_id == tenant_id,
    )
    if not allow_negative:
        stmt = stmt.where(Product.stock >= qty)
    stmt = stmt.values(stock=Product.stock - qty).execution_options(synchronize_session=False)

    result = db.session.execute(stmt)
    return result.rowcount == 1


def commit_sale(
    cart: Cart,
    *,
    operator_id: str,
    tenant_id: str,
    register_id,
    payment_method,
    tendered=None,
    allow_negative_stock: bool | None = None,
) -> Sale:
    """
    Record the cart as a sale and decrement stock.

    Preconditions (checked before any write):
    - cart is not empty (ValidationError)
    - register_id is the operator's OPEN register (RegisterClosedError)
    - payment_method is CASH or CARD (ValidationError)
    - CASH: tendered >= total (InsufficientPaymentError with shortfall)

    Returns the created Sale. The cart is cleared only after the transaction
    commits; on any failure it is left untouched.
    """
    if cart.is_empty:
        raise ValidationError("Cannot commit an empty cart")

    method = parse_payment_method(payment_method)
    register_id = _check_register(register_id, operator_id)

    total = cart.total()
    if total > MAX_AMOUNT:
        raise ValidationError(f"Sale total cannot exceed {MAX_AMOUNT}")
    tendered_amount = None
    change = None
    if method == PaymentMethod.CASH:
        if tendered is None:
            raise ValidationError("tendered is required for cash payments")
        tendered_amount = require_amount(tendered, "tendered")
        if tendered_amount < total:
            raise InsufficientPaymentError(total, tendered_amount)
        change = tendered_amount - total

    allow_negative = _negative_stock_allowed(allow_negative_stock)
    lines = cart.items

    with atomic():
        # Re-check under lock: the register may have been closed by another session
        register = lock_for_update(
            db.session.query(CashRegister).filter_by(id=register_id).populate_existing()
        ).first()
        if not register or register.status != REGISTER_OPEN:
            raise RegisterClosedError(f"Register {register_id} is not open")

        sale = Sale(
            tenant_id=tenant_id,
            operator_id=operator_id,
            register_id=register_id,
            total=total,
            payment_method=method.value,
            tendered=tendered_amount,
            change=change,
            created_at=utcnow(),
        )
        db.session.add(sale)
        db.session.flush()

        for line in lines:
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=line.product_id,
                product_name=line.name,
                qty=line.qty,
                price=line.price,
            ))

        insufficient = []
        for line in lines:
            if _decrement_stock(tenant_id, line.product_id, line.qty, allow_negative):
                continue
            current = db.session.query(Product.stock).filter_by(
                id=line.product_id,
                tenant_id=tenant_id,
            ).first()
            if current is None:
                raise NotFoundError(f"Product {line.product_id} not found")
            insufficient.append({
                "product_id": line.product_id,
                "name": line.name,
                "requested_quantity": line.qty,
                "stock": current[0],
            })

        if insufficient:
            raise InsufficientStockError(insufficient)

    cart.clear()
    return sale


def list_sales(
    tenant_id: str,
    *,
    register_id: int | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Sale]:
    """Tenant sales, newest first."""
    query = db.session.query(Sale).filter_by(tenant_id=tenant_id)
    if register_id is not None:
        query = query.filter_by(register_id=register_id)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).offset(offset).limit(limit).all()


def get_sale(tenant_id: str, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id, tenant_id=tenant_id).first()
    if not sale:
        raise NotFoundError("Sale not found")
    return sale
