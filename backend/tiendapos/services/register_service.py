"""
Cash Register Lifecycle Service

WHY: Sales may only be committed while the operator has an open cash
register. Each register row is one drawer cycle: opened with a counted
float, closed with a counted total, then never touched again.

DESIGN PRINCIPLES:
- At most one OPEN register per operator (partial unique index backs the check)
- Persisted state is authoritative; RegisterLifecycleManager only caches it
- Registers are immutable once closed and never deleted
- Closing reconciles expected vs counted cash
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CashRegister, Sale
from ..models.registers import REGISTER_OPEN, REGISTER_CLOSED
from tiendapos.time_utils import utcnow, to_utc_z
from ..validation import NotFoundError, require_amount
from .concurrency import atomic, lock_for_update


PAYMENT_CASH = "CASH"


class RegisterError(Exception):
    """Raised for register operation errors."""
    pass


class DuplicateRegisterError(RegisterError):
    """Raised when opening while a register is already open."""
    def __init__(self, register_id: int | None = None):
        message = "A cash register is already open"
        if register_id is not None:
            message = f"{message} (register {register_id})"
        super().__init__(message)
        self.register_id = register_id


class RegisterClosedError(RegisterError):
    """Raised when an operation needs an open register and there is none."""
    pass


def get_open_register(operator_id: str) -> CashRegister | None:
    """Get the currently open register for an operator, if any."""
    return db.session.query(CashRegister).filter_by(
        operator_id=operator_id,
        status=REGISTER_OPEN,
    ).order_by(CashRegister.opened_at.desc()).first()


def open_register(operator_id: str, opening_amount) -> CashRegister:
    """
    Open a new register for the operator.

    Raises:
        ValidationError: amount is not a non-negative integer
        DuplicateRegisterError: a register is already open, either found by
            the pre-check or by the unique index on a concurrent insert
    """
    amount = require_amount(opening_amount, "opening_amount")

    existing = get_open_register(operator_id)
    if existing:
        raise DuplicateRegisterError(existing.id)

    register = CashRegister(
        operator_id=operator_id,
        status=REGISTER_OPEN,
        opening_amount=amount,
        opened_at=utcnow(),
    )

    try:
        with atomic():
            db.session.add(register)
    except IntegrityError:
        # Another session opened one between the check and the insert
        raise DuplicateRegisterError()

    return register


def cash_sales_total(register_id: int) -> int:
    total = db.session.query(func.coalesce(func.sum(Sale.total), 0)).filter(
        Sale.register_id == register_id,
        Sale.payment_method == PAYMENT_CASH,
    ).scalar()
    return int(total or 0)


def close_register(operator_id: str, closing_amount) -> CashRegister:
    """
    Close the operator's open register and reconcile the drawer.

    expected_amount = opening_amount + cash sale totals
    variance = closing_amount - expected_amount

    Raises:
        ValidationError: amount is not a non-negative integer
        RegisterClosedError: no register is open
    """
    amount = require_amount(closing_amount, "closing_amount")

    with atomic():
        register = lock_for_update(
            db.session.query(CashRegister).filter_by(operator_id=operator_id, status=REGISTER_OPEN)
        ).first()

        if not register:
            raise RegisterClosedError("No open cash register")

        expected = register.opening_amount + cash_sales_total(register.id)

        register.status = REGISTER_CLOSED
        register.closing_amount = amount
        register.closed_at = utcnow()
        register.expected_amount = expected
        register.variance = amount - expected

    return register


def get_register(register_id: int) -> CashRegister:
    register = db.session.query(CashRegister).filter_by(id=register_id).first()
    if not register:
        raise NotFoundError("Register not found")
    return register


def get_register_summary(register_id: int) -> dict:
    """
    Sales count and totals per payment method for one register.

    For open registers expected_amount is computed on the fly.
    """
    register = get_register(register_id)

    rows = db.session.query(
        Sale.payment_method,
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total), 0),
    ).filter(Sale.register_id == register_id).group_by(Sale.payment_method).all()

    totals_by_method = {method: int(total) for method, _count, total in rows}
    sales_count = sum(int(count) for _method, count, _total in rows)

    expected = register.expected_amount
    if register.is_open:
        expected = register.opening_amount + totals_by_method.get(PAYMENT_CASH, 0)

    return {
        "register": register.to_dict(),
        "sales_count": sales_count,
        "sales_total": sum(totals_by_method.values()),
        "totals_by_payment_method": totals_by_method,
        "expected_amount": expected,
        "variance": register.variance,
        "is_closed": register.status == REGISTER_CLOSED,
    }


@dataclass(frozen=True)
class RegisterSnapshot:
    """Detached copy of an open register, safe to keep between requests."""
    id: int
    operator_id: str
    status: str
    opening_amount: int
    opened_at: datetime

    @classmethod
    def of(cls, register: CashRegister) -> "RegisterSnapshot":
        return cls(
            id=register.id,
            operator_id=register.operator_id,
            status=register.status,
            opening_amount=register.opening_amount,
            opened_at=register.opened_at,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "status": self.status,
            "opening_amount": self.opening_amount,
            "opened_at": to_utc_z(self.opened_at),
        }


class RegisterLifecycleManager:
    """
    Per-operator handle over the register state machine.

    CLOSED -> OPEN -> CLOSED. status() serves a cached snapshot of the open
    register, loaded on first use and invalidated on open/close. refresh()
    and require_open() always read the database, which stays authoritative.
    """

    _UNLOADED = object()

    def __init__(self, operator_id: str):
        self.operator_id = operator_id
        self._cached = self._UNLOADED

    def invalidate(self) -> None:
        self._cached = self._UNLOADED

    def refresh(self) -> RegisterSnapshot | None:
        register = get_open_register(self.operator_id)
        self._cached = RegisterSnapshot.of(register) if register else None
        return self._cached

    def status(self) -> RegisterSnapshot | None:
        if self._cached is self._UNLOADED:
            return self.refresh()
        return self._cached

    def open(self, amount) -> CashRegister:
        self.invalidate()
        register = open_register(self.operator_id, amount)
        self._cached = RegisterSnapshot.of(register)
        return register

    def close(self, amount) -> CashRegister:
        self.invalidate()
        register = close_register(self.operator_id, amount)
        self._cached = None
        return register

    def require_open(self, register_id: int | None = None) -> CashRegister:
        """
        The open register, read from the database.

        Raises RegisterClosedError if none is open or if register_id names a
        different register.
        """
        register = get_open_register(self.operator_id)
        self._cached = RegisterSnapshot.of(register) if register else None
        if register is None:
            raise RegisterClosedError("No open cash register")
        if register_id is not None and register.id != register_id:
            raise RegisterClosedError(f"Register {register_id} is not open")
        return register
