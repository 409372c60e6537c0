from __future__ import annotations

from ..extensions import db
from tiendapos.time_utils import to_utc_z


REGISTER_OPEN = "OPEN"
REGISTER_CLOSED = "CLOSED"


class CashRegister(db.Model):
    """
    Cash-drawer session for one operator.

    LIFECYCLE:
    - OPEN: sales may be committed against it
    - CLOSED: counted and reconciled; never reopened or deleted

    A new row is opened each cycle. At most one OPEN row per operator,
    enforced by the partial unique index below so concurrent opens from two
    browser sessions cannot both succeed.
    """
    __tablename__ = "cash_registers"
    __table_args__ = (
        db.Index(
            "uq_cash_registers_operator_open",
            "operator_id",
            unique=True,
            sqlite_where=db.text("status = 'OPEN'"),
            postgresql_where=db.text("status = 'OPEN'"),
        ),
        db.Index("ix_cash_registers_operator_opened", "operator_id", "opened_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    operator_id = db.Column(db.String(64), db.ForeignKey("profiles.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=REGISTER_OPEN, index=True)  # OPEN, CLOSED

    # Cash tracking (minor currency units)
    opening_amount = db.Column(db.Integer, nullable=False, default=0)
    closing_amount = db.Column(db.Integer, nullable=True)  # Set when closing

    # Reconciliation (calculated when closing)
    expected_amount = db.Column(db.Integer, nullable=True)  # opening + cash sales
    variance = db.Column(db.Integer, nullable=True)  # closing - expected

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_open(self) -> bool:
        return self.status == REGISTER_OPEN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator_id": self.operator_id,
            "status": self.status,
            "opening_amount": self.opening_amount,
            "closing_amount": self.closing_amount,
            "expected_amount": self.expected_amount,
            "variance": self.variance,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
        }
