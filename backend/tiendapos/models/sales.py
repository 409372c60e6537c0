from __future__ import annotations

from ..extensions import db
from tiendapos.time_utils import to_utc_z


class Sale(db.Model):
    """
    Committed sale. Append-only ledger entry, never updated after insert.

    TENDER: tendered and change are only set for CASH sales.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(64), db.ForeignKey("profiles.id"), nullable=False, index=True)
    operator_id = db.Column(db.String(64), db.ForeignKey("profiles.id"), nullable=False, index=True)
    register_id = db.Column(db.Integer, db.ForeignKey("cash_registers.id"), nullable=False, index=True)

    # Amounts in minor currency units
    total = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)  # CASH, CARD
    tendered = db.Column(db.Integer, nullable=True)
    change = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    register = db.relationship("CashRegister", backref=db.backref("sales", lazy=True))

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "operator_id": self.operator_id,
            "register_id": self.register_id,
            "total": self.total,
            "payment_method": self.payment_method,
            "tendered": self.tendered,
            "change": self.change,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line snapshot of a sale.

    product_name and price are copied at sale time so later product edits or
    deletes do not rewrite history.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True, order_by="SaleItem.id"))

    @property
    def line_total(self) -> int:
        return self.price * self.qty

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "qty": self.qty,
            "price": self.price,
            "line_total": self.line_total,
        }
