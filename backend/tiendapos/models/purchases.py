from __future__ import annotations

from ..extensions import db
from tiendapos.time_utils import to_utc_z


class Purchase(db.Model):
    """
    Supplier purchase. Recorded once with its lines and the stock increments,
    never edited afterwards.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(64), db.ForeignKey("profiles.id"), nullable=False, index=True)
    operator_id = db.Column(db.String(64), db.ForeignKey("profiles.id"), nullable=True)

    supplier_name = db.Column(db.String(255), nullable=False)
    # Minor currency units, sum of qty * cost_price over the lines
    total = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "operator_id": self.operator_id,
            "supplier_name": self.supplier_name,
            "total": self.total,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseItem(db.Model):
    """Line of a purchase; product_name is a snapshot like SaleItem's."""
    __tablename__ = "purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    qty = db.Column(db.Integer, nullable=False)
    cost_price = db.Column(db.Integer, nullable=False)

    purchase = db.relationship("Purchase", backref=db.backref("items", lazy=True, order_by="PurchaseItem.id"))

    @property
    def line_total(self) -> int:
        return self.cost_price * self.qty

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "qty": self.qty,
            "cost_price": self.cost_price,
            "line_total": self.line_total,
        }
