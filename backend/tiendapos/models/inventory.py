from __future__ import annotations

from ..extensions import db
from tiendapos.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to the owner's tenant via tenant_id.

    STOCK: Sales decrement stock with a single conditional UPDATE (see
    sales_service), never by read-then-write, so stock is not versioned here.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(64), db.ForeignKey("profiles.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    # Minor currency units
    price = db.Column(db.Integer, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    icon = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} tenant_id={self.tenant_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
            "icon": self.icon,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
