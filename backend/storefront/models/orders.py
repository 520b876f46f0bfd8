from __future__ import annotations

from decimal import Decimal

from sqlalchemy.types import Text, TypeDecorator

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import amount_to_json


ORDER_STATUS_PENDING = "PENDING"
ORDER_STATUSES = ("PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED")


class ExactDecimal(TypeDecorator):
    """Decimal stored as its string form; every submitted digit round-trips."""
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


class Order(db.Model):
    """
    Customer order, written once by order_service.create_order.

    total_amount is stored exactly as submitted; it and the product list
    passed quota admission at creation time and are not re-validated
    afterwards. Later changes are limited to status and shipment tracking.

    username is a denormalized back-reference kept for per-user listings;
    user_id is the owning key.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_username_created", "username", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)

    total_amount = db.Column(ExactDecimal, nullable=False)
    products = db.Column(db.JSON, nullable=False)
    address = db.Column(db.JSON, nullable=False)
    payment = db.Column(db.JSON, nullable=False)
    variant = db.Column(db.JSON, nullable=True)

    points_earned = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING, index=True)
    tracking_number = db.Column(db.String(128), nullable=True)
    shipping_carrier = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    user = db.relationship("User", backref=db.backref("orders", lazy=True))

    def __repr__(self) -> str:
        return f"<Order id={self.id} username={self.username!r} total={self.total_amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "username": self.username,
            "totalAmount": amount_to_json(self.total_amount),
            "products": self.products,
            "address": self.address,
            "payment": self.payment,
            "variant": self.variant,
            "status": self.status,
            "trackingNumber": self.tracking_number,
            "shippingCarrier": self.shipping_carrier,
            "pointsEarned": self.points_earned,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
