from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


TXN_EARN = "EARN"
TXN_REDEEM = "REDEEM"


class PointsTransaction(db.Model):
    """
    Append-only ledger of discount point movements.

    TRANSACTION TYPES:
    - EARN: Points credited by an accepted order (order_id set)
    - REDEEM: Points debited for a discount tier (discount_percent set)

    IMMUTABLE: Records are never updated or deleted. Each row is written in
    the same transaction as the users.discount_points change it describes,
    and balance_after is the balance that change produced.
    """
    __tablename__ = "points_transactions"
    __table_args__ = (
        db.Index("ix_points_txns_user_occurred", "user_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)  # EARN, REDEEM
    points = db.Column(db.Integer, nullable=False)  # Positive for earn, negative for redeem
    balance_after = db.Column(db.Integer, nullable=False)

    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    discount_percent = db.Column(db.Integer, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User", backref=db.backref("points_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "type": self.transaction_type,
            "points": self.points,
            "balanceAfter": self.balance_after,
            "orderId": self.order_id,
            "discount": self.discount_percent,
            "occurredAt": to_utc_z(self.occurred_at),
        }
