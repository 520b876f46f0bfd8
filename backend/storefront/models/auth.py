from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date
from ..validation import amount_to_json


ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)

DEFAULT_MAX_ORDERS_PER_DAY = 10
DEFAULT_MAX_PRODUCTS_PER_ORDER = 50
DEFAULT_MAX_TOTAL_ORDER_VALUE = Decimal("10000")


class User(db.Model):
    """
    Shopper / administrator account.

    Carries the per-user order quotas, the daily usage counter they are
    checked against, and the discount points balance.

    USAGE INVARIANT: orders_today only counts for last_order_date. When
    last_order_date is not today (UTC) the counter is treated as 0.

    CONCURRENCY: version_id is bumped on every write (ORM flushes and the
    conditional UPDATEs in order_service / discount_service), so stale
    read-modify-write attempts raise StaleDataError and are retried.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("max_orders_per_day >= 0", name="max_orders_per_day_non_negative"),
        db.CheckConstraint("max_products_per_order >= 0", name="max_products_per_order_non_negative"),
        db.CheckConstraint("max_total_order_value >= 0", name="max_total_order_value_non_negative"),
        db.CheckConstraint("orders_today >= 0", name="orders_today_non_negative"),
        db.CheckConstraint("discount_points >= 0", name="discount_points_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Quotas (admin-managed ceilings)
    max_orders_per_day = db.Column(db.Integer, nullable=False, default=DEFAULT_MAX_ORDERS_PER_DAY)
    max_products_per_order = db.Column(db.Integer, nullable=False, default=DEFAULT_MAX_PRODUCTS_PER_ORDER)
    max_total_order_value = db.Column(db.Numeric(12, 2), nullable=False, default=DEFAULT_MAX_TOTAL_ORDER_VALUE)

    # Usage (mutated by every accepted order)
    orders_today = db.Column(db.Integer, nullable=False, default=0)
    last_order_date = db.Column(db.Date, nullable=True)

    discount_points = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def quotas_dict(self) -> dict:
        return {
            "maxOrdersPerDay": self.max_orders_per_day,
            "maxProductsPerOrder": self.max_products_per_order,
            "maxTotalOrderValue": amount_to_json(self.max_total_order_value),
        }

    def usage_dict(self) -> dict:
        return {
            "ordersToday": self.orders_today,
            "lastOrderDate": to_iso_date(self.last_order_date),
        }

    def to_quota_dict(self) -> dict:
        return {
            "userId": self.id,
            "email": self.email,
            "username": self.username,
            "quotas": self.quotas_dict(),
            "usage": self.usage_dict(),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
            "discount_points": self.discount_points,
            "quotas": self.quotas_dict(),
            "usage": self.usage_dict(),
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Bearer session tokens.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - 24-hour absolute timeout
    - 2-hour idle timeout
    - Revocable on logout
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
