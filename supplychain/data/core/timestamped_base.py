from datetime import datetime, timezone

from supplychain import db
from supplychain.business.core.data_insertion_mixin import DataInsertionMixin


def utcnow() -> datetime:
    """Naive UTC timestamp (stored as-is in DateTime columns)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampedBase(db.Model, DataInsertionMixin):
    """Abstract base class for all persisted entities with an audit trail"""

    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class StockedItemBase(TimestampedBase):
    """
    Abstract base for catalog items whose row carries a quantity.

    ``quantity`` is the home department's holding and is written only by the
    inventory store. ``version`` increases with every quantity change and is the
    compare-and-swap token for absolute updates.
    """

    __abstract__ = True

    name = db.Column(db.String(200), nullable=False)
    sku = db.Column(db.String(100), nullable=False, unique=True, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    version = db.Column(db.Integer, nullable=False, default=1)
