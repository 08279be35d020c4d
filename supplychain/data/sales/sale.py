from supplychain import db
from supplychain.data.core.timestamped_base import TimestampedBase


class Sale(TimestampedBase):
    """Point-of-sale transaction. Written once together with its stock decrement, never mutated."""
    __tablename__ = 'sales'

    produced_good_id = db.Column(db.Integer, db.ForeignKey('produced_goods.id'), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    payment_status = db.Column(db.String(10), nullable=False)  # PAID / CREDIT

    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='ck_sales_quantity_positive'),
    )

    produced_good = db.relationship('ProducedGood')

    def __repr__(self):
        return f'<Sale Good:{self.produced_good_id} Qty:{self.quantity} {self.payment_status}>'
