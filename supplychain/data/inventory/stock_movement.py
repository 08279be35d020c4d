from supplychain import db
from supplychain.data.core.timestamped_base import TimestampedBase, utcnow


class StockMovement(TimestampedBase):
    """Audit trail for every applied quantity change"""
    __tablename__ = 'stock_movements'

    item_type = db.Column(db.String(10), nullable=False)
    item_id = db.Column(db.Integer, nullable=False)
    department = db.Column(db.String(20), nullable=False)

    # Production/Consumption/Sale/TransferOut/TransferIn/Import/Adjustment
    movement_type = db.Column(db.String(20), nullable=False)
    quantity_delta = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)
    movement_date = db.Column(db.DateTime, nullable=False, default=utcnow)

    # Reference Fields
    reference_type = db.Column(db.String(50), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.Index('ix_stock_movements_item', 'item_type', 'item_id'),
    )

    def __repr__(self):
        return f'<StockMovement {self.movement_type} {self.item_type}:{self.item_id} {self.quantity_delta:+d}>'
