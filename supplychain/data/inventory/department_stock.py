from supplychain import db
from supplychain.data.core.timestamped_base import TimestampedBase


class DepartmentStock(TimestampedBase):
    """
    Stock of a catalog item held by a department other than the item's home department.

    Rows are created on the first inbound transfer and never deleted; a drained
    holding stays at zero.
    """
    __tablename__ = 'department_stock'

    department = db.Column(db.String(20), nullable=False)
    item_type = db.Column(db.String(10), nullable=False)
    item_id = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    version = db.Column(db.Integer, nullable=False, default=1)

    __table_args__ = (
        db.UniqueConstraint('department', 'item_type', 'item_id', name='uix_department_item'),
        db.CheckConstraint('quantity >= 0', name='ck_department_stock_quantity_non_negative'),
    )

    def __repr__(self):
        return f'<DepartmentStock {self.department} {self.item_type}:{self.item_id} Qty:{self.quantity}>'
