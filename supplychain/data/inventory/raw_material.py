from supplychain import db
from supplychain.business.core.constants import DEFAULT_COLOR_CODE, DEFAULT_UNIT
from supplychain.data.core.timestamped_base import StockedItemBase


class RawMaterial(StockedItemBase):
    """
    Raw material stocked by Procurement.

    ``quantity`` is Procurement's holding; other departments' holdings of the
    same material live in DepartmentStock.
    """
    __tablename__ = 'raw_materials'

    unit = db.Column(db.String(50), nullable=False, default=DEFAULT_UNIT)
    # Display attribute only
    color_code = db.Column(db.String(20), nullable=False, default=DEFAULT_COLOR_CODE)

    __table_args__ = (
        db.CheckConstraint('quantity >= 0', name='ck_raw_materials_quantity_non_negative'),
    )

    def __repr__(self):
        return f'<RawMaterial {self.sku} Qty:{self.quantity}>'
