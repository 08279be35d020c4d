from supplychain import db
from supplychain.data.core.timestamped_base import StockedItemBase


class ProducedGood(StockedItemBase):
    """
    Finished good made by Manufacturing from a fixed bill of materials.

    ``quantity`` is Manufacturing's holding. The recipe is immutable after creation.
    """
    __tablename__ = 'produced_goods'

    __table_args__ = (
        db.CheckConstraint('quantity >= 0', name='ck_produced_goods_quantity_non_negative'),
    )

    recipe_lines = db.relationship(
        'RecipeLine',
        back_populates='produced_good',
        order_by='RecipeLine.raw_sku',
        cascade='all, delete-orphan',
    )

    def __repr__(self):
        return f'<ProducedGood {self.sku} Qty:{self.quantity}>'

    @property
    def recipe(self) -> dict:
        """Raw material SKU -> quantity consumed per unit produced"""
        return {line.raw_sku: line.quantity_per_unit for line in self.recipe_lines}

    def to_dict(self, include_audit_fields=True):
        result = super().to_dict(include_audit_fields=include_audit_fields)
        result['recipe'] = self.recipe
        return result


class RecipeLine(db.Model):
    """One bill-of-materials line; the FK keeps every recipe key pointing at a real raw material"""
    __tablename__ = 'recipe_lines'

    id = db.Column(db.Integer, primary_key=True)
    produced_good_id = db.Column(db.Integer, db.ForeignKey('produced_goods.id', ondelete='CASCADE'), nullable=False)
    raw_material_id = db.Column(db.Integer, db.ForeignKey('raw_materials.id'), nullable=False)
    raw_sku = db.Column(db.String(100), nullable=False)
    quantity_per_unit = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('produced_good_id', 'raw_material_id', name='uix_recipe_good_material'),
        db.CheckConstraint('quantity_per_unit > 0', name='ck_recipe_lines_quantity_positive'),
    )

    produced_good = db.relationship('ProducedGood', back_populates='recipe_lines')
    raw_material = db.relationship('RawMaterial')

    def __repr__(self):
        return f'<RecipeLine Good:{self.produced_good_id} {self.raw_sku}x{self.quantity_per_unit}>'
