from supplychain import db
from supplychain.business.core.constants import TransferStatus
from supplychain.data.core.timestamped_base import TimestampedBase


class TransferRequest(TimestampedBase):
    """
    Cross-department stock request.

    ``from_dept`` fulfils the request (the only department allowed to adjust or
    approve it); ``to_dept`` asked for the stock. ``version`` is the optimistic
    lock that serializes concurrent adjust/approve calls on one request.
    """
    __tablename__ = 'transfer_requests'

    from_dept = db.Column(db.String(20), nullable=False, index=True)
    to_dept = db.Column(db.String(20), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=TransferStatus.PENDING.value)
    approved_at = db.Column(db.DateTime, nullable=True)
    version = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.CheckConstraint('from_dept <> to_dept', name='ck_transfer_requests_distinct_departments'),
    )
    __mapper_args__ = {'version_id_col': version}

    items = db.relationship(
        'TransferItem',
        back_populates='request',
        order_by='TransferItem.position',
        cascade='all, delete-orphan',
    )

    def __repr__(self):
        return f'<TransferRequest {self.id} {self.from_dept}->{self.to_dept} {self.status}>'

    def to_dict(self, include_audit_fields=True):
        result = super().to_dict(include_audit_fields=include_audit_fields)
        result['items'] = [item.to_dict() for item in self.items]
        return result


class TransferItem(db.Model):
    """One requested line; ``approved_qty`` stays NULL until the fulfilling department sets it"""
    __tablename__ = 'transfer_items'

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey('transfer_requests.id', ondelete='CASCADE'), nullable=False)
    position = db.Column(db.Integer, nullable=False)
    item_type = db.Column(db.String(10), nullable=False)  # RAW / PRODUCED
    item_id = db.Column(db.Integer, nullable=False)
    sku = db.Column(db.String(100), nullable=False)
    requested_qty = db.Column(db.Integer, nullable=False)
    approved_qty = db.Column(db.Integer, nullable=True)

    __table_args__ = (
        db.UniqueConstraint('request_id', 'position', name='uix_transfer_item_position'),
        db.CheckConstraint('requested_qty > 0', name='ck_transfer_items_requested_positive'),
        db.CheckConstraint('approved_qty IS NULL OR approved_qty >= 0', name='ck_transfer_items_approved_non_negative'),
    )

    request = db.relationship('TransferRequest', back_populates='items')

    def __repr__(self):
        return f'<TransferItem {self.item_type}:{self.item_id} req:{self.requested_qty} appr:{self.approved_qty}>'

    @property
    def effective_qty(self) -> int:
        """Quantity that moves on approval: the adjusted amount, else the requested one"""
        return self.approved_qty if self.approved_qty is not None else self.requested_qty

    def to_dict(self):
        return {
            'id': self.id,
            'position': self.position,
            'item_type': self.item_type,
            'item_id': self.item_id,
            'sku': self.sku,
            'requested_qty': self.requested_qty,
            'approved_qty': self.approved_qty,
        }
