from __future__ import annotations

from supplychain.business.core.constants import TransferStatus


class TransferStatusValidator:
    """
    Status transition rules for transfer requests.

    APPROVED is terminal. ADJUSTED -> ADJUSTED is a re-adjustment by the
    fulfilling department, not a regression.
    """

    _NEXT = {
        TransferStatus.PENDING: {TransferStatus.ADJUSTED, TransferStatus.APPROVED},
        TransferStatus.ADJUSTED: {TransferStatus.ADJUSTED, TransferStatus.APPROVED},
        TransferStatus.APPROVED: set(),
    }

    @classmethod
    def can_transition(cls, current_status, new_status) -> bool:
        current = TransferStatus(current_status)
        new = TransferStatus(new_status)
        return new in cls._NEXT[current]

    @classmethod
    def is_terminal(cls, status) -> bool:
        return not cls._NEXT[TransferStatus(status)]
