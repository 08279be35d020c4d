from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from sqlalchemy import or_, select

from supplychain.business.core.constants import Department, ItemType, MovementType, TransferStatus
from supplychain.business.core.errors import AlreadyApproved, Forbidden, InvalidInput, NotFound, SameDept
from supplychain.business.core.validation import parse_department, require_int
from supplychain.business.events.change_notifier import TRANSFER_CHANGED, ChangeEvent
from supplychain.business.inventory.inventory_store import InventoryStore, StockAdjustment, StockLevel
from supplychain.business.transfers.commands import AdjustTransferCommand, TransferItemInput
from supplychain.business.transfers.status_validator import TransferStatusValidator
from supplychain.data.core.timestamped_base import utcnow
from supplychain.data.inventory.produced_good import ProducedGood
from supplychain.data.inventory.raw_material import RawMaterial
from supplychain.data.transfers.transfer_request import TransferItem, TransferRequest
from supplychain.logger import get_logger

logger = get_logger("supplychain.business.transfers")

_ITEM_MODELS = {
    ItemType.RAW: RawMaterial,
    ItemType.PRODUCED: ProducedGood,
}

ROLE_FULFILLING = "fulfilling"
ROLE_REQUESTING = "requesting"


@dataclass
class ApprovalResult:
    request: TransferRequest
    moved: bool
    levels: list[StockLevel] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "request": self.request.to_dict(),
            "moved": self.moved,
            "stock": [level.to_dict() for level in self.levels],
        }


class TransferWorkflow:
    """
    State machine over transfer requests.

    Stock only moves on approval, through the InventoryStore, in the same
    transaction that flips the request to APPROVED. The request row's version
    column serializes concurrent adjust/approve calls: the loser is retried,
    sees the committed state and either fails (adjust) or becomes a no-op (approve).
    """

    def __init__(self, store: InventoryStore):
        self.store = store
        self.session = store.session

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(self, from_dept, to_dept, items: Iterable[TransferItemInput | Mapping[str, Any]]) -> TransferRequest:
        source = parse_department(from_dept, "from_dept")
        destination = parse_department(to_dept, "to_dept")
        if source == destination:
            raise SameDept(f"A department cannot request stock from itself ({source.value}).")

        inputs = [
            item if isinstance(item, TransferItemInput) else TransferItemInput.from_payload(item)
            for item in (items or [])
        ]
        if not inputs:
            raise InvalidInput("A transfer request needs at least one item.")
        for item in inputs:
            require_int(item.requested_qty, "requested_qty", minimum=1, error_cls=InvalidInput)

        def work():
            request = TransferRequest(
                from_dept=source.value,
                to_dept=destination.value,
                status=TransferStatus.PENDING.value,
            )
            for position, item in enumerate(inputs):
                item_id, sku = self._resolve_item(item)
                request.items.append(TransferItem(
                    position=position,
                    item_type=ItemType(item.item_type).value,
                    item_id=item_id,
                    sku=sku,
                    requested_qty=item.requested_qty,
                    approved_qty=None,
                ))
            self.session.add(request)
            self.session.flush()
            self._stage(request)
            return request

        request = self.store.run_atomic(work, description=f"create transfer {source.value}->{destination.value}")
        logger.info(
            f"Transfer request {request.id} created: {source.value} -> {destination.value}, "
            f"{len(inputs)} item(s)",
            extra={"request_id": request.id, "department": source.value},
        )
        return request

    def adjust(self, request_id, actor_dept, new_approved_qty) -> TransferRequest:
        command = AdjustTransferCommand.from_payload(
            request_id, {'actor_dept': actor_dept, 'new_approved_qty': new_approved_qty}
        )
        return self.handle_adjust(command)

    def handle_adjust(self, command: AdjustTransferCommand) -> TransferRequest:
        """Set one approved quantity on every item of the request and mark it ADJUSTED"""
        def work():
            request = self._load(command.request_id)
            self._authorize(request, command.actor_dept, "adjust")
            if request.status == TransferStatus.APPROVED.value:
                raise AlreadyApproved(f"Transfer request {request.id} is already approved.")
            self._transition(request, TransferStatus.ADJUSTED)

            for item in request.items:
                item.approved_qty = command.new_approved_qty
            # Dirty the request row even on re-adjustment so the version check applies
            request.updated_at = utcnow()
            self.session.flush()
            self._stage(request)
            return request

        request = self.store.run_atomic(work, description=f"adjust transfer {command.request_id}")
        logger.info(
            f"Transfer request {request.id} adjusted by {command.actor_dept.value}: "
            f"approved_qty={command.new_approved_qty}",
            extra={"request_id": request.id, "department": command.actor_dept.value},
        )
        return request

    def approve(self, request_id, actor_dept) -> ApprovalResult:
        """
        Finalize the request and move its stock from from_dept to to_dept.

        Approving an already approved request is a no-op (``moved`` is False).
        """
        request_id = require_int(request_id, "request id", minimum=1, error_cls=InvalidInput)
        actor = parse_department(actor_dept, "actor_dept")

        def work():
            request = self._load(request_id)
            self._authorize(request, actor, "approve")
            if request.status == TransferStatus.APPROVED.value:
                return ApprovalResult(request, moved=False)

            # Claim the request first; a concurrent approver fails its version check here
            self._transition(request, TransferStatus.APPROVED)
            request.approved_at = utcnow()
            for item in request.items:
                item.approved_qty = item.effective_qty
            self.session.flush()

            adjustments = []
            for item in request.items:
                if item.approved_qty == 0:
                    continue
                kind = ItemType(item.item_type)
                adjustments.append(StockAdjustment(
                    kind, item.item_id, -item.approved_qty, Department(request.from_dept), MovementType.TRANSFER_OUT,
                ))
                adjustments.append(StockAdjustment(
                    kind, item.item_id, item.approved_qty, Department(request.to_dept), MovementType.TRANSFER_IN,
                ))

            levels = []
            if adjustments:
                levels = self.store.apply(
                    adjustments,
                    reference_type="transfer_request",
                    reference_id=request.id,
                    notes=f"Transfer {request.from_dept} -> {request.to_dept}",
                )
            self._stage(request)
            return ApprovalResult(request, moved=bool(adjustments), levels=levels)

        result = self.store.run_atomic(work, description=f"approve transfer {request_id}")
        if result.moved:
            logger.info(f"Transfer request {request_id} approved by {actor.value}; stock moved",
                        extra={"request_id": request_id, "department": actor.value})
        else:
            logger.info(f"Transfer request {request_id} approve by {actor.value}: nothing to move",
                        extra={"request_id": request_id, "department": actor.value})
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, request_id) -> TransferRequest:
        request_id = require_int(request_id, "request id", minimum=1, error_cls=InvalidInput)
        return self._load(request_id)

    def list_for_department(self, department, role: str | None = None) -> list[TransferRequest]:
        """
        Requests visible to a department.

        role "fulfilling": requests it must adjust/approve (from_dept);
        role "requesting": requests it raised (to_dept, read-only);
        no role: both.
        """
        dept = parse_department(department).value
        query = select(TransferRequest)
        if role == ROLE_FULFILLING:
            query = query.where(TransferRequest.from_dept == dept)
        elif role == ROLE_REQUESTING:
            query = query.where(TransferRequest.to_dept == dept)
        elif role is None:
            query = query.where(or_(TransferRequest.from_dept == dept, TransferRequest.to_dept == dept))
        else:
            raise InvalidInput(f"Invalid role {role!r}. Use '{ROLE_FULFILLING}' or '{ROLE_REQUESTING}'.")
        query = query.order_by(TransferRequest.created_at.desc(), TransferRequest.id.desc())
        return list(self.session.scalars(query))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, request_id: int) -> TransferRequest:
        request = self.session.get(TransferRequest, request_id)
        if request is None:
            raise NotFound(f"Transfer request {request_id} not found")
        return request

    @staticmethod
    def _authorize(request: TransferRequest, actor: Department, action: str) -> None:
        if actor.value != request.from_dept:
            raise Forbidden(
                f"Only {request.from_dept} may {action} transfer request {request.id}; "
                f"{actor.value} has read-only access."
            )

    @staticmethod
    def _transition(request: TransferRequest, new_status: TransferStatus) -> None:
        if not TransferStatusValidator.can_transition(request.status, new_status):
            raise AlreadyApproved(
                f"Transfer request {request.id} cannot move from {request.status} to {new_status.value}."
            )
        request.status = new_status.value

    def _resolve_item(self, item: TransferItemInput) -> tuple[int, str]:
        kind = ItemType(item.item_type)
        model = _ITEM_MODELS[kind]

        if item.item_id is not None:
            row = self.session.execute(select(model.id, model.sku).where(model.id == item.item_id)).first()
            if row is None:
                raise InvalidInput(f"{kind.value} item {item.item_id} does not exist.")
            if item.sku is not None and item.sku != row.sku:
                raise InvalidInput(f"{kind.value} item {item.item_id} has SKU {row.sku}, not {item.sku}.")
            return row.id, row.sku

        row = self.session.execute(select(model.id, model.sku).where(model.sku == item.sku)).first()
        if row is None:
            raise InvalidInput(f"No {kind.value} item with SKU {item.sku}.")
        return row.id, row.sku

    def _stage(self, request: TransferRequest) -> None:
        self.store.stage_event(ChangeEvent(
            topic=TRANSFER_CHANGED,
            entity_kind="TRANSFER_REQUEST",
            entity_id=request.id,
            version=request.version,
            payload={"status": request.status, "from_dept": request.from_dept, "to_dept": request.to_dept},
        ))
