from flask import jsonify, request

from supplychain.business.transfers.commands import AdjustTransferCommand, CreateTransferCommand
from supplychain.presentation.routes import api_bp, json_body
from supplychain.presentation.routes.services import transfer_workflow


@api_bp.post('/transfers')
def create_transfer():
    command = CreateTransferCommand.from_payload(json_body())
    transfer = transfer_workflow().create(command.from_dept, command.to_dept, command.items)
    return jsonify(transfer.to_dict()), 201


@api_bp.get('/transfers')
def list_transfers():
    """Requests for ?department=, optionally narrowed with ?role=fulfilling|requesting"""
    transfers = transfer_workflow().list_for_department(
        request.args.get('department'),
        role=request.args.get('role'),
    )
    return jsonify([t.to_dict() for t in transfers])


@api_bp.get('/transfers/<int:request_id>')
def get_transfer(request_id):
    return jsonify(transfer_workflow().get(request_id).to_dict())


@api_bp.post('/transfers/<int:request_id>/adjust')
def adjust_transfer(request_id):
    command = AdjustTransferCommand.from_payload(request_id, json_body())
    transfer = transfer_workflow().handle_adjust(command)
    return jsonify(transfer.to_dict())


@api_bp.post('/transfers/<int:request_id>/approve')
def approve_transfer(request_id):
    result = transfer_workflow().approve(request_id, json_body().get('actor_dept'))
    return jsonify(result.to_dict())
