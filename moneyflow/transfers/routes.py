from flask import jsonify
from flask_login import current_user, login_required

from moneyflow.extensions import db
from moneyflow.services.transfers import create_transfer, delete_transfer, list_transfers
from moneyflow.utils.payload import json_body

from . import transfers_bp


@transfers_bp.get("/transfers")
@login_required
def transfers_index():
    return jsonify([t.to_dict() for t in list_transfers(current_user.id)]), 200


@transfers_bp.post("/transfers")
@login_required
def transfers_create():
    transfer = create_transfer(current_user.id, json_body())
    db.session.commit()
    return jsonify(transfer.to_dict()), 201


@transfers_bp.delete("/transfers/<int:transfer_id>")
@login_required
def transfers_delete(transfer_id):
    delete_transfer(current_user.id, transfer_id)
    db.session.commit()
    return jsonify({"success": True}), 200
