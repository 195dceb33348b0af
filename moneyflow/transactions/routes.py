from flask import jsonify, request
from flask_login import current_user, login_required

from moneyflow.extensions import db
from moneyflow.services.transactions import (
    TransactionPatch, create_transaction, delete_transaction, list_transactions, update_transaction,
)
from moneyflow.utils.payload import json_body

from . import transactions_bp


@transactions_bp.get("/transactions")
@login_required
def transactions_index():
    rows = list_transactions(current_user.id, request.args)
    return jsonify([t.to_dict() for t in rows]), 200


@transactions_bp.post("/transactions")
@login_required
def transactions_create():
    txn = create_transaction(current_user.id, json_body())
    db.session.commit()
    return jsonify(txn.to_dict()), 201


@transactions_bp.patch("/transactions/<int:txn_id>")
@login_required
def transactions_update(txn_id):
    txn = update_transaction(current_user.id, txn_id, TransactionPatch.from_json(json_body()))
    db.session.commit()
    return jsonify(txn.to_dict()), 200


@transactions_bp.delete("/transactions/<int:txn_id>")
@login_required
def transactions_delete(txn_id):
    delete_transaction(current_user.id, txn_id)
    db.session.commit()
    return jsonify({"success": True}), 200
