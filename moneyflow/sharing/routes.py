from flask import jsonify
from flask_login import current_user, login_required

from moneyflow.extensions import db
from moneyflow.services import sharing
from moneyflow.services.transactions import (
    TransactionPatch, create_transaction, delete_transaction, update_transaction,
)
from moneyflow.utils.payload import json_body

from . import sharing_bp


# ---- owner side -------------------------------------------------------------

@sharing_bp.get("/shares")
@login_required
def shares_index():
    return jsonify(sharing.list_shares(current_user.id)), 200


@sharing_bp.post("/shares")
@login_required
def shares_create():
    data = json_body()
    share = sharing.create_share(current_user.id, data.get("username"), data.get("permission") or "view")
    db.session.commit()
    return jsonify(share.to_dict()), 201


@sharing_bp.patch("/shares/<int:share_id>")
@login_required
def shares_update(share_id):
    share = sharing.update_share(current_user.id, share_id, json_body().get("permission"))
    db.session.commit()
    return jsonify(share.to_dict()), 200


@sharing_bp.delete("/shares/<int:share_id>")
@login_required
def shares_delete(share_id):
    sharing.revoke_share(current_user.id, share_id)
    db.session.commit()
    return jsonify({"success": True}), 200


# ---- recipient side ---------------------------------------------------------

@sharing_bp.get("/shared-dashboards")
@login_required
def shared_dashboards():
    return jsonify(sharing.dashboards_for(current_user.id)), 200


@sharing_bp.post("/shared-dashboards/transactions")
@login_required
def shared_transactions_create():
    txn = create_transaction(current_user.id, json_body())
    db.session.commit()
    return jsonify(txn.to_dict()), 201


@sharing_bp.patch("/shared-dashboards/transactions/<int:txn_id>")
@login_required
def shared_transactions_update(txn_id):
    txn = update_transaction(current_user.id, txn_id, TransactionPatch.from_json(json_body()))
    db.session.commit()
    return jsonify(txn.to_dict()), 200


@sharing_bp.delete("/shared-dashboards/transactions/<int:txn_id>")
@login_required
def shared_transactions_delete(txn_id):
    delete_transaction(current_user.id, txn_id)
    db.session.commit()
    return jsonify({"success": True}), 200
