from flask import jsonify
from flask_login import current_user, login_required
from sqlalchemy import select

from moneyflow.extensions import db
from moneyflow.models import Credit
from moneyflow.services import loans
from moneyflow.utils.payload import json_body

from . import credits_bp


@credits_bp.get("/credits")
@login_required
def credits_index():
    rows = db.session.execute(
        select(Credit).where(Credit.user_id == current_user.id).order_by(Credit.created_at.desc())
    ).scalars()
    return jsonify([c.to_dict() for c in rows]), 200


@credits_bp.post("/credits")
@login_required
def credits_create():
    credit = loans.create_credit(current_user.id, json_body())
    db.session.commit()
    return jsonify(credit.to_dict()), 201


@credits_bp.patch("/credits/<int:credit_id>")
@login_required
def credits_update(credit_id):
    credit = loans.get_credit(current_user.id, credit_id)
    loans.CreditPatch.from_json(json_body()).apply(credit)
    db.session.commit()
    return jsonify(credit.to_dict()), 200


@credits_bp.delete("/credits/<int:credit_id>")
@login_required
def credits_delete(credit_id):
    loans.delete_credit(current_user.id, credit_id)
    db.session.commit()
    return jsonify({"success": True}), 200


@credits_bp.post("/credits/<int:credit_id>/repay")
@login_required
def credits_repay(credit_id):
    txn, credit = loans.repay(current_user.id, credit_id, json_body())
    db.session.commit()
    return jsonify({"transaction": txn.to_dict(), "credit": credit.to_dict()}), 201
