from flask import jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import select

from moneyflow.extensions import db
from moneyflow.models import Category
from moneyflow.models.finance import TRANSACTION_TYPES
from moneyflow.services.accounts import AccountPatch, account_json, create_account, list_accounts, update_account
from moneyflow.services.forecast import category_usage
from moneyflow.utils.payload import choice, json_body

from . import accounts_bp


@accounts_bp.get("/accounts")
@login_required
def accounts_index():
    return jsonify([account_json(a) for a in list_accounts(current_user.id)]), 200


@accounts_bp.post("/accounts")
@login_required
def accounts_create():
    account = create_account(current_user.id, json_body())
    db.session.commit()
    return jsonify(account_json(account)), 201


@accounts_bp.patch("/accounts/<int:account_id>")
@login_required
def accounts_update(account_id):
    account = update_account(current_user.id, account_id, AccountPatch.from_json(json_body()))
    db.session.commit()
    return jsonify(account_json(account)), 200


@accounts_bp.get("/categories")
@login_required
def categories_index():
    q = select(Category).order_by(Category.name)
    type_ = choice(request.args.get("type"), "type", TRANSACTION_TYPES, required=False)
    if type_:
        q = q.where(Category.type == type_)
    return jsonify([c.to_dict() for c in db.session.execute(q).scalars()]), 200


@accounts_bp.get("/categories/usage-stats")
@login_required
def categories_usage():
    type_ = choice(request.args.get("type"), "type", TRANSACTION_TYPES)
    return jsonify(category_usage(current_user.id, type_)), 200
