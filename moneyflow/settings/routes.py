from flask import Response, jsonify, request
from flask_login import current_user, login_required

from moneyflow.extensions import db
from moneyflow.models import UserSettings
from moneyflow.services import export
from moneyflow.utils import dates
from moneyflow.utils.payload import choice, first_of, json_body, to_date, to_decimal

from . import settings_bp


@settings_bp.get("/settings")
@login_required
def settings_get():
    row = db.session.get(UserSettings, current_user.id)
    return jsonify(row.to_dict() if row else {}), 200


@settings_bp.patch("/settings")
@login_required
def settings_update():
    data = json_body()
    row = db.session.get(UserSettings, current_user.id)
    if row is None:
        row = UserSettings(user_id=current_user.id)
        db.session.add(row)
    if "spend_targets" in data:
        row.spend_targets = data["spend_targets"]
    if "savings_rate" in data:
        row.savings_rate = to_decimal(data["savings_rate"], "savings_rate", required=False)
    db.session.commit()
    return jsonify({"success": True, **row.to_dict()}), 200


@settings_bp.get("/export")
@login_required
def export_data():
    args = request.args
    fmt = choice(args.get("format") or "csv", "format", export.EXPORT_FORMATS)
    kind = choice(args.get("type") or "all", "type", export.EXPORT_TYPES)
    start = to_date(first_of(args, "start", "startDate"), "start", required=False)
    end = to_date(first_of(args, "end", "endDate"), "end", required=False)

    accounts, transactions = export.collect(current_user.id, start, end)
    if fmt == "json":
        return jsonify({**export.to_json(accounts, transactions, kind), "export_date": dates.today().isoformat()}), 200

    fname = f"moneyflow-export-{dates.today().isoformat()}.csv"
    headers = {"Content-Disposition": f'attachment; filename="{fname}"'}
    return Response(export.to_csv(accounts, transactions, kind), 200, headers=headers, mimetype="text/csv")
