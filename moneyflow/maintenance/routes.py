from flask import jsonify
from flask_login import current_user, login_required

from moneyflow.jobs.month_archive import close_month
from moneyflow.jobs.recurring import preview_recurring, process_recurring

from . import maintenance_bp


@maintenance_bp.post("/change-month")
@login_required
def change_month():
    result = close_month(current_user.id)
    return jsonify(result.to_dict()), 200


@maintenance_bp.get("/process-recurring")
@login_required
def process_recurring_preview():
    return jsonify(preview_recurring(current_user.id)), 200


@maintenance_bp.post("/process-recurring")
@login_required
def process_recurring_run():
    return jsonify(process_recurring(current_user.id).to_dict()), 200
