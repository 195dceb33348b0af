from flask import jsonify, request
from flask_login import current_user, login_required

from moneyflow.services import forecast
from moneyflow.utils.payload import first_of, json_body, to_bool, to_int

from . import forecast_bp


def _window(source, default):
    value = to_int(first_of(source, "months_window", "monthsWindow"), "months_window", required=False)
    return default if value is None else value


def _period_args():
    args = request.args
    return {
        "selected_month": first_of(args, "selected_month", "selectedMonth") or None,
        "months_window": _window(args, 1),
        "include_future": to_bool(first_of(args, "include_future", "includeFuture", default="true")),
    }


@forecast_bp.get("/forecast/totals")
@login_required
def forecast_totals():
    return jsonify(forecast.forecast_totals(current_user.id, **_period_args())), 200


@forecast_bp.post("/forecast/calc")
@login_required
def forecast_calc():
    data = json_body()
    budgets = forecast.calc_budgets(data.get("transactions") or [], _window(data, 3))
    return jsonify({"budgets": budgets}), 200


@forecast_bp.get("/shared-dashboards/forecast")
@login_required
def shared_forecast():
    owner_id = first_of(request.args, "owner_user_id", "ownerUserId")
    return jsonify(forecast.shared_forecast_totals(current_user.id, owner_id, **_period_args())), 200
