from flask import Blueprint

forecast_bp = Blueprint("forecast_bp", __name__, url_prefix="/api")

from . import routes  # noqa: E402
