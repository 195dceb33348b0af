from flask import Blueprint

maintenance_bp = Blueprint("maintenance_bp", __name__, url_prefix="/api")

from . import routes  # noqa: E402
