from flask import Blueprint

transactions_bp = Blueprint("transactions_bp", __name__, url_prefix="/api")

from . import routes  # noqa: E402
