from flask import Blueprint

transfers_bp = Blueprint("transfers_bp", __name__, url_prefix="/api")

from . import routes  # noqa: E402
