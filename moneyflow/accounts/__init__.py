from flask import Blueprint

accounts_bp = Blueprint("accounts_bp", __name__, url_prefix="/api")

from . import routes  # noqa: E402
