from flask import Blueprint

sharing_bp = Blueprint("sharing_bp", __name__, url_prefix="/api")

from . import routes  # noqa: E402
