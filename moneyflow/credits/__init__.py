from flask import Blueprint

credits_bp = Blueprint("credits_bp", __name__, url_prefix="/api")

from . import routes  # noqa: E402
