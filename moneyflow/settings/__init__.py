from flask import Blueprint

settings_bp = Blueprint("settings_bp", __name__, url_prefix="/api")

from . import routes  # noqa: E402
