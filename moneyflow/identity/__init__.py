from flask import Blueprint

identity_bp = Blueprint("identity_bp", __name__)

from . import routes  # noqa: E402
