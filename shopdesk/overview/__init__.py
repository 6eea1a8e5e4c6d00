from flask import Blueprint

bp = Blueprint("overview", __name__, url_prefix="/admin/overview")

from . import routes  # noqa: E402,F401
