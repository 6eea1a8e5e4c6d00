from flask import Blueprint

bp = Blueprint("category", __name__, url_prefix="/admin/categories")

from . import routes  # noqa: E402,F401
