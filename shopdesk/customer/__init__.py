from flask import Blueprint

bp = Blueprint("customer", __name__, url_prefix="/admin/customers")

from . import routes  # noqa: E402,F401
