from flask import Blueprint

bp = Blueprint("product", __name__, url_prefix="/admin/products")
storefront_bp = Blueprint("storefront", __name__, url_prefix="/products")

from . import routes  # noqa: E402,F401
