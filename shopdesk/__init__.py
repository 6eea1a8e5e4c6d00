import logging

from flask import Flask, jsonify

from .config import Config
from .extensions import db, jwt, cors, migrate
from .errors import register_error_handlers
from .utils.log import configure_logging


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    config_object = config_object or Config
    app.config.from_object(config_object)
    config_object.init_app(app)

    configure_logging(app)

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}})
    migrate.init_app(app, db)

    register_error_handlers(app)

    # Register blueprints
    from .coupon import bp as coupon_bp; app.register_blueprint(coupon_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .category import bp as category_bp; app.register_blueprint(category_bp)
    from .product import bp as product_bp, storefront_bp; app.register_blueprint(product_bp); app.register_blueprint(storefront_bp)
    from .customer import bp as customer_bp; app.register_blueprint(customer_bp)
    from .overview import bp as overview_bp; app.register_blueprint(overview_bp)
    from .cart import bp as cart_bp; app.register_blueprint(cart_bp)
    from .account import bp as account_bp; app.register_blueprint(account_bp)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        from . import model  # noqa: F401  (register tables)

        log = logging.getLogger(__name__)
        log.debug("blueprints: %s", sorted(app.blueprints.keys()))
        for rule in app.url_map.iter_rules():
            log.debug("%s %s", sorted(rule.methods), rule.rule)
        db.create_all()

    return app
