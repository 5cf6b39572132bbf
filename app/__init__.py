import logging

from flask import Flask

from config import Config
from app.extensions import db, bcrypt, login_manager, migrate, mail


def create_app(config_class=Config, clients=None):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.debug and not app.testing:
        logging.basicConfig(level=logging.INFO,
                            format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    db.init_app(app)
    bcrypt.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    # models register the user loader and the tables
    from app import models  # noqa: F401

    from app.clients import init_clients
    init_clients(app, clients)

    from app.errors import register_error_handlers
    register_error_handlers(app)

    from app.routes.auth import auth as auth_blueprint
    app.register_blueprint(auth_blueprint, url_prefix='/auth')

    from app.routes.main import main as main_blueprint
    app.register_blueprint(main_blueprint)

    from app.routes.payments import payments as payments_blueprint
    app.register_blueprint(payments_blueprint)

    from app.routes.mobile import mobile as mobile_blueprint
    app.register_blueprint(mobile_blueprint)

    from app.routes.admin import admin as admin_blueprint
    app.register_blueprint(admin_blueprint, url_prefix='/admin')

    from app.commands import register_commands
    register_commands(app)

    return app
