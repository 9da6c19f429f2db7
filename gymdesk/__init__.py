"""Application factory and initialization"""
import logging
from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from config import config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()

def configure_logging(app):
    """Attach a stream handler to the root logger at the configured level"""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s [%(name)s] %(message)s'
        ))
        root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)

def create_app(config_name='default'):
    """Create and configure the Flask application"""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    # API clients get a 401 body instead of a login redirect
    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'No autorizado'}), 401

    # Register blueprints
    from gymdesk.auth import auth_bp
    from gymdesk.main import main_bp
    from gymdesk.clients import clients_bp
    from gymdesk.payments import payments_bp

    app.register_blueprint(auth_bp, url_prefix='/api')
    app.register_blueprint(main_bp, url_prefix='/api')
    app.register_blueprint(clients_bp, url_prefix='/api/clients')
    app.register_blueprint(payments_bp, url_prefix='/api/payments')

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'No encontrado'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Método no permitido'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error('Unhandled error on %s %s: %s', request.method, request.path, error)
        return jsonify({'error': 'Unexpected error'}), 500

    return app
