# agrireach/app_factory.py
import jwt
from flask import Flask, g
from flask_login import LoginManager
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException
from agrireach.init_db import db
from agrireach.api import json_ok, json_error, get_auth_token
from agrireach.logging_config import setup_logging
from agrireach.authentication.models import User
from agrireach.authentication.tokens import verify_token
from agrireach.authentication.views import create_admin_users

logger = setup_logging()


def create_app(config_class='agrireach.config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)

    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.request_loader
    def load_user_from_request(request):
        token = get_auth_token('access', request)
        if not token:
            return None
        try:
            claims = verify_token(token, 'access')
            user = db.session.get(User, int(claims['sub']))
        except (jwt.InvalidTokenError, ValueError):
            return None
        if not user or not user.is_active:
            return None
        g.token_claims = claims
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return json_error('Unauthorized', 401)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return json_error(e.name, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        logger.exception(f"Unhandled error: {e}")
        return json_error('Internal server error', 500)

    @app.route('/api/health')
    def health():
        try:
            db.session.execute(text('SELECT 1'))
            database = 'connected'
        except OperationalError as e:
            logger.error(f"Health check database error: {e}")
            database = 'unavailable'
        return json_ok({'backend': 'running', 'database': database})

    # Import and register blueprints
    from agrireach.authentication.routes import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    from agrireach.users.routes import users_bp
    app.register_blueprint(users_bp, url_prefix='/api/users')

    from agrireach.farmers.routes import farmers_bp
    app.register_blueprint(farmers_bp, url_prefix='/api/farmers')

    from agrireach.opportunities.routes import opportunities_bp
    app.register_blueprint(opportunities_bp, url_prefix='/api/opportunities')

    from agrireach.community.routes import community_bp
    app.register_blueprint(community_bp, url_prefix='/api/community')

    from agrireach.marketplace.routes import marketplace_bp
    app.register_blueprint(marketplace_bp, url_prefix='/api/marketplace')

    from agrireach.notifications.routes import notifications_bp
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')

    from agrireach.chat.routes import chat_bp, pusher_bp
    app.register_blueprint(chat_bp, url_prefix='/api/chat')
    app.register_blueprint(pusher_bp, url_prefix='/api/pusher')

    from agrireach.uploads.routes import uploads_bp
    app.register_blueprint(uploads_bp, url_prefix='/api/upload')

    from agrireach.translation.routes import translation_bp
    app.register_blueprint(translation_bp, url_prefix='/api/translate')

    from agrireach.admin.routes import admin_bp, reports_bp
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(reports_bp, url_prefix='/api/reports')

    with app.app_context():
        try:
            db.create_all()
            create_admin_users()
        except OperationalError as e:
            logger.error(f"OperationalError during database initialization: {e}")

    return app
