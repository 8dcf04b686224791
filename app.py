import logging
import os

from config import config
from flask import Flask, jsonify
from flask_cors import CORS
from flask_login import LoginManager
from flask_migrate import Migrate


def configure_logging(level_name):
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger().setLevel(level)


def create_app(config_name=None):
    """Application factory pattern"""
    if config_name is None:
        config_name = os.getenv("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize CORS for the web frontend
    ALLOWED_ORIGINS = app.config["ALLOWED_ORIGINS"]

    CORS(
        app,
        resources={
            r"/api/*": {"origins": ALLOWED_ORIGINS},
            r"/auth/*": {"origins": ALLOWED_ORIGINS},
        },
        supports_credentials=True,
    )

    # Initialize SQLAlchemy
    from models import db

    db.init_app(app)

    # Initialize Flask-Migrate
    Migrate(app, db)

    # Initialize Flask-Login
    login_manager = LoginManager()
    login_manager.init_app(app)

    # Import all models to ensure they are registered with SQLAlchemy
    from models.language import Language  # noqa: F401
    from models.phrase import Phrase  # noqa: F401
    from models.user import User
    from models.user_phrase_progress import UserPhraseProgress  # noqa: F401
    from models.word_explanation import WordExplanation  # noqa: F401

    # User loader callback for Flask-Login
    @login_manager.user_loader
    def load_user(user_id):
        return User.query.get(int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"success": False, "error": "Authentication required"}), 401

    # Important-word allow-lists are loaded once and shared read-only
    from services.important_words import load_important_word_filter

    app.extensions["important_word_filter"] = load_important_word_filter(
        app.config.get("IMPORTANT_WORDS_FILE")
    )

    # Register blueprints
    from routes.api import bp as api_bp
    from routes.auth import bp as auth_bp
    from routes.phrases import bp as phrases_bp
    from routes.users import bp as users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(phrases_bp)

    # Home route
    @app.route("/")
    def home():
        return jsonify({"message": "Welcome to the Learning App API!", "version": "1.0.0"})

    # Health check route
    @app.route("/health")
    def health_check():
        try:
            db.session.execute(db.text("SELECT 1"))
            return jsonify({"status": "healthy", "database": "connected"}), 200
        except Exception as e:
            app.logger.error(f"Health check failed: {e}")
            return jsonify({"status": "unhealthy", "error": str(e)}), 500

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, port=5001)
