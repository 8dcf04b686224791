import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration class"""

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    DEBUG = os.getenv("DEBUG", "True") == "True"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # SQLAlchemy configuration
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI", "sqlite:///learning_app.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Comma-separated list of frontend origins
    ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173").split(",")

    # LLM configuration (model names: OPENAI_MODEL / MISTRAL_MODEL)
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")
    TTS_MODEL = os.getenv("TTS_MODEL", "tts-1")
    TTS_VOICE = os.getenv("TTS_VOICE", "alloy")

    # Word explanation coverage
    MAX_VALIDATION_PASSES = int(os.getenv("MAX_VALIDATION_PASSES", "3"))
    IMPORTANT_WORDS_FILE = os.getenv("IMPORTANT_WORDS_FILE")

    # Session security
    SESSION_COOKIE_HTTPONLY = True  # Prevent JavaScript access to session cookie
    SESSION_COOKIE_SAMESITE = "Lax"

    if os.getenv("SESSION_COOKIE_SAMESITE"):
        SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE")


class DevelopmentConfig(Config):
    """Development environment configuration"""

    DEBUG = True
    SESSION_COOKIE_SECURE = False  # Allow HTTP in development


class ProductionConfig(Config):
    """Production environment configuration"""

    DEBUG = False
    SESSION_COOKIE_SECURE = True  # Require HTTPS in production

    # Cross-domain frontends need SameSite=None, which requires Secure=True
    SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "None")

    # Flask-Login specific cookie settings
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SECURE = True
    REMEMBER_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "None")
    REMEMBER_COOKIE_DURATION = 2592000  # 30 days in seconds
    REMEMBER_COOKIE_PATH = "/"

    SESSION_COOKIE_PATH = "/"

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


class TestingConfig(Config):
    """Testing environment configuration"""

    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SESSION_COOKIE_SECURE = False
    IMPORTANT_WORDS_FILE = None
    MAX_VALIDATION_PASSES = 3


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
