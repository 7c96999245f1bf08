# agrireach/config.py
import os
import binascii


def _env_bool(name, default=False):
    return os.environ.get(name, str(default)).strip().lower() in ('1', 'true', 'yes')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or binascii.hexlify(os.urandom(24)).decode()

    BASE_DIR = os.path.abspath(os.path.dirname(__file__))

    DATABASE_PATH = os.path.join(BASE_DIR, 'agrireach.db')

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', f'sqlite:///{DATABASE_PATH}')

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tokens
    JWT_ACCESS_SECRET = os.environ.get('JWT_ACCESS_SECRET', 'dev-access-secret-change-me')
    JWT_REFRESH_SECRET = os.environ.get('JWT_REFRESH_SECRET', 'dev-refresh-secret-change-me')
    JWT_ACCESS_TTL_MIN = int(os.environ.get('JWT_ACCESS_TTL_MIN', '15'))
    JWT_REFRESH_TTL_DAYS = int(os.environ.get('JWT_REFRESH_TTL_DAYS', '7'))

    ACCESS_TOKEN_COOKIE = os.environ.get('ACCESS_TOKEN_COOKIE', 'agrireach_at')
    REFRESH_TOKEN_COOKIE = os.environ.get('REFRESH_TOKEN_COOKIE', 'agrireach_rt')
    COOKIE_SECURE = _env_bool('COOKIE_SECURE')
    COOKIE_DOMAIN = os.environ.get('COOKIE_DOMAIN') or None

    PASSWORD_HASH_METHOD = os.environ.get('PASSWORD_HASH_METHOD', 'pbkdf2:sha256')

    # JSON side files
    EMAIL_CONFIG_PATH = os.environ.get('EMAIL_CONFIG_PATH', os.path.join(BASE_DIR, 'email_config.json'))
    GOOGLE_AUTH_CONFIG_PATH = os.environ.get('GOOGLE_AUTH_CONFIG_PATH', os.path.join(BASE_DIR, 'google_auth_config.json'))
    ADMIN_USERS_PATH = os.environ.get('ADMIN_USERS_PATH', os.path.join(BASE_DIR, 'admin_user.json'))

    MAIL_SUPPRESS_SEND = _env_bool('MAIL_SUPPRESS_SEND')
    APP_NAME = 'AgriReach'

    # Uploads
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(BASE_DIR, 'uploads'))
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_UPLOAD_MB', '10')) * 1024 * 1024

    # Realtime
    PUSHER_APP_ID = os.environ.get('PUSHER_APP_ID')
    PUSHER_KEY = os.environ.get('PUSHER_KEY')
    PUSHER_SECRET = os.environ.get('PUSHER_SECRET')
    PUSHER_CLUSTER = os.environ.get('PUSHER_CLUSTER', 'ap1')

    # Translation
    GOOGLE_TRANSLATION_API_KEY = os.environ.get('GOOGLE_TRANSLATION_API_KEY')
    TRANSLATION_API_URL = os.environ.get('TRANSLATION_API_URL', 'https://translation.googleapis.com/language/translate/v2')
    TRANSLATION_TIMEOUT = 10


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'testing-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    JWT_ACCESS_SECRET = 'testing-access-secret'
    JWT_REFRESH_SECRET = 'testing-refresh-secret'
    PASSWORD_HASH_METHOD = 'pbkdf2:sha256:1000'
    MAIL_SUPPRESS_SEND = True
    EMAIL_CONFIG_PATH = os.path.join(Config.BASE_DIR, 'missing_email_config.json')
    GOOGLE_AUTH_CONFIG_PATH = os.path.join(Config.BASE_DIR, 'missing_google_auth_config.json')
    ADMIN_USERS_PATH = os.path.join(Config.BASE_DIR, 'missing_admin_user.json')
    PUSHER_APP_ID = None
    PUSHER_KEY = None
    PUSHER_SECRET = None
    GOOGLE_TRANSLATION_API_KEY = None
