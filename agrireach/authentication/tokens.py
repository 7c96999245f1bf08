# agrireach/authentication/tokens.py
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
import jwt
from flask import current_app
from werkzeug.security import generate_password_hash, check_password_hash

ALGORITHM = 'HS256'


class TokenKindError(jwt.InvalidTokenError):
    pass


def hash_password(plain):
    return generate_password_hash(plain, method=current_app.config['PASSWORD_HASH_METHOD'])


def verify_password(plain, hashed):
    if not plain or not hashed:
        return False
    try:
        return check_password_hash(hashed, plain)
    except ValueError:
        # Placeholder hashes (e.g. OAuth-only accounts) are not parseable
        return False


def hash_token(token):
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _secret(kind):
    key = 'JWT_ACCESS_SECRET' if kind == 'access' else 'JWT_REFRESH_SECRET'
    return current_app.config[key]


def _lifetime(kind):
    if kind == 'access':
        return timedelta(minutes=current_app.config['JWT_ACCESS_TTL_MIN'])
    return timedelta(days=current_app.config['JWT_REFRESH_TTL_DAYS'])


def sign_token(user_id, role, kind):
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(user_id),
        'role': role,
        'kind': kind,
        'iat': now,
        'exp': now + _lifetime(kind),
        'jti': secrets.token_hex(8),
    }
    return jwt.encode(payload, _secret(kind), algorithm=ALGORITHM)


def sign_access_token(user):
    return sign_token(user.id, user.role, 'access')


def sign_refresh_token(user):
    return sign_token(user.id, user.role, 'refresh')


def refresh_expiry():
    return datetime.now(timezone.utc).replace(tzinfo=None) + _lifetime('refresh')


def verify_token(token, kind):
    """Decode ``token`` and check it is of the expected kind.

    Raises ``jwt.InvalidTokenError`` (or a subclass) on any failure.
    """
    claims = jwt.decode(token, _secret(kind), algorithms=[ALGORITHM])
    if claims.get('kind') != kind:
        raise TokenKindError('Invalid token kind')
    if not claims.get('sub'):
        raise jwt.InvalidTokenError('Missing subject')
    return claims
