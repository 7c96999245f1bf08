# agrireach/authentication/routes.py
import jwt
from flask import Blueprint, redirect
from flask_login import login_required, current_user
from agrireach.init_db import db, utcnow
from agrireach.api import (json_ok, json_error, validate_body, get_auth_token,
                           set_auth_cookies, clear_auth_cookies)
from agrireach.logging_config import setup_logging
from agrireach.authentication.models import User, UserSession
from agrireach.authentication.schemas import (VerifyRequest, OtpConfirmRequest, RegisterRequest, LoginRequest,
                                              EmailRequest, ResetPasswordRequest, ResendOtpRequest)
from agrireach.authentication.tokens import (hash_password, verify_password, hash_token, sign_access_token,
                                             sign_refresh_token, refresh_expiry, verify_token)
from agrireach.authentication.views import (issue_otp, find_matching_otp, consume_otps, otp_rate_limited,
                                            send_otp_email, login_with_google, handle_google_callback)


auth_bp = Blueprint('auth', __name__)

# Setup logging
logger = setup_logging()

REGISTRATION_OTP_MINUTES = 60
PASSWORD_RESET_OTP_MINUTES = 30
RESEND_OTP_MINUTES = 10


def start_session(user):
    access_token = sign_access_token(user)
    refresh_token = sign_refresh_token(user)
    db.session.add(UserSession(user_id=user.id, token_hash=hash_token(refresh_token), expires_at=refresh_expiry()))
    db.session.commit()
    return access_token, refresh_token


@auth_bp.route('/verify/request', methods=['POST'])
def verify_request():
    payload, error = validate_body(VerifyRequest)
    if error:
        return error

    existing = User.query.filter_by(email=payload.email).first()
    if existing and existing.verified:
        logger.warning(f"Verification requested for registered email: {payload.email}")
        return json_error('Email already registered', 409)

    otp = issue_otp(payload.email, 'registration', REGISTRATION_OTP_MINUTES,
                    user_id=existing.id if existing else None)
    if not send_otp_email(payload.email, otp, 'registration', REGISTRATION_OTP_MINUTES, name=payload.name):
        return json_error('Failed to send email', 500)

    logger.info(f"Registration code sent to {payload.email}.")
    return json_ok({})


@auth_bp.route('/verify/confirm', methods=['POST'])
def verify_confirm():
    payload, error = validate_body(OtpConfirmRequest)
    if error:
        return error

    user = User.query.filter_by(email=payload.email).first()
    if not user:
        return json_error('Invalid token', 400)
    if user.verified:
        return json_ok({})

    if not find_matching_otp(payload.email, 'registration', payload.token):
        logger.warning(f"Invalid verification code for {payload.email}")
        return json_error('Invalid or expired token', 400)

    user.verified = True
    consume_otps(payload.email, 'registration')
    db.session.commit()

    logger.info(f"User {payload.email} verified their email.")
    return json_ok({})


@auth_bp.route('/register', methods=['POST'])
def register():
    payload, error = validate_body(RegisterRequest)
    if error:
        return error

    if User.query.filter_by(email=payload.email).first():
        logger.warning(f"Signup attempt with existing email: {payload.email}")
        return json_error('Email already registered', 409)

    if not find_matching_otp(payload.email, 'registration', payload.token):
        return json_error('Invalid or expired code', 400)

    try:
        consume_otps(payload.email, 'registration')
        user = User(email=payload.email, full_name=payload.name,
                    password_hash=hash_password(payload.password), verified=True)
        user.set_roles([payload.role])
        db.session.add(user)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error during signup: {e}")
        return json_error('An error occurred during signup.', 500)

    logger.info(f"New user {payload.email} signed up successfully.")
    return json_ok({'id': user.id, 'email': user.email, 'full_name': user.full_name, 'role': user.role}, 201)


@auth_bp.route('/login', methods=['POST'])
def login():
    payload, error = validate_body(LoginRequest)
    if error:
        return error

    user = User.query.filter_by(email=payload.email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning(f"Failed login attempt for email: {payload.email}")
        return json_error('Invalid credentials', 401)

    if not user.is_active:
        logger.warning(f"Login attempt on {user.status} account: {payload.email}")
        return json_error(f'Account is {user.status}', 403)

    user.last_login = utcnow()
    access_token, refresh_token = start_session(user)

    logger.info(f"User {payload.email} logged in successfully.")
    response, status = json_ok({'accessToken': access_token, 'refreshToken': refresh_token,
                                'user': user.to_dict(private=True)})
    return set_auth_cookies(response, access_token, refresh_token), status


@auth_bp.route('/refresh', methods=['POST'])
def refresh():
    token = get_auth_token('refresh')
    if not token:
        return json_error('Missing token', 401)
    try:
        claims = verify_token(token, 'refresh')
    except jwt.InvalidTokenError:
        return json_error('Invalid token', 401)

    session = UserSession.query.filter_by(token_hash=hash_token(token)).first()
    if not session or session.expires_at <= utcnow() or str(session.user_id) != claims['sub']:
        return json_error('Session not found or expired', 401)

    user = db.session.get(User, session.user_id)
    if not user or not user.is_active:
        return json_error('Session not found or expired', 401)

    # Rotate
    db.session.delete(session)
    access_token, refresh_token = start_session(user)

    response, status = json_ok({'accessToken': access_token})
    return set_auth_cookies(response, access_token, refresh_token), status


@auth_bp.route('/logout', methods=['POST'])
def logout():
    token = get_auth_token('refresh')
    if token:
        try:
            verify_token(token, 'refresh')
            UserSession.query.filter_by(token_hash=hash_token(token)).delete(synchronize_session=False)
            db.session.commit()
        except jwt.InvalidTokenError:
            logger.info("Logout with an invalid refresh token; clearing cookies only.")

    response, status = json_ok({})
    return clear_auth_cookies(response), status


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return json_ok({'user': current_user.to_dict(private=True)})


@auth_bp.route('/forgot-password', methods=['POST'])
def forgot_password():
    payload, error = validate_body(EmailRequest)
    if error:
        return error

    user = User.query.filter_by(email=payload.email).first()
    if not user:
        return json_ok({})

    otp = issue_otp(payload.email, 'password_reset', PASSWORD_RESET_OTP_MINUTES, user_id=user.id)
    if not send_otp_email(payload.email, otp, 'password_reset', PASSWORD_RESET_OTP_MINUTES, name=user.full_name):
        return json_error('Failed to send reset email', 500)

    return json_ok({'message': 'Password reset code sent successfully'})


@auth_bp.route('/verify-reset-code', methods=['POST'])
def verify_reset_code():
    payload, error = validate_body(OtpConfirmRequest)
    if error:
        return error

    if not User.query.filter_by(email=payload.email).first():
        return json_error('Invalid email', 400)

    if not find_matching_otp(payload.email, 'password_reset', payload.token):
        return json_error('Invalid or expired code', 400)

    return json_ok({'message': 'Code verified successfully'})


@auth_bp.route('/reset-password', methods=['POST'])
def reset_password():
    payload, error = validate_body(ResetPasswordRequest)
    if error:
        return error

    user = User.query.filter_by(email=payload.email).first()
    if not user:
        return json_error('Invalid token', 400)

    if not find_matching_otp(payload.email, 'password_reset', payload.token):
        logger.warning(f"Invalid password reset code for {payload.email}")
        return json_error('Invalid or expired token', 400)

    user.password_hash = hash_password(payload.new_password)
    consume_otps(payload.email, 'password_reset')
    UserSession.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    db.session.commit()

    logger.info(f"Password reset for {payload.email}.")
    return json_ok({})


@auth_bp.route('/resend-otp', methods=['POST'])
def resend_otp():
    payload, error = validate_body(ResendOtpRequest)
    if error:
        return error

    if otp_rate_limited(payload.email, payload.type):
        return json_error('Too many requests. Please wait 15 minutes.', 429)

    otp = issue_otp(payload.email, payload.type, RESEND_OTP_MINUTES)
    if not send_otp_email(payload.email, otp, payload.type, RESEND_OTP_MINUTES):
        return json_error('Failed to send email', 500)

    return json_ok({'message': 'OTP sent successfully'})


@auth_bp.route('/google')
def google_login():
    request_uri, error = login_with_google()
    if error:
        return json_error(error, 500)
    return redirect(request_uri)


@auth_bp.route('/google/callback')
def google_callback():
    user, error = handle_google_callback()
    if error:
        return json_error(error, 401)

    user.last_login = utcnow()
    access_token, refresh_token = start_session(user)
    return set_auth_cookies(redirect('/'), access_token, refresh_token)
