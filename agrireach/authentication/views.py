# agrireach/authentication/views.py
import json
import secrets
from datetime import timedelta
import requests
import sib_api_v3_sdk
from flask import current_app, request
from sqlalchemy.exc import OperationalError
from sib_api_v3_sdk.rest import ApiException
from werkzeug.security import generate_password_hash, check_password_hash
from oauthlib.oauth2 import WebApplicationClient
from agrireach.init_db import db, utcnow
from agrireach.authentication.models import User, OtpCode
from agrireach.authentication.tokens import hash_password
from agrireach.logging_config import setup_logging

logger = setup_logging()

OTP_MATCH_WINDOW = 5
OTP_RATE_LIMIT = 3
OTP_RATE_WINDOW_MINUTES = 15

# Lazily created, shared by every request in the process
_email_api = None


def load_json_config(config_key, label):
    try:
        json_path = current_app.config[config_key]
        with open(json_path, 'r') as f:
            return json.load(f)
    except FileNotFoundError:
        logger.warning(f"{label} configuration file not found.")
        return None
    except json.JSONDecodeError:
        logger.error(f"Error decoding the {label} configuration file.")
        return None


def load_email_config():
    return load_json_config('EMAIL_CONFIG_PATH', 'Email')


def load_google_auth_config():
    return load_json_config('GOOGLE_AUTH_CONFIG_PATH', 'Google auth')


# Google OAuth

def get_google_client():
    google_auth_config = load_google_auth_config()
    if not google_auth_config or not google_auth_config.get('google_client_id'):
        return None, None
    return WebApplicationClient(google_auth_config['google_client_id']), google_auth_config


def get_google_provider_cfg(google_auth_config):
    return requests.get(google_auth_config['google_discovery_url'], timeout=10).json()


def login_with_google():
    google_client, google_auth_config = get_google_client()
    if not google_client:
        return None, "Google OAuth client is not configured."

    google_provider_cfg = get_google_provider_cfg(google_auth_config)
    authorization_endpoint = google_provider_cfg["authorization_endpoint"]

    request_uri = google_client.prepare_request_uri(
        authorization_endpoint,
        redirect_uri=request.base_url + "/callback",
        scope=["openid", "email", "profile"],
        state=request.args.get('role', 'buyer'),
    )
    return request_uri, None


def handle_google_callback():
    google_client, google_auth_config = get_google_client()
    if not google_client:
        return None, "Google OAuth client is not configured."

    code = request.args.get("code")
    google_provider_cfg = get_google_provider_cfg(google_auth_config)
    token_endpoint = google_provider_cfg["token_endpoint"]

    token_url, headers, body = google_client.prepare_token_request(
        token_endpoint,
        authorization_response=request.url,
        redirect_url=request.base_url,
        code=code
    )
    token_response = requests.post(
        token_url,
        headers=headers,
        data=body,
        auth=(google_auth_config['google_client_id'], google_auth_config['google_client_secret']),
        timeout=10,
    )

    google_client.parse_request_body_response(json.dumps(token_response.json()))

    userinfo_endpoint = google_provider_cfg["userinfo_endpoint"]
    uri, headers, body = google_client.add_token(userinfo_endpoint)
    user_info = requests.get(uri, headers=headers, data=body, timeout=10).json()

    if not user_info.get("email_verified"):
        return None, "User email not available or not verified by Google."

    users_email = user_info["email"].lower()
    user = User.query.filter_by(email=users_email).first()

    if not user:
        role = request.args.get('state') if request.args.get('state') in ('worker', 'recruiter', 'buyer') else 'buyer'
        user = User(
            email=users_email,
            full_name=user_info.get("name") or users_email.split('@')[0],
            # Never used for password login
            password_hash=generate_password_hash(secrets.token_hex(16), method=current_app.config['PASSWORD_HASH_METHOD']),
            avatar_url=user_info.get("picture"),
            verified=True,
        )
        user.set_roles([role])
        db.session.add(user)
        db.session.commit()
        logger.info(f"Created account for Google user {users_email}.")

    if not user.is_active:
        return None, "Account is not active."

    return user, None


def create_admin_users():
    try:
        admin_data = load_json_config('ADMIN_USERS_PATH', 'Admin user')
        if not admin_data:
            return

        for admin_details in admin_data.get('admins', []):
            email = admin_details['email'].lower()
            admin_user = User.query.filter_by(email=email).first()
            if admin_user is None:
                admin_user = User(
                    full_name=admin_details['name'],
                    email=email,
                    password_hash=hash_password(admin_details['password']),
                    verified=True,
                )
                admin_user.set_roles(['admin'])
                db.session.add(admin_user)
                logger.info(f"Admin user '{admin_details['name']}' created successfully.")
            else:
                logger.info(f"Admin user '{admin_details['name']}' already exists.")

        db.session.commit()
    except KeyError as e:
        logger.error(f"Admin user entry is missing field {e}.")
    except OperationalError as e:
        logger.error(f"OperationalError when creating admin users: {e}")


# One-time codes

def generate_otp():
    return f"{100000 + secrets.randbelow(900000)}"


def purge_expired_otps():
    OtpCode.query.filter(OtpCode.expires_at < utcnow() - timedelta(days=1)).delete(synchronize_session=False)


def issue_otp(email, otp_type, ttl_minutes, user_id=None):
    """Create a hashed code for ``email`` and return the plain code."""
    purge_expired_otps()
    otp = generate_otp()
    record = OtpCode(
        user_id=user_id,
        email=email,
        code=generate_password_hash(otp, method=current_app.config['PASSWORD_HASH_METHOD']),
        type=otp_type,
        expires_at=utcnow() + timedelta(minutes=ttl_minutes),
        used=False,
    )
    db.session.add(record)
    db.session.commit()
    return otp


def otp_rate_limited(email, otp_type):
    since = utcnow() - timedelta(minutes=OTP_RATE_WINDOW_MINUTES)
    recent = OtpCode.query.filter(OtpCode.email == email, OtpCode.type == otp_type,
                                  OtpCode.created_at >= since).count()
    return recent >= OTP_RATE_LIMIT


def find_matching_otp(email, otp_type, otp):
    """Return the newest unused, unexpired code matching ``otp`` or None."""
    records = (OtpCode.query
               .filter_by(email=email, type=otp_type, used=False)
               .order_by(OtpCode.created_at.desc(), OtpCode.id.desc())
               .limit(OTP_MATCH_WINDOW)
               .all())
    now = utcnow()
    for record in records:
        if check_password_hash(record.code, str(otp)) and record.expires_at > now:
            return record
    return None


def consume_otps(email, otp_type):
    # Caller commits
    OtpCode.query.filter_by(email=email, type=otp_type, used=False).update(
        {'used': True}, synchronize_session=False)


# Email

OTP_EMAIL_SUBJECTS = {
    'registration': 'Verify your email address',
    'password_reset': 'Your password reset code',
    'checkout': 'Confirm your order',
}


def get_email_api():
    global _email_api
    if _email_api is None:
        email_config = load_email_config()
        if not email_config or not email_config.get('api_key'):
            return None, None
        configuration = sib_api_v3_sdk.Configuration()
        configuration.api_key['api-key'] = email_config['api_key']
        api_client = sib_api_v3_sdk.ApiClient(configuration)
        _email_api = (sib_api_v3_sdk.TransactionalEmailsApi(api_client), email_config)
    return _email_api


def send_mail(to_email, subject, html_content, text_content=None, to_name=None):
    if current_app.config.get('MAIL_SUPPRESS_SEND'):
        logger.info(f"Mail suppressed: '{subject}' to {to_email}")
        return True

    api_instance, email_config = get_email_api()
    if api_instance is None:
        logger.error("Email delivery is not configured.")
        return False

    send_smtp_email = sib_api_v3_sdk.SendSmtpEmail(
        to=[{"email": to_email, "name": to_name or to_email}],
        sender={"name": email_config.get('sender_name', current_app.config['APP_NAME']),
                "email": email_config['sender_email']},
        subject=subject,
        html_content=html_content,
        text_content=text_content,
    )
    try:
        api_response = api_instance.send_transac_email(send_smtp_email)
        logger.info(f"Email sent successfully: {api_response}")
        return True
    except ApiException as e:
        logger.error(f"Exception when calling TransactionalEmailsApi->send_transac_email: {e}")
        return False


def send_otp_email(email, otp, otp_type, expire_minutes, name=None, amount=None):
    app_name = current_app.config['APP_NAME']
    greeting = f"Dear {name}," if name else "Hello,"
    if otp_type == 'checkout':
        purpose = f"to confirm your order of PHP {amount:,.2f}" if amount is not None else "to confirm your order"
    elif otp_type == 'password_reset':
        purpose = "to reset your password"
    else:
        purpose = "to verify your email address"

    subject = f"{app_name}: {OTP_EMAIL_SUBJECTS.get(otp_type, 'Your verification code')}"
    html = (f"{greeting}<br>Use the code <strong>{otp}</strong> {purpose}. "
            f"This code is valid for {expire_minutes} minutes.<br><br>Warm Regards,<br>The {app_name} Team")
    text = (f"{greeting}\nUse the code {otp} {purpose}. "
            f"This code is valid for {expire_minutes} minutes.\n\nThe {app_name} Team")
    return send_mail(email, subject, html, text, to_name=name)
