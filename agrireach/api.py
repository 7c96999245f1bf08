# agrireach/api.py
import json
import math
from flask import jsonify, request, current_app
from pydantic import ValidationError


def json_ok(data=None, status=200):
    return jsonify({'ok': True, 'data': data if data is not None else {}}), status


def json_error(message, status=400, details=None):
    body = {'ok': False, 'error': message}
    if details is not None:
        body['details'] = details
    return jsonify(body), status


def get_bearer_token(req=None):
    req = req or request
    header = req.headers.get('Authorization')
    if not header:
        return None
    parts = header.split(' ', 1)
    if len(parts) != 2 or parts[0].lower() != 'bearer' or not parts[1].strip():
        return None
    return parts[1].strip()


def get_cookie_token(kind, req=None):
    req = req or request
    key = current_app.config['ACCESS_TOKEN_COOKIE'] if kind == 'access' else current_app.config['REFRESH_TOKEN_COOKIE']
    return req.cookies.get(key) or None


def get_auth_token(kind='access', req=None):
    # Cookie first, bearer header as fallback
    return get_cookie_token(kind, req) or get_bearer_token(req)


def set_auth_cookies(response, access_token=None, refresh_token=None):
    config = current_app.config
    options = dict(httponly=True, samesite='Lax', secure=config['COOKIE_SECURE'],
                   path='/', domain=config['COOKIE_DOMAIN'])
    if access_token:
        response.set_cookie(config['ACCESS_TOKEN_COOKIE'], access_token,
                            max_age=60 * config['JWT_ACCESS_TTL_MIN'], **options)
    if refresh_token:
        response.set_cookie(config['REFRESH_TOKEN_COOKIE'], refresh_token,
                            max_age=60 * 60 * 24 * config['JWT_REFRESH_TTL_DAYS'], **options)
    return response


def clear_auth_cookies(response):
    config = current_app.config
    for key in (config['ACCESS_TOKEN_COOKIE'], config['REFRESH_TOKEN_COOKIE']):
        response.delete_cookie(key, path='/', domain=config['COOKIE_DOMAIN'])
    return response


def request_data():
    """JSON body, falling back to form fields for form-encoded posts."""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict() if request.form else {}
    return data


def validate_body(schema):
    """Validate the request body against a pydantic model.

    Returns ``(payload, None)`` on success or ``(None, error_response)``.
    """
    data = request_data()
    if not isinstance(data, dict):
        return None, json_error('Invalid payload', 400)
    try:
        return schema.model_validate(data), None
    except ValidationError as e:
        details = json.loads(e.json(include_url=False))
        return None, json_error('Invalid payload', 400, details=details)


def get_pagination(default_limit=20, max_limit=100):
    try:
        page = max(int(request.args.get('page', 1)), 1)
    except ValueError:
        page = 1
    try:
        limit = int(request.args.get('limit', default_limit))
    except ValueError:
        limit = default_limit
    limit = min(max(limit, 1), max_limit)
    return page, limit


def paginate(query, page, limit):
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total, math.ceil(total / limit) if total else 0
