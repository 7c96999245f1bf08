import pytest

from agrireach.app_factory import create_app
from agrireach.init_db import db
from agrireach.authentication.models import User
from agrireach.authentication.tokens import hash_password, sign_access_token

PASSWORD = 'Str0ng!Pass'
OTP = '123456'


@pytest.fixture
def app(tmp_path):
    app = create_app('agrireach.config.TestingConfig')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fixed_otp(monkeypatch):
    monkeypatch.setattr('agrireach.authentication.views.generate_otp', lambda: OTP)
    return OTP


@pytest.fixture
def make_user(app):
    """Create a user and return ``(user_id, auth_headers)``."""
    counter = {'n': 0}

    def _make_user(roles=('worker',), email=None, status='active', verified=True, **fields):
        counter['n'] += 1
        with app.app_context():
            user = User(
                email=email or f'user{counter["n"]}@example.com',
                full_name=fields.pop('full_name', f'User {counter["n"]}'),
                password_hash=hash_password(PASSWORD),
                verified=verified,
                status=status,
                **fields,
            )
            user.set_roles(list(roles))
            db.session.add(user)
            db.session.commit()
            token = sign_access_token(user)
            return user.id, {'Authorization': f'Bearer {token}'}

    return _make_user


@pytest.fixture
def get_row(app):
    """Fetch a fresh copy of a row and return it detached as a dict of column values."""
    def _get_row(model, row_id):
        with app.app_context():
            row = db.session.get(model, row_id)
            if row is None:
                return None
            return {column.name: getattr(row, column.name) for column in model.__table__.columns}

    return _get_row
