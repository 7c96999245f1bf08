# agrireach/authentication/models.py
from flask_login import UserMixin
from agrireach.init_db import db, utcnow, isoformat

USER_ROLES = ('worker', 'recruiter', 'buyer', 'admin')
USER_STATUSES = ('active', 'suspended', 'banned')
OTP_TYPES = ('registration', 'password_reset', 'checkout')


class User(UserMixin, db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='worker', index=True)
    roles = db.Column(db.JSON, nullable=False, default=list)
    phone = db.Column(db.String(30))
    location = db.Column(db.String(255))
    avatar_url = db.Column(db.String(500))
    bio = db.Column(db.Text)
    skills = db.Column(db.JSON)
    verified = db.Column(db.Boolean, default=False, nullable=False)
    trust_score = db.Column(db.Float, default=0, nullable=False)
    status = db.Column(db.String(20), default='active', nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
    last_login = db.Column(db.DateTime)

    @property
    def is_active(self):
        return self.status == 'active'

    def get_roles(self):
        return list(self.roles) if self.roles else [self.role]

    def has_role(self, role):
        return role in self.get_roles()

    def set_roles(self, roles):
        # Legacy single role follows the first entry
        self.roles = list(roles)
        self.role = self.roles[0]

    def to_dict(self, private=False):
        data = {
            'id': self.id,
            'full_name': self.full_name,
            'role': self.role,
            'roles': self.get_roles(),
            'location': self.location,
            'avatar_url': self.avatar_url,
            'bio': self.bio,
            'skills': self.skills or [],
            'verified': self.verified,
            'trust_score': self.trust_score,
            'created_at': isoformat(self.created_at),
        }
        if private:
            data.update({
                'email': self.email,
                'phone': self.phone,
                'status': self.status,
                'last_login': isoformat(self.last_login),
                'updated_at': isoformat(self.updated_at),
            })
        return data

    def summary(self):
        return {'id': self.id, 'full_name': self.full_name, 'avatar_url': self.avatar_url,
                'role': self.role, 'location': self.location}


class UserSession(db.Model):
    __tablename__ = 'user_sessions'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)


class OtpCode(db.Model):
    __tablename__ = 'otp_codes'
    __table_args__ = (db.Index('ix_otp_codes_lookup', 'email', 'type', 'created_at'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    email = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(20), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    used = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
