# agrireach/admin/models.py
from agrireach.init_db import db, utcnow, isoformat

REPORT_TARGETS = ('user', 'opportunity', 'thread', 'post', 'product')
REPORT_STATUSES = ('open', 'resolved', 'dismissed')


class Report(db.Model):
    __tablename__ = 'reports'
    id = db.Column(db.Integer, primary_key=True)
    reporter_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    target_type = db.Column(db.String(20), nullable=False)
    target_id = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='open', index=True)
    resolved_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    resolution_note = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    reporter = db.relationship('User', foreign_keys=[reporter_id])

    def to_dict(self):
        return {
            'id': self.id,
            'reporter': self.reporter.summary() if self.reporter else None,
            'target_type': self.target_type,
            'target_id': self.target_id,
            'reason': self.reason,
            'status': self.status,
            'resolved_by': self.resolved_by,
            'resolution_note': self.resolution_note,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class AdminActivityLog(db.Model):
    __tablename__ = 'admin_activity_logs'
    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    action = db.Column(db.String(100), nullable=False)
    target_type = db.Column(db.String(20), nullable=False)
    target_id = db.Column(db.Integer, nullable=False)
    details = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    admin = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'admin': self.admin.summary() if self.admin else None,
            'action': self.action,
            'target_type': self.target_type,
            'target_id': self.target_id,
            'details': self.details or {},
            'created_at': isoformat(self.created_at),
        }
