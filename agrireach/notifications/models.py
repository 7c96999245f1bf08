# agrireach/notifications/models.py
from agrireach.init_db import db, utcnow, isoformat

PRIORITIES = ('low', 'medium', 'high')


class Notification(db.Model):
    __tablename__ = 'notifications'
    __table_args__ = (db.Index('ix_notifications_inbox', 'user_id', 'read', 'created_at'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    type = db.Column(db.String(50), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    priority = db.Column(db.String(10), default='medium', nullable=False)
    read = db.Column(db.Boolean, default=False, nullable=False)
    action_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'priority': self.priority,
            'read': self.read,
            'action_url': self.action_url,
            'created_at': isoformat(self.created_at),
        }
