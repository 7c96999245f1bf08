# agrireach/chat/models.py
from agrireach.init_db import db, utcnow, isoformat

MESSAGE_TYPES = ('text', 'image', 'file')


class ChatConversation(db.Model):
    __tablename__ = 'chat_conversations'
    __table_args__ = (db.UniqueConstraint('user_a_id', 'user_b_id', name='uq_conversation_pair'),)
    id = db.Column(db.Integer, primary_key=True)
    # Stored sorted, user_a_id < user_b_id
    user_a_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    user_b_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    last_message_id = db.Column(db.Integer, db.ForeignKey('chat_messages.id'))
    last_message_at = db.Column(db.DateTime, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    user_a = db.relationship('User', foreign_keys=[user_a_id])
    user_b = db.relationship('User', foreign_keys=[user_b_id])
    last_message = db.relationship('ChatMessage', foreign_keys=[last_message_id])

    def other_user(self, user_id):
        return self.user_b if self.user_a_id == user_id else self.user_a


class ChatMessage(db.Model):
    __tablename__ = 'chat_messages'
    __table_args__ = (db.Index('ix_chat_messages_pair', 'sender_id', 'recipient_id', 'created_at'),)
    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    recipient_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    message_type = db.Column(db.String(10), nullable=False, default='text')
    read_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)

    sender = db.relationship('User', foreign_keys=[sender_id])

    def to_dict(self):
        return {
            'id': self.id,
            'sender_id': self.sender_id,
            'recipient_id': self.recipient_id,
            'sender': self.sender.summary() if self.sender else None,
            'content': self.content,
            'message_type': self.message_type,
            'read': self.read_at is not None,
            'read_at': isoformat(self.read_at),
            'created_at': isoformat(self.created_at),
        }
