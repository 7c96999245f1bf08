# agrireach/uploads/models.py
from agrireach.init_db import db, utcnow, isoformat

UPLOAD_TYPES = {
    'avatar': {'png', 'jpg', 'jpeg', 'gif', 'webp'},
    'product_image': {'png', 'jpg', 'jpeg', 'gif', 'webp'},
    'resume': {'pdf', 'doc', 'docx'},
    'document': {'pdf', 'doc', 'docx', 'txt', 'png', 'jpg', 'jpeg', 'xlsx', 'csv'},
}


class Upload(db.Model):
    __tablename__ = 'uploads'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    filename = db.Column(db.String(255), nullable=False, unique=True)
    original_name = db.Column(db.String(255), nullable=False)
    mime_type = db.Column(db.String(100))
    size = db.Column(db.Integer, nullable=False, default=0)
    url = db.Column(db.String(500), nullable=False)
    type = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    owner = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'filename': self.filename,
            'original_name': self.original_name,
            'mime_type': self.mime_type,
            'size': self.size,
            'url': self.url,
            'type': self.type,
            'created_at': isoformat(self.created_at),
        }
