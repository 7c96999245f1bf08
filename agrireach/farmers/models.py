# agrireach/farmers/models.py
from agrireach.init_db import db, utcnow, isoformat


class Farmer(db.Model):
    __tablename__ = 'farmers'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    specialty = db.Column(db.JSON, default=list)
    experience_years = db.Column(db.Integer, default=0, nullable=False)
    farm_size = db.Column(db.String(100))
    certifications = db.Column(db.JSON, default=list)
    rating = db.Column(db.Float, default=0, nullable=False)
    reviews_count = db.Column(db.Integer, default=0, nullable=False)
    response_time = db.Column(db.String(50))
    completion_rate = db.Column(db.Float, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship('User', backref=db.backref('farmer_profile', uselist=False))

    def to_dict(self):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'specialty': self.specialty or [],
            'experience_years': self.experience_years,
            'farm_size': self.farm_size,
            'certifications': self.certifications or [],
            'rating': self.rating,
            'reviews_count': self.reviews_count,
            'response_time': self.response_time,
            'completion_rate': self.completion_rate,
            'created_at': isoformat(self.created_at),
        }
        if self.user:
            data.update({
                'full_name': self.user.full_name,
                'location': self.user.location,
                'avatar_url': self.user.avatar_url,
                'bio': self.user.bio,
                'verified': self.user.verified,
                'skills': self.user.skills or [],
            })
        return data


class Review(db.Model):
    __tablename__ = 'reviews'
    __table_args__ = (db.UniqueConstraint('reviewer_id', 'farmer_id', name='uq_review_reviewer'),)
    id = db.Column(db.Integer, primary_key=True)
    reviewer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    farmer_id = db.Column(db.Integer, db.ForeignKey('farmers.id'), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text)
    helpful_count = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    reviewer = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'farmer_id': self.farmer_id,
            'reviewer': self.reviewer.summary() if self.reviewer else None,
            'rating': self.rating,
            'comment': self.comment,
            'helpful_count': self.helpful_count,
            'created_at': isoformat(self.created_at),
        }
