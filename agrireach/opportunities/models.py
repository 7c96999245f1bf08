# agrireach/opportunities/models.py
from agrireach.init_db import db, utcnow, isoformat

OPPORTUNITY_STATUSES = ('active', 'closed', 'hidden')
APPLICATION_STATUSES = ('pending', 'reviewed', 'accepted', 'rejected')
PAY_TYPES = ('hourly', 'daily', 'weekly', 'monthly', 'fixed', 'per_harvest')
URGENCY_LEVELS = ('low', 'medium', 'high', 'urgent')
EXPERIENCE_LEVELS = ('entry', 'intermediate', 'experienced', 'expert')


class Opportunity(db.Model):
    __tablename__ = 'opportunities'
    id = db.Column(db.Integer, primary_key=True)
    recruiter_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(100), nullable=False, index=True)
    location = db.Column(db.String(255), nullable=False)
    pay_rate = db.Column(db.Float, nullable=False)
    pay_rate_max = db.Column(db.Float)
    pay_type = db.Column(db.String(20), nullable=False, default='daily')
    duration = db.Column(db.String(100))
    urgency = db.Column(db.String(20), default='medium')
    required_skills = db.Column(db.JSON, default=list)
    experience_level = db.Column(db.String(20))
    start_date = db.Column(db.Date)
    company_name = db.Column(db.String(200))
    contact_email = db.Column(db.String(255))
    requirements = db.Column(db.JSON, default=list)
    benefits = db.Column(db.JSON, default=list)
    work_schedule = db.Column(db.String(200))
    status = db.Column(db.String(20), nullable=False, default='active', index=True)
    views = db.Column(db.Integer, nullable=False, default=0)
    applications_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    recruiter = db.relationship('User', backref=db.backref('opportunities', lazy='dynamic'))

    def to_dict(self):
        return {
            'id': self.id,
            'recruiter_id': self.recruiter_id,
            'recruiter': self.recruiter.summary() if self.recruiter else None,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'location': self.location,
            'pay_rate': self.pay_rate,
            'pay_rate_max': self.pay_rate_max,
            'pay_type': self.pay_type,
            'duration': self.duration,
            'urgency': self.urgency,
            'required_skills': self.required_skills or [],
            'experience_level': self.experience_level,
            'start_date': isoformat(self.start_date),
            'company_name': self.company_name,
            'contact_email': self.contact_email,
            'requirements': self.requirements or [],
            'benefits': self.benefits or [],
            'work_schedule': self.work_schedule,
            'status': self.status,
            'views': self.views,
            'applications_count': self.applications_count,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class JobApplication(db.Model):
    __tablename__ = 'job_applications'
    __table_args__ = (db.UniqueConstraint('opportunity_id', 'worker_id', name='uq_application_worker'),)
    id = db.Column(db.Integer, primary_key=True)
    opportunity_id = db.Column(db.Integer, db.ForeignKey('opportunities.id'), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    cover_letter = db.Column(db.Text)
    resume_url = db.Column(db.String(500))
    highlighted_skills = db.Column(db.JSON, default=list)
    match_score = db.Column(db.Integer, default=0)
    match_details = db.Column(db.JSON)
    status = db.Column(db.String(20), nullable=False, default='pending')
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    opportunity = db.relationship('Opportunity', backref=db.backref('applications', lazy='dynamic'))
    worker = db.relationship('User')

    def to_dict(self, include_opportunity=False):
        data = {
            'id': self.id,
            'opportunity_id': self.opportunity_id,
            'worker_id': self.worker_id,
            'worker': self.worker.summary() if self.worker else None,
            'cover_letter': self.cover_letter,
            'resume_url': self.resume_url,
            'highlighted_skills': self.highlighted_skills or [],
            'match_score': self.match_score,
            'match_details': self.match_details,
            'status': self.status,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
        if include_opportunity and self.opportunity:
            data['opportunity'] = {
                'id': self.opportunity.id,
                'title': self.opportunity.title,
                'company_name': self.opportunity.company_name,
                'location': self.opportunity.location,
                'status': self.opportunity.status,
            }
        return data


class SavedJob(db.Model):
    __tablename__ = 'saved_jobs'
    __table_args__ = (db.UniqueConstraint('job_id', 'user_id', name='uq_saved_job'),)
    id = db.Column(db.Integer, primary_key=True)
    job_id = db.Column(db.Integer, db.ForeignKey('opportunities.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    opportunity = db.relationship('Opportunity')
