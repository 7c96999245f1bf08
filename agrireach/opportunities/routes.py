# agrireach/opportunities/routes.py
import math
from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from agrireach.init_db import db
from agrireach.api import json_ok, json_error, validate_body, get_pagination, paginate
from agrireach.decorators import roles_required, is_owner_or_admin
from agrireach.logging_config import setup_logging
from agrireach.opportunities.models import Opportunity, JobApplication, SavedJob
from agrireach.opportunities.schemas import (OpportunityCreate, OpportunityUpdate, ApplicationCreate,
                                             ApplicationStatusUpdate)
from agrireach.opportunities.skills import calculate_match_score
from agrireach.notifications.views import notify_job_application, notify_application_status

opportunities_bp = Blueprint('opportunities', __name__)

logger = setup_logging()

FILTER_FIELDS = ('category', 'pay_type', 'urgency', 'experience_level')
SIMILAR_LIMIT = 5


def get_visible_opportunity(opportunity_id):
    """Opportunity by id, treating hidden postings as missing unless owner or admin."""
    opportunity = db.session.get(Opportunity, opportunity_id)
    if not opportunity:
        return None
    if opportunity.status == 'hidden' and not is_owner_or_admin(opportunity.recruiter_id):
        return None
    return opportunity


def with_match(opportunity):
    data = opportunity.to_dict()
    if current_user.is_authenticated:
        match = calculate_match_score(opportunity.required_skills, current_user.skills)
        data['matchScore'] = match['score']
        data['matchDetails'] = match
    return data


@opportunities_bp.route('', methods=['GET'])
def list_opportunities():
    page, limit = get_pagination()
    query = Opportunity.query.filter(Opportunity.status != 'hidden')

    status = request.args.get('status')
    if status in ('active', 'closed'):
        query = query.filter(Opportunity.status == status)
    for field in FILTER_FIELDS:
        value = request.args.get(field)
        if value and value != 'all':
            query = query.filter(getattr(Opportunity, field) == value)
    if request.args.get('location'):
        query = query.filter(Opportunity.location.ilike(f"%{request.args['location']}%"))
    if request.args.get('company_name'):
        query = query.filter(Opportunity.company_name.ilike(f"%{request.args['company_name']}%"))
    if request.args.get('recruiter_id', type=int):
        query = query.filter(Opportunity.recruiter_id == request.args.get('recruiter_id', type=int))
    q = request.args.get('q', '').strip()
    if q:
        query = query.filter(or_(Opportunity.title.ilike(f'%{q}%'), Opportunity.description.ilike(f'%{q}%')))

    sort_by = request.args.get('sortBy', 'newest')
    if sort_by == 'match' and current_user.is_authenticated:
        # Scores depend on the caller, so rank in memory
        ranked = sorted((with_match(o) for o in query.all()),
                        key=lambda item: (item['matchScore'], item['created_at'] or ''), reverse=True)
        total = len(ranked)
        items = ranked[(page - 1) * limit:page * limit]
        pages = math.ceil(total / limit) if total else 0
    else:
        if sort_by == 'pay':
            query = query.order_by(Opportunity.pay_rate.desc(), Opportunity.id.desc())
        elif sort_by == 'oldest':
            query = query.order_by(Opportunity.created_at.asc(), Opportunity.id.asc())
        else:
            query = query.order_by(Opportunity.created_at.desc(), Opportunity.id.desc())
        rows, total, pages = paginate(query, page, limit)
        items = [with_match(o) for o in rows]

    return json_ok({'opportunities': items, 'total': total, 'page': page, 'pages': pages})


@opportunities_bp.route('', methods=['POST'])
@roles_required('recruiter')
def create_opportunity():
    payload, error = validate_body(OpportunityCreate)
    if error:
        return error

    try:
        opportunity = Opportunity(recruiter_id=current_user.id, status='active', **payload.model_dump())
        db.session.add(opportunity)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating opportunity: {e}")
        return json_error('Failed to create opportunity', 500)

    logger.info(f"Opportunity {opportunity.id} created by user {current_user.id}.")
    return json_ok({'opportunity': opportunity.to_dict()}, 201)


@opportunities_bp.route('/stats', methods=['GET'])
def opportunity_stats():
    visible = Opportunity.query.filter(Opportunity.status != 'hidden')
    by_category = (db.session.query(Opportunity.category, func.count(Opportunity.id))
                   .filter(Opportunity.status == 'active')
                   .group_by(Opportunity.category).all())
    return json_ok({
        'total': visible.count(),
        'active': visible.filter(Opportunity.status == 'active').count(),
        'closed': visible.filter(Opportunity.status == 'closed').count(),
        'urgent': visible.filter(Opportunity.status == 'active', Opportunity.urgency == 'urgent').count(),
        'applications': JobApplication.query.count(),
        'averagePayRate': round(db.session.query(func.avg(Opportunity.pay_rate))
                                .filter(Opportunity.status == 'active').scalar() or 0, 2),
        'byCategory': {category: count for category, count in by_category},
    })


@opportunities_bp.route('/saved', methods=['GET'])
@login_required
def list_saved():
    saved = (SavedJob.query.filter_by(user_id=current_user.id)
             .order_by(SavedJob.created_at.desc(), SavedJob.id.desc()).all())
    items = []
    for entry in saved:
        if entry.opportunity and entry.opportunity.status != 'hidden':
            data = with_match(entry.opportunity)
            data['saved_at'] = entry.created_at.isoformat() if entry.created_at else None
            items.append(data)
    return json_ok({'opportunities': items, 'total': len(items)})


@opportunities_bp.route('/<int:opportunity_id>', methods=['GET'])
def get_opportunity(opportunity_id):
    opportunity = get_visible_opportunity(opportunity_id)
    if not opportunity:
        return json_error('Opportunity not found', 404)

    opportunity.views = (opportunity.views or 0) + 1
    db.session.commit()
    return json_ok({'opportunity': with_match(opportunity)})


@opportunities_bp.route('/<int:opportunity_id>', methods=['PUT'])
@login_required
def update_opportunity(opportunity_id):
    opportunity = db.session.get(Opportunity, opportunity_id)
    if not opportunity:
        return json_error('Opportunity not found', 404)
    if not is_owner_or_admin(opportunity.recruiter_id):
        return json_error('Forbidden', 403)

    payload, error = validate_body(OpportunityUpdate)
    if error:
        return error

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(opportunity, field, value)
    db.session.commit()

    logger.info(f"Opportunity {opportunity.id} updated by user {current_user.id}.")
    return json_ok({'opportunity': opportunity.to_dict()})


@opportunities_bp.route('/<int:opportunity_id>', methods=['DELETE'])
@login_required
def delete_opportunity(opportunity_id):
    opportunity = db.session.get(Opportunity, opportunity_id)
    if not opportunity:
        return json_error('Opportunity not found', 404)
    if not is_owner_or_admin(opportunity.recruiter_id):
        return json_error('Forbidden', 403)

    opportunity.status = 'hidden'
    db.session.commit()

    logger.info(f"Opportunity {opportunity.id} hidden by user {current_user.id}.")
    return json_ok({'message': 'Opportunity deleted'})


@opportunities_bp.route('/<int:opportunity_id>/apply', methods=['POST'])
@roles_required('worker', allow_admin=False)
def apply(opportunity_id):
    opportunity = db.session.get(Opportunity, opportunity_id)
    if not opportunity or opportunity.status == 'hidden':
        return json_error('Opportunity not found', 404)
    if opportunity.status != 'active':
        return json_error('This opportunity is no longer accepting applications', 400)
    if opportunity.recruiter_id == current_user.id:
        return json_error('You cannot apply to your own posting', 400)
    if JobApplication.query.filter_by(opportunity_id=opportunity.id, worker_id=current_user.id).first():
        return json_error('You have already applied to this opportunity', 409)

    payload, error = validate_body(ApplicationCreate)
    if error:
        return error

    match = calculate_match_score(opportunity.required_skills, current_user.skills)
    try:
        application = JobApplication(
            opportunity_id=opportunity.id,
            worker_id=current_user.id,
            cover_letter=payload.cover_letter,
            resume_url=payload.resume_url,
            highlighted_skills=payload.highlighted_skills,
            match_score=match['score'],
            match_details=match,
            status='pending',
        )
        db.session.add(application)
        opportunity.applications_count = (opportunity.applications_count or 0) + 1
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return json_error('You have already applied to this opportunity', 409)

    notify_job_application(opportunity.recruiter_id, current_user.full_name, opportunity.title, opportunity.id)

    logger.info(f"User {current_user.id} applied to opportunity {opportunity.id} (match {match['score']}).")
    return json_ok({'application': application.to_dict()}, 201)


@opportunities_bp.route('/<int:opportunity_id>/check-application', methods=['GET'])
@login_required
def check_application(opportunity_id):
    application = JobApplication.query.filter_by(opportunity_id=opportunity_id, worker_id=current_user.id).first()
    return json_ok({'hasApplied': application is not None,
                    'application': application.to_dict() if application else None})


@opportunities_bp.route('/<int:opportunity_id>/applications', methods=['GET'])
@login_required
def list_applications(opportunity_id):
    opportunity = db.session.get(Opportunity, opportunity_id)
    if not opportunity:
        return json_error('Opportunity not found', 404)
    if not is_owner_or_admin(opportunity.recruiter_id):
        return json_error('Forbidden', 403)

    query = opportunity.applications
    if request.args.get('status'):
        query = query.filter(JobApplication.status == request.args['status'])
    applications = query.order_by(JobApplication.match_score.desc(), JobApplication.created_at.asc()).all()
    return json_ok({'applications': [a.to_dict() for a in applications], 'total': len(applications)})


@opportunities_bp.route('/applications/<int:application_id>', methods=['PUT'])
@login_required
def update_application(application_id):
    application = db.session.get(JobApplication, application_id)
    if not application:
        return json_error('Application not found', 404)
    if not is_owner_or_admin(application.opportunity.recruiter_id):
        return json_error('Forbidden', 403)

    payload, error = validate_body(ApplicationStatusUpdate)
    if error:
        return error

    application.status = payload.status
    db.session.commit()

    notify_application_status(application.worker_id, application.opportunity.title, payload.status,
                              application.opportunity_id)

    logger.info(f"Application {application.id} set to {payload.status} by user {current_user.id}.")
    return json_ok({'application': application.to_dict()})


@opportunities_bp.route('/<int:opportunity_id>/save', methods=['POST'])
@login_required
def save_opportunity(opportunity_id):
    if not get_visible_opportunity(opportunity_id):
        return json_error('Opportunity not found', 404)

    if not SavedJob.query.filter_by(job_id=opportunity_id, user_id=current_user.id).first():
        try:
            db.session.add(SavedJob(job_id=opportunity_id, user_id=current_user.id))
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
    return json_ok({'saved': True})


@opportunities_bp.route('/<int:opportunity_id>/save', methods=['DELETE'])
@login_required
def unsave_opportunity(opportunity_id):
    SavedJob.query.filter_by(job_id=opportunity_id, user_id=current_user.id).delete(synchronize_session=False)
    db.session.commit()
    return json_ok({'saved': False})


@opportunities_bp.route('/<int:opportunity_id>/similar', methods=['GET'])
def similar_opportunities(opportunity_id):
    opportunity = get_visible_opportunity(opportunity_id)
    if not opportunity:
        return json_error('Opportunity not found', 404)

    similar = (Opportunity.query
               .filter(Opportunity.id != opportunity.id, Opportunity.status == 'active',
                       or_(Opportunity.category == opportunity.category,
                           Opportunity.location == opportunity.location))
               .order_by((Opportunity.category == opportunity.category).desc(), Opportunity.created_at.desc())
               .limit(SIMILAR_LIMIT).all())
    return json_ok({'opportunities': [with_match(o) for o in similar]})
