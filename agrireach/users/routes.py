# agrireach/users/routes.py
from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import String, cast, func, or_
from agrireach.init_db import db
from agrireach.api import json_ok, json_error, validate_body, get_pagination, paginate
from agrireach.decorators import is_owner_or_admin
from agrireach.logging_config import setup_logging
from agrireach.authentication.models import User, UserSession
from agrireach.authentication.tokens import hash_password, verify_password
from agrireach.users.schemas import ProfileUpdate, PasswordChange, RolesUpdate
from agrireach.opportunities.models import Opportunity, JobApplication
from agrireach.opportunities.skills import normalize_skills
from agrireach.farmers.models import Farmer
from agrireach.community.models import Thread
from agrireach.marketplace.models import Product, Order

users_bp = Blueprint('users', __name__)

logger = setup_logging()

SEARCH_LIMIT = 20


def get_profile_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return None
    if not user.is_active and not is_owner_or_admin(user.id):
        return None
    return user


@users_bp.route('/me', methods=['GET'])
@login_required
def me():
    return json_ok({'user': current_user.to_dict(private=True)})


@users_bp.route('/search', methods=['GET'])
@login_required
def search_users():
    q = request.args.get('q', '').strip()
    query = User.query.filter(User.status == 'active', User.id != current_user.id)
    if q:
        query = query.filter(or_(User.full_name.ilike(f'%{q}%'), User.email.ilike(f'%{q}%'),
                                 User.location.ilike(f'%{q}%')))
    role = request.args.get('role')
    if role:
        query = query.filter(cast(User.roles, String).like(f'%"{role}"%'))
    users = query.order_by(User.full_name.asc()).limit(SEARCH_LIMIT).all()
    return json_ok({'users': [u.summary() for u in users]})


@users_bp.route('/<int:user_id>', methods=['GET'])
def get_user(user_id):
    user = get_profile_user(user_id)
    if not user:
        return json_error('User not found', 404)

    data = user.to_dict(private=is_owner_or_admin(user.id))
    farmer = Farmer.query.filter_by(user_id=user.id).first()
    data['farmer_id'] = farmer.id if farmer else None
    return json_ok({'user': data})


@users_bp.route('/<int:user_id>', methods=['PUT'])
@login_required
def update_user(user_id):
    if current_user.id != user_id:
        return json_error('Forbidden', 403)

    payload, error = validate_body(ProfileUpdate)
    if error:
        return error

    updates = payload.model_dump(exclude_unset=True)
    if 'skills' in updates:
        updates['skills'] = normalize_skills(updates['skills'])
    for field, value in updates.items():
        setattr(current_user, field, value)
    db.session.commit()

    logger.info(f"User {current_user.id} updated their profile.")
    return json_ok({'user': current_user.to_dict(private=True)})


@users_bp.route('/<int:user_id>/password', methods=['PUT'])
@login_required
def change_password(user_id):
    if current_user.id != user_id:
        return json_error('Forbidden', 403)

    payload, error = validate_body(PasswordChange)
    if error:
        return error

    if not verify_password(payload.current_password, current_user.password_hash):
        logger.warning(f"Wrong current password for user {current_user.id}")
        return json_error('Current password is incorrect', 400)

    current_user.password_hash = hash_password(payload.new_password)
    UserSession.query.filter_by(user_id=current_user.id).delete(synchronize_session=False)
    db.session.commit()

    logger.info(f"User {current_user.id} changed their password.")
    return json_ok({'message': 'Password updated successfully'})


@users_bp.route('/<int:user_id>/roles', methods=['PUT'])
@login_required
def update_roles(user_id):
    if current_user.id != user_id:
        return json_error('Forbidden', 403)

    payload, error = validate_body(RolesUpdate)
    if error:
        return error

    roles = list(payload.roles)
    # Self-service never grants or drops the admin role
    if current_user.has_role('admin'):
        roles.append('admin')
    current_user.set_roles(roles)
    db.session.commit()

    logger.info(f"User {current_user.id} set roles to {roles}.")
    return json_ok({'user': current_user.to_dict(private=True)})


@users_bp.route('/<int:user_id>/applications', methods=['GET'])
@login_required
def user_applications(user_id):
    if not is_owner_or_admin(user_id):
        return json_error('Forbidden', 403)

    page, limit = get_pagination()
    query = JobApplication.query.filter_by(worker_id=user_id)
    if request.args.get('status'):
        query = query.filter(JobApplication.status == request.args['status'])
    query = query.order_by(JobApplication.created_at.desc(), JobApplication.id.desc())
    applications, total, pages = paginate(query, page, limit)
    return json_ok({'applications': [a.to_dict(include_opportunity=True) for a in applications],
                    'total': total, 'page': page, 'pages': pages})


@users_bp.route('/<int:user_id>/opportunities', methods=['GET'])
def user_opportunities(user_id):
    if not get_profile_user(user_id):
        return json_error('User not found', 404)

    page, limit = get_pagination()
    query = (Opportunity.query.filter(Opportunity.recruiter_id == user_id, Opportunity.status != 'hidden')
             .order_by(Opportunity.created_at.desc(), Opportunity.id.desc()))
    opportunities, total, pages = paginate(query, page, limit)
    return json_ok({'opportunities': [o.to_dict() for o in opportunities],
                    'total': total, 'page': page, 'pages': pages})


@users_bp.route('/<int:user_id>/stats', methods=['GET'])
def user_stats(user_id):
    user = get_profile_user(user_id)
    if not user:
        return json_error('User not found', 404)

    applications = dict(db.session.query(JobApplication.status, func.count(JobApplication.id))
                        .filter(JobApplication.worker_id == user_id)
                        .group_by(JobApplication.status).all())
    farmer = Farmer.query.filter_by(user_id=user_id).first()
    return json_ok({
        'applications': {
            'total': sum(applications.values()),
            'pending': applications.get('pending', 0),
            'accepted': applications.get('accepted', 0),
            'rejected': applications.get('rejected', 0),
        },
        'opportunities': {
            'total': Opportunity.query.filter(Opportunity.recruiter_id == user_id,
                                              Opportunity.status != 'hidden').count(),
            'active': Opportunity.query.filter_by(recruiter_id=user_id, status='active').count(),
        },
        'products': Product.query.filter(Product.seller_id == user_id, Product.status != 'removed').count(),
        'sales': Order.query.filter(Order.seller_id == user_id, Order.status == 'delivered').count(),
        'purchases': Order.query.filter(Order.buyer_id == user_id, Order.status != 'cancelled').count(),
        'threads': Thread.query.filter(Thread.author_id == user_id, Thread.status != 'hidden').count(),
        'rating': farmer.rating if farmer else None,
        'reviews_count': farmer.reviews_count if farmer else 0,
        'trust_score': user.trust_score,
    })
