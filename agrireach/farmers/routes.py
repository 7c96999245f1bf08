# agrireach/farmers/routes.py
from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import String, cast, func
from sqlalchemy.exc import IntegrityError
from agrireach.init_db import db
from agrireach.api import json_ok, json_error, validate_body, get_pagination, paginate
from agrireach.decorators import is_owner_or_admin
from agrireach.logging_config import setup_logging
from agrireach.authentication.models import User
from agrireach.farmers.models import Farmer, Review
from agrireach.farmers.schemas import FarmerProfile, FarmerProfileUpdate, ReviewCreate
from agrireach.notifications.views import notify_new_review

farmers_bp = Blueprint('farmers', __name__)

logger = setup_logging()


def recompute_rating(farmer):
    average, count = (db.session.query(func.avg(Review.rating), func.count(Review.id))
                      .filter(Review.farmer_id == farmer.id).one())
    farmer.rating = round(float(average or 0), 1)
    farmer.reviews_count = count


@farmers_bp.route('', methods=['GET'])
def list_farmers():
    page, limit = get_pagination()
    query = Farmer.query.join(User, Farmer.user_id == User.id).filter(User.status == 'active')

    specialty = request.args.get('specialty')
    if specialty and specialty != 'all':
        query = query.filter(cast(Farmer.specialty, String).ilike(f'%{specialty}%'))
    location = request.args.get('location')
    if location:
        query = query.filter(User.location.ilike(f'%{location}%'))
    min_rating = request.args.get('minRating', type=float)
    if min_rating is not None:
        query = query.filter(Farmer.rating >= min_rating)
    min_experience = request.args.get('minExperience', type=int)
    if min_experience is not None:
        query = query.filter(Farmer.experience_years >= min_experience)
    q = request.args.get('q', '').strip()
    if q:
        query = query.filter(User.full_name.ilike(f'%{q}%'))

    query = query.order_by(Farmer.rating.desc(), Farmer.reviews_count.desc(), Farmer.id.asc())
    farmers, total, pages = paginate(query, page, limit)
    return json_ok({'farmers': [f.to_dict() for f in farmers], 'total': total, 'page': page, 'pages': pages})


@farmers_bp.route('', methods=['POST'])
@login_required
def create_farmer():
    if Farmer.query.filter_by(user_id=current_user.id).first():
        return json_error('Farmer profile already exists', 409)

    payload, error = validate_body(FarmerProfile)
    if error:
        return error

    try:
        farmer = Farmer(user_id=current_user.id, **payload.model_dump())
        db.session.add(farmer)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return json_error('Farmer profile already exists', 409)

    logger.info(f"Farmer profile {farmer.id} created for user {current_user.id}.")
    return json_ok({'farmer': farmer.to_dict()}, 201)


@farmers_bp.route('/<int:farmer_id>', methods=['GET'])
def get_farmer(farmer_id):
    farmer = db.session.get(Farmer, farmer_id)
    if not farmer or farmer.user.status != 'active':
        return json_error('Farmer not found', 404)
    return json_ok({'farmer': farmer.to_dict()})


@farmers_bp.route('/<int:farmer_id>', methods=['PUT'])
@login_required
def update_farmer(farmer_id):
    farmer = db.session.get(Farmer, farmer_id)
    if not farmer:
        return json_error('Farmer not found', 404)
    if not is_owner_or_admin(farmer.user_id):
        return json_error('Forbidden', 403)

    payload, error = validate_body(FarmerProfileUpdate)
    if error:
        return error

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(farmer, field, value)
    db.session.commit()
    return json_ok({'farmer': farmer.to_dict()})


@farmers_bp.route('/<int:farmer_id>/reviews', methods=['GET'])
def list_reviews(farmer_id):
    if not db.session.get(Farmer, farmer_id):
        return json_error('Farmer not found', 404)

    page, limit = get_pagination()
    query = Review.query.filter_by(farmer_id=farmer_id).order_by(Review.created_at.desc(), Review.id.desc())
    reviews, total, pages = paginate(query, page, limit)
    return json_ok({'reviews': [r.to_dict() for r in reviews], 'total': total, 'page': page, 'pages': pages})


@farmers_bp.route('/<int:farmer_id>/reviews', methods=['POST'])
@login_required
def create_review(farmer_id):
    farmer = db.session.get(Farmer, farmer_id)
    if not farmer:
        return json_error('Farmer not found', 404)
    if farmer.user_id == current_user.id:
        return json_error('You cannot review yourself', 400)
    if Review.query.filter_by(farmer_id=farmer_id, reviewer_id=current_user.id).first():
        return json_error('You have already reviewed this farmer', 409)

    payload, error = validate_body(ReviewCreate)
    if error:
        return error

    try:
        review = Review(farmer_id=farmer_id, reviewer_id=current_user.id,
                        rating=payload.rating, comment=payload.comment)
        db.session.add(review)
        db.session.flush()
        recompute_rating(farmer)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return json_error('You have already reviewed this farmer', 409)

    notify_new_review(farmer.user_id, current_user.full_name, payload.rating)
    return json_ok({'review': review.to_dict(), 'rating': farmer.rating, 'reviews_count': farmer.reviews_count}, 201)


@farmers_bp.route('/reviews/<int:review_id>/helpful', methods=['POST'])
@login_required
def mark_helpful(review_id):
    review = db.session.get(Review, review_id)
    if not review:
        return json_error('Review not found', 404)

    review.helpful_count = (review.helpful_count or 0) + 1
    db.session.commit()
    return json_ok({'helpful_count': review.helpful_count})
