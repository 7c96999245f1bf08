# agrireach/admin/routes.py
from datetime import timedelta
from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import String, cast, func, or_, text
from sqlalchemy.exc import OperationalError
from agrireach.init_db import db, utcnow
from agrireach.api import json_ok, json_error, validate_body, request_data, get_pagination, paginate
from agrireach.decorators import admin_required
from agrireach.logging_config import setup_logging
from agrireach.authentication.models import User, UserSession
from agrireach.opportunities.models import Opportunity, JobApplication
from agrireach.community.models import Thread, ThreadReply, ThreadLike, PostVote
from agrireach.marketplace.models import Product, Order
from agrireach.admin.models import Report, AdminActivityLog
from agrireach.admin.schemas import UserStatusUpdate, ReportCreate, ReportUpdate
from agrireach.admin.views import log_activity, export_to_xlsx, EXPORTS
from agrireach.notifications.views import notify_account_status

admin_bp = Blueprint('admin', __name__)
reports_bp = Blueprint('reports', __name__)

logger = setup_logging()

OPPORTUNITY_ACTIONS = {'open': 'active', 'approve': 'active', 'close': 'closed', 'remove': 'hidden'}
PRODUCT_ACTIONS = {'approve': 'active', 'remove': 'removed'}
THREAD_ACTIONS = {
    'pin': ('pinned', True),
    'unpin': ('pinned', False),
    'lock': ('locked', True),
    'unlock': ('locked', False),
    'hide': ('status', 'hidden'),
    'restore': ('status', 'active'),
    'approve': ('status', 'active'),
}
REPORT_MODELS = {
    'user': User,
    'opportunity': Opportunity,
    'thread': Thread,
    'post': ThreadReply,
    'product': Product,
}


def get_action(allowed):
    """Read ``action`` from the body; returns ``(action, None)`` or ``(None, error_response)``."""
    data = request_data()
    action = data.get('action') if isinstance(data, dict) else None
    if not action:
        return None, json_error('Missing action', 400)
    if not isinstance(action, str) or action not in allowed:
        return None, json_error('Invalid action', 400)
    return action, None


# Content moderation

@admin_bp.route('/opportunities/<int:opportunity_id>', methods=['PUT'])
@admin_required
def moderate_opportunity(opportunity_id):
    action, error = get_action(OPPORTUNITY_ACTIONS)
    if error:
        return error

    opportunity = db.session.get(Opportunity, opportunity_id)
    if not opportunity:
        return json_error('Opportunity not found', 404)

    previous = opportunity.status
    opportunity.status = OPPORTUNITY_ACTIONS[action]
    log_activity(f'opportunity_{action}', 'opportunity', opportunity.id,
                 {'old_status': previous, 'new_status': opportunity.status})
    db.session.commit()
    return json_ok({'opportunity': opportunity.to_dict()})


@admin_bp.route('/community/threads/<int:thread_id>', methods=['PUT'])
@admin_required
def moderate_thread(thread_id):
    action, error = get_action(THREAD_ACTIONS)
    if error:
        return error

    thread = db.session.get(Thread, thread_id)
    if not thread:
        return json_error('Thread not found', 404)

    field, value = THREAD_ACTIONS[action]
    setattr(thread, field, value)
    log_activity(f'thread_{action}', 'thread', thread.id)
    db.session.commit()
    return json_ok({'thread': thread.to_dict()})


@admin_bp.route('/community/threads/<int:thread_id>', methods=['DELETE'])
@admin_required
def delete_thread(thread_id):
    thread = db.session.get(Thread, thread_id)
    if not thread:
        return json_error('Thread not found', 404)

    if thread.status != 'hidden' and thread.category and thread.category.posts_count:
        thread.category.posts_count -= 1
    reply_ids = [r.id for r in ThreadReply.query.filter_by(thread_id=thread.id).all()]
    if reply_ids:
        PostVote.query.filter(PostVote.post_id.in_(reply_ids)).delete(synchronize_session=False)
    ThreadReply.query.filter_by(thread_id=thread.id).delete(synchronize_session=False)
    ThreadLike.query.filter_by(thread_id=thread.id).delete(synchronize_session=False)
    log_activity('thread_deleted', 'thread', thread.id, {'title': thread.title})
    db.session.delete(thread)
    db.session.commit()
    return json_ok({'message': 'Thread deleted'})


@admin_bp.route('/marketplace/products/<int:product_id>', methods=['PUT'])
@admin_required
def moderate_product(product_id):
    action, error = get_action(PRODUCT_ACTIONS)
    if error:
        return error

    product = db.session.get(Product, product_id)
    if not product:
        return json_error('Product not found', 404)

    previous = product.status
    product.status = PRODUCT_ACTIONS[action]
    log_activity(f'product_{action}', 'product', product.id,
                 {'old_status': previous, 'new_status': product.status})
    db.session.commit()
    return json_ok({'product': product.to_dict()})


# Users

@admin_bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    page, limit = get_pagination()
    query = User.query

    q = request.args.get('q', '').strip()
    if q:
        query = query.filter(or_(User.full_name.ilike(f'%{q}%'), User.email.ilike(f'%{q}%')))
    role = request.args.get('role')
    if role and role != 'all':
        query = query.filter(cast(User.roles, String).like(f'%"{role}"%'))
    status = request.args.get('status')
    if status and status != 'all':
        query = query.filter(User.status == status)

    query = query.order_by(User.created_at.desc(), User.id.desc())
    users, total, pages = paginate(query, page, limit)
    return json_ok({'users': [u.to_dict(private=True) for u in users], 'total': total, 'page': page,
                    'pages': pages})


def change_user_status(user, status, reason=None):
    previous = user.status
    user.status = status
    if status != 'active':
        UserSession.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    log_activity('user_status_changed', 'user', user.id,
                 {'old_status': previous, 'new_status': status, 'reason': reason or 'No reason provided'})
    db.session.commit()
    notify_account_status(user.id, status, reason)


@admin_bp.route('/users/<int:user_id>/status', methods=['PUT'])
@admin_required
def update_user_status(user_id):
    payload, error = validate_body(UserStatusUpdate)
    if error:
        return error

    user = db.session.get(User, user_id)
    if not user:
        return json_error('User not found', 404)
    if user.id == current_user.id:
        return json_error('Cannot change your own status', 400)

    change_user_status(user, payload.status, payload.reason)
    return json_ok({'message': f'User status updated to {payload.status}',
                    'user': {'id': user.id, 'full_name': user.full_name, 'email': user.email,
                             'status': user.status}})


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@admin_required
def ban_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        return json_error('User not found', 404)
    if user.id == current_user.id:
        return json_error('Cannot delete your own account', 400)

    change_user_status(user, 'banned', request_data().get('reason') if request.is_json else None)
    return json_ok({'message': 'User banned'})


# Dashboard

@admin_bp.route('/overview', methods=['GET'])
@admin_required
def overview():
    try:
        db.session.execute(text('SELECT 1'))
        database = 'connected'
    except OperationalError as e:
        logger.error(f"Overview database check failed: {e}")
        database = 'unavailable'

    week_ago = utcnow() - timedelta(days=7)
    user_statuses = dict(db.session.query(User.status, func.count(User.id)).group_by(User.status).all())
    user_roles = dict(db.session.query(User.role, func.count(User.id)).group_by(User.role).all())
    return json_ok({
        'users': {
            'total': sum(user_statuses.values()),
            'active': user_statuses.get('active', 0),
            'suspended': user_statuses.get('suspended', 0),
            'banned': user_statuses.get('banned', 0),
            'newThisWeek': User.query.filter(User.created_at >= week_ago).count(),
            'byRole': user_roles,
        },
        'opportunities': {
            'active': Opportunity.query.filter_by(status='active').count(),
            'closed': Opportunity.query.filter_by(status='closed').count(),
            'hidden': Opportunity.query.filter_by(status='hidden').count(),
            'applications': JobApplication.query.count(),
        },
        'marketplace': {
            'activeProducts': Product.query.filter_by(status='active').count(),
            'pendingApproval': Product.query.filter_by(status='pending_approval').count(),
            'orders': Order.query.count(),
            'revenue': round(db.session.query(func.sum(Order.total_price))
                             .filter(Order.status == 'delivered').scalar() or 0, 2),
        },
        'community': {
            'threads': Thread.query.filter(Thread.status != 'hidden').count(),
            'posts': ThreadReply.query.filter_by(status='active').count(),
        },
        'reports': {'open': Report.query.filter_by(status='open').count()},
        'health': {'backend': 'running', 'database': database},
    })


@admin_bp.route('/activity', methods=['GET'])
@admin_required
def activity_log():
    page, limit = get_pagination()
    query = AdminActivityLog.query
    if request.args.get('target_type'):
        query = query.filter(AdminActivityLog.target_type == request.args['target_type'])
    query = query.order_by(AdminActivityLog.created_at.desc(), AdminActivityLog.id.desc())
    entries, total, pages = paginate(query, page, limit)
    return json_ok({'activities': [e.to_dict() for e in entries], 'total': total, 'page': page, 'pages': pages})


# Reports

@admin_bp.route('/reports', methods=['GET'])
@admin_required
def list_reports():
    page, limit = get_pagination()
    query = Report.query
    status = request.args.get('status')
    if status and status != 'all':
        query = query.filter(Report.status == status)
    if request.args.get('target_type'):
        query = query.filter(Report.target_type == request.args['target_type'])
    query = query.order_by(Report.created_at.desc(), Report.id.desc())
    reports, total, pages = paginate(query, page, limit)
    return json_ok({'reports': [r.to_dict() for r in reports], 'total': total, 'page': page, 'pages': pages})


@admin_bp.route('/reports/<int:report_id>', methods=['PUT'])
@admin_required
def update_report(report_id):
    payload, error = validate_body(ReportUpdate)
    if error:
        return error

    report = db.session.get(Report, report_id)
    if not report:
        return json_error('Report not found', 404)

    report.status = payload.status
    report.resolution_note = payload.note
    report.resolved_by = current_user.id if payload.status != 'open' else None
    log_activity(f'report_{payload.status}', 'report', report.id)
    db.session.commit()
    return json_ok({'report': report.to_dict()})


@admin_bp.route('/export', methods=['GET'])
@admin_required
def export():
    kind = request.args.get('kind', 'users')
    if kind not in EXPORTS:
        return json_error(f"Invalid export kind. Allowed: {', '.join(EXPORTS)}", 400)

    title, headers, build_rows = EXPORTS[kind]
    model = {'users': User, 'opportunities': Opportunity, 'products': Product}[kind]
    records = model.query.order_by(model.id.asc()).all()
    filename = f"agrireach_{kind}_{utcnow().strftime('%Y%m%d')}.xlsx"
    return export_to_xlsx(title, headers, build_rows(records), filename)


@reports_bp.route('', methods=['POST'])
@login_required
def file_report():
    payload, error = validate_body(ReportCreate)
    if error:
        return error

    if not db.session.get(REPORT_MODELS[payload.target_type], payload.target_id):
        return json_error(f'{payload.target_type.capitalize()} not found', 404)

    report = Report(reporter_id=current_user.id, target_type=payload.target_type, target_id=payload.target_id,
                    reason=payload.reason, status='open')
    db.session.add(report)
    db.session.commit()

    logger.info(f"User {current_user.id} reported {payload.target_type} {payload.target_id}.")
    return json_ok({'report': report.to_dict()}, 201)
