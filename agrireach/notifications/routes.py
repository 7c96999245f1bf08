# agrireach/notifications/routes.py
from flask import Blueprint, request
from flask_login import login_required, current_user
from agrireach.init_db import db
from agrireach.api import json_ok, json_error, get_pagination, paginate
from agrireach.notifications.models import Notification, PRIORITIES
from agrireach.logging_config import setup_logging

notifications_bp = Blueprint('notifications', __name__)

logger = setup_logging()


def unread_count(user_id):
    return Notification.query.filter_by(user_id=user_id, read=False).count()


@notifications_bp.route('', methods=['GET'])
@login_required
def list_notifications():
    page, limit = get_pagination()
    query = Notification.query.filter_by(user_id=current_user.id)

    read = request.args.get('read')
    if read is not None:
        query = query.filter(Notification.read == (read == 'true'))
    if request.args.get('type'):
        query = query.filter(Notification.type == request.args['type'])
    priority = request.args.get('priority')
    if priority:
        if priority not in PRIORITIES:
            return json_error('Invalid priority', 400)
        query = query.filter(Notification.priority == priority)

    query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
    items, total, pages = paginate(query, page, limit)
    return json_ok({
        'notifications': [n.to_dict() for n in items],
        'total': total,
        'unreadCount': unread_count(current_user.id),
        'page': page,
        'pages': pages,
    })


@notifications_bp.route('/unread-count', methods=['GET'])
@login_required
def get_unread_count():
    return json_ok({'count': unread_count(current_user.id)})


@notifications_bp.route('/<int:notification_id>/read', methods=['PUT'])
@login_required
def mark_read(notification_id):
    notification = db.session.get(Notification, notification_id)
    if not notification:
        return json_error('Notification not found', 404)
    if notification.user_id != current_user.id:
        return json_error('Forbidden', 403)

    notification.read = True
    db.session.commit()
    return json_ok({'message': 'Notification marked as read'})


@notifications_bp.route('/read-all', methods=['PUT'])
@login_required
def mark_all_read():
    updated = (Notification.query
               .filter_by(user_id=current_user.id, read=False)
               .update({'read': True}, synchronize_session=False))
    db.session.commit()
    return json_ok({'message': 'All notifications marked as read', 'updated': updated})


@notifications_bp.route('/<int:notification_id>', methods=['DELETE'])
@login_required
def delete_notification(notification_id):
    notification = db.session.get(Notification, notification_id)
    if not notification:
        return json_error('Notification not found', 404)
    if notification.user_id != current_user.id:
        return json_error('Forbidden', 403)

    db.session.delete(notification)
    db.session.commit()
    return json_ok({'message': 'Notification deleted'})
