# agrireach/notifications/views.py
from agrireach.init_db import db
from agrireach.notifications.models import Notification
from agrireach.realtime import trigger, notification_channel
from agrireach.logging_config import setup_logging

logger = setup_logging()


def create_notification(user_id, type, title, message, priority='medium', action_url=None, commit=True):
    """Store a notification and push it to the user's realtime channel.

    Pass ``commit=False`` to let the caller commit it with its own changes; the
    realtime push then happens once the row has an id, after the flush.
    """
    notification = Notification(user_id=user_id, type=type, title=title, message=message,
                                priority=priority, action_url=action_url, read=False)
    db.session.add(notification)
    if commit:
        db.session.commit()
    else:
        db.session.flush()

    trigger(notification_channel(user_id), 'new-notification', notification.to_dict())
    return notification


def notify_job_application(recruiter_id, applicant_name, job_title, job_id):
    return create_notification(recruiter_id, 'job', 'New Job Application',
                               f'{applicant_name} applied for {job_title}',
                               priority='high', action_url=f'/opportunities/{job_id}')


def notify_application_status(worker_id, job_title, status, job_id):
    if status == 'accepted':
        title, message, priority = ('Application Accepted',
                                    f'Your application for "{job_title}" has been accepted!', 'high')
    elif status == 'rejected':
        title, message, priority = ('Application Update',
                                    f'Your application for "{job_title}" was not selected this time', 'medium')
    else:
        title, message, priority = ('Application Status Updated',
                                    f'Your application for "{job_title}" has been {status}', 'medium')
    return create_notification(worker_id, 'application_update', title, message,
                               priority=priority, action_url=f'/opportunities/{job_id}')


def notify_order_placed(seller_id, buyer_name, product_title, quantity, order_id):
    return create_notification(seller_id, 'order', 'New Order Received',
                               f'{buyer_name} ordered {quantity} x {product_title}',
                               priority='high', action_url=f'/marketplace/orders/{order_id}')


def notify_order_status(user_id, product_title, status, order_id):
    return create_notification(user_id, 'order', 'Order Update',
                               f'Order for {product_title} is now {status}',
                               action_url=f'/marketplace/orders/{order_id}')


def notify_thread_reply(author_id, replier_name, thread_title, thread_id):
    return create_notification(author_id, 'community', 'New Reply',
                               f'{replier_name} replied to "{thread_title}"',
                               priority='low', action_url=f'/community/threads/{thread_id}')


def notify_new_review(farmer_user_id, reviewer_name, rating):
    return create_notification(farmer_user_id, 'review', 'New Review',
                               f'{reviewer_name} left you a {rating}-star review',
                               priority='low', action_url='/reviews')


def notify_account_status(user_id, status, reason=None):
    if status == 'active':
        message = 'Your account has been reactivated.'
    else:
        message = f'Your account has been {status}.'
        if reason:
            message += f' Reason: {reason}'
    return create_notification(user_id, 'account_status', 'Account Status Updated', message, priority='high')
