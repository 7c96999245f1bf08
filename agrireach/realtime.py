# agrireach/realtime.py
import pusher
from flask import current_app
from agrireach.logging_config import setup_logging

logger = setup_logging()


def get_pusher_client():
    """Pusher client for the current app, created on first use. None when unconfigured."""
    if 'pusher' not in current_app.extensions:
        config = current_app.config
        if not (config.get('PUSHER_APP_ID') and config.get('PUSHER_KEY') and config.get('PUSHER_SECRET')):
            return None
        current_app.extensions['pusher'] = pusher.Pusher(
            app_id=config['PUSHER_APP_ID'],
            key=config['PUSHER_KEY'],
            secret=config['PUSHER_SECRET'],
            cluster=config['PUSHER_CLUSTER'],
            ssl=True,
        )
    return current_app.extensions['pusher']


def private_chat_channel(user_id, other_id):
    low, high = sorted([int(user_id), int(other_id)])
    return f'private-chat-{low}-{high}'


def notification_channel(user_id):
    return f'private-notifications-{user_id}'


def trigger(channel, event, data):
    client = get_pusher_client()
    if client is None:
        return False
    try:
        client.trigger(channel, event, data)
        return True
    except Exception as e:
        # Delivery is best-effort; the record is already stored
        logger.error(f"Failed to trigger '{event}' on {channel}: {e}")
        return False
