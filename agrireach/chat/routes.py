# agrireach/chat/routes.py
import re
from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import and_, func, or_
from agrireach.init_db import db, utcnow, isoformat
from agrireach.api import json_ok, json_error, validate_body, get_pagination
from agrireach.logging_config import setup_logging
from agrireach.authentication.models import User
from agrireach.chat.models import ChatConversation, ChatMessage
from agrireach.chat.schemas import MessageCreate
from agrireach.realtime import get_pusher_client, private_chat_channel, trigger

chat_bp = Blueprint('chat', __name__)
pusher_bp = Blueprint('pusher', __name__)

logger = setup_logging()

CHAT_CHANNEL = re.compile(r'^private-chat-(\d+)-(\d+)$')
NOTIFICATION_CHANNEL = re.compile(r'^private-notifications-(\d+)$')
USER_SEARCH_LIMIT = 20


def get_or_create_conversation(user_id, other_id):
    low, high = sorted([user_id, other_id])
    conversation = ChatConversation.query.filter_by(user_a_id=low, user_b_id=high).first()
    if conversation is None:
        conversation = ChatConversation(user_a_id=low, user_b_id=high)
        db.session.add(conversation)
    return conversation


def between(user_id, other_id):
    return or_(and_(ChatMessage.sender_id == user_id, ChatMessage.recipient_id == other_id),
               and_(ChatMessage.sender_id == other_id, ChatMessage.recipient_id == user_id))


@chat_bp.route('/messages', methods=['POST'])
@login_required
def send_message():
    payload, error = validate_body(MessageCreate)
    if error:
        return error

    if payload.recipient_id == current_user.id:
        return json_error('You cannot message yourself', 400)
    recipient = db.session.get(User, payload.recipient_id)
    if not recipient or not recipient.is_active:
        return json_error('Recipient not found', 404)

    message = ChatMessage(sender_id=current_user.id, recipient_id=recipient.id,
                          content=payload.content, message_type=payload.message_type)
    db.session.add(message)
    db.session.flush()

    conversation = get_or_create_conversation(current_user.id, recipient.id)
    conversation.last_message_id = message.id
    conversation.last_message_at = message.created_at
    db.session.commit()

    data = message.to_dict()
    trigger(private_chat_channel(current_user.id, recipient.id), 'new-message', data)
    return json_ok({'message': data}, 201)


@chat_bp.route('/messages', methods=['GET'])
@login_required
def get_messages():
    other_id = request.args.get('user_id', type=int)
    if not other_id:
        return json_error('user_id is required', 400)

    page, limit = get_pagination(default_limit=50)
    query = ChatMessage.query.filter(between(current_user.id, other_id))
    total = query.count()

    # Newest page first, returned oldest first
    messages = (query.order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
                .offset((page - 1) * limit).limit(limit).all())
    messages.reverse()

    unread = ChatMessage.query.filter(ChatMessage.sender_id == other_id,
                                      ChatMessage.recipient_id == current_user.id,
                                      ChatMessage.read_at.is_(None))
    marked = unread.update({'read_at': utcnow()}, synchronize_session=False)
    db.session.commit()
    if marked:
        trigger(private_chat_channel(current_user.id, other_id), 'messages-read',
                {'reader_id': current_user.id, 'count': marked})

    return json_ok({'messages': [m.to_dict() for m in messages], 'total': total, 'page': page,
                    'hasMore': page * limit < total})


@chat_bp.route('/conversations', methods=['GET'])
@login_required
def list_conversations():
    conversations = (ChatConversation.query
                     .filter(or_(ChatConversation.user_a_id == current_user.id,
                                 ChatConversation.user_b_id == current_user.id))
                     .order_by(ChatConversation.last_message_at.desc())
                     .all())

    unread_by_sender = dict(db.session.query(ChatMessage.sender_id, func.count(ChatMessage.id))
                            .filter(ChatMessage.recipient_id == current_user.id, ChatMessage.read_at.is_(None))
                            .group_by(ChatMessage.sender_id).all())

    items = []
    for conversation in conversations:
        other = conversation.other_user(current_user.id)
        last = conversation.last_message
        items.append({
            'id': conversation.id,
            'other_user': {'id': other.id, 'name': other.full_name, 'avatar': other.avatar_url,
                           'email': other.email} if other else None,
            'last_message': {'id': last.id, 'content': last.content, 'message_type': last.message_type,
                             'sender_id': last.sender_id, 'created_at': isoformat(last.created_at)}
            if last else None,
            'unread_count': unread_by_sender.get(other.id, 0) if other else 0,
            'last_message_at': isoformat(conversation.last_message_at),
            'created_at': isoformat(conversation.created_at),
        })
    return json_ok({'conversations': items})


@chat_bp.route('/users', methods=['GET'])
@login_required
def search_chat_users():
    q = request.args.get('q', '').strip()
    query = User.query.filter(User.id != current_user.id, User.status == 'active')
    if q:
        query = query.filter(or_(User.full_name.ilike(f'%{q}%'), User.email.ilike(f'%{q}%')))
    users = query.order_by(User.full_name.asc()).limit(USER_SEARCH_LIMIT).all()
    return json_ok({'users': [{'id': u.id, 'name': u.full_name, 'avatar': u.avatar_url, 'email': u.email,
                               'role': u.role} for u in users]})


@pusher_bp.route('/auth', methods=['POST'])
@login_required
def pusher_auth():
    socket_id = request.form.get('socket_id')
    channel_name = request.form.get('channel_name')
    if not socket_id or not channel_name:
        return json_error('Missing socket_id or channel_name', 400)

    chat_match = CHAT_CHANNEL.match(channel_name)
    notification_match = NOTIFICATION_CHANNEL.match(channel_name)
    if chat_match:
        allowed = current_user.id in (int(chat_match.group(1)), int(chat_match.group(2)))
    elif notification_match:
        allowed = int(notification_match.group(1)) == current_user.id
    else:
        allowed = False
    if not allowed:
        logger.warning(f"User {current_user.id} denied access to channel {channel_name}")
        return json_error('Unauthorized to access this channel', 403)

    client = get_pusher_client()
    if client is None:
        return json_error('Realtime service is not configured', 503)

    try:
        auth = client.authenticate(channel=channel_name, socket_id=socket_id)
    except ValueError as e:
        logger.error(f"Pusher auth error: {e}")
        return json_error('Authentication failed', 400)
    return auth, 200
