# agrireach/community/routes.py
import re
from datetime import timedelta
from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from agrireach.init_db import db, utcnow, isoformat
from agrireach.api import json_ok, json_error, validate_body, get_pagination, paginate
from agrireach.decorators import admin_required, is_owner_or_admin
from agrireach.logging_config import setup_logging
from agrireach.authentication.models import User
from agrireach.community.models import ForumCategory, Thread, ThreadReply, ThreadLike, PostVote
from agrireach.community.schemas import (CategoryCreate, ThreadCreate, ThreadUpdate, ReplyCreate, ReplyUpdate,
                                         VoteRequest)
from agrireach.notifications.views import notify_thread_reply

community_bp = Blueprint('community', __name__)

logger = setup_logging()

TRENDING_DAYS = 7
ONLINE_MINUTES = 15


def slugify(value):
    slug = re.sub(r'[^a-z0-9]+', '-', value.strip().lower()).strip('-')
    return slug or 'general'


def is_admin():
    return current_user.is_authenticated and current_user.has_role('admin')


def find_category(value):
    """Category by numeric id, slug or case-insensitive name."""
    if isinstance(value, int) or (isinstance(value, str) and value.isdigit()):
        return db.session.get(ForumCategory, int(value))
    name = str(value).strip()
    return ForumCategory.query.filter(or_(func.lower(ForumCategory.name) == name.lower(),
                                          ForumCategory.slug == slugify(name))).first()


def find_or_create_category(name):
    category = find_category(name)
    if category is None:
        category = ForumCategory(name=name.strip(), slug=slugify(name), posts_count=0)
        db.session.add(category)
        db.session.flush()
        logger.info(f"Created forum category '{category.name}'.")
    return category


def get_visible_thread(thread_id):
    thread = db.session.get(Thread, thread_id)
    if not thread:
        return None
    if thread.status == 'hidden' and not is_owner_or_admin(thread.author_id):
        return None
    return thread


# Categories

@community_bp.route('/categories', methods=['GET'])
def list_categories():
    categories = ForumCategory.query.order_by(ForumCategory.name.asc()).all()
    return json_ok({'categories': [c.to_dict() for c in categories]})


@community_bp.route('/categories', methods=['POST'])
@admin_required
def create_category():
    payload, error = validate_body(CategoryCreate)
    if error:
        return error

    if find_category(payload.name):
        return json_error('Category already exists', 409)

    try:
        category = ForumCategory(name=payload.name.strip(), slug=slugify(payload.name),
                                 description=payload.description)
        db.session.add(category)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return json_error('Category already exists', 409)

    return json_ok({'category': category.to_dict()}, 201)


@community_bp.route('/categories/<int:category_id>', methods=['GET'])
def get_category(category_id):
    category = db.session.get(ForumCategory, category_id)
    if not category:
        return json_error('Category not found', 404)
    return json_ok({'category': category.to_dict()})


# Threads

@community_bp.route('/threads', methods=['GET'])
def list_threads():
    page, limit = get_pagination()
    query = Thread.query

    status = request.args.get('status')
    if not is_admin():
        status = 'active'
    if status:
        query = query.filter(Thread.status == status)
    else:
        query = query.filter(Thread.status != 'hidden')

    category_param = request.args.get('category_id') or request.args.get('category')
    if category_param and category_param != 'all':
        category = find_category(category_param)
        if not category:
            return json_ok({'threads': [], 'total': 0, 'page': page, 'pages': 0})
        query = query.filter(Thread.category_id == category.id)

    q = request.args.get('q', '').strip()
    if q:
        query = query.filter(or_(Thread.title.ilike(f'%{q}%'), Thread.content.ilike(f'%{q}%')))

    query = query.order_by(Thread.pinned.desc(), Thread.last_activity.desc(), Thread.id.desc())
    threads, total, pages = paginate(query, page, limit)
    return json_ok({'threads': [t.to_dict() for t in threads], 'total': total, 'page': page, 'pages': pages})


@community_bp.route('/threads', methods=['POST'])
@login_required
def create_thread():
    payload, error = validate_body(ThreadCreate)
    if error:
        return error

    if payload.category_id is not None:
        category = db.session.get(ForumCategory, payload.category_id)
        if not category:
            return json_error('Category not found', 404)
    elif isinstance(payload.category, int) or payload.category.isdigit():
        category = db.session.get(ForumCategory, int(payload.category))
        if not category:
            return json_error('Category not found', 404)
    else:
        category = find_or_create_category(payload.category)

    thread = Thread(category_id=category.id, author_id=current_user.id, title=payload.title.strip(),
                    content=payload.content, tags=payload.tags, status='active', last_activity=utcnow())
    db.session.add(thread)
    category.posts_count = (category.posts_count or 0) + 1
    db.session.commit()

    logger.info(f"Thread {thread.id} created by user {current_user.id}.")
    return json_ok({'thread': thread.to_dict()}, 201)


@community_bp.route('/threads/<int:thread_id>', methods=['GET'])
def get_thread(thread_id):
    thread = get_visible_thread(thread_id)
    if not thread:
        return json_error('Thread not found', 404)

    thread.views = (thread.views or 0) + 1
    db.session.commit()

    data = thread.to_dict()
    if current_user.is_authenticated:
        data['liked'] = ThreadLike.query.filter_by(thread_id=thread.id, user_id=current_user.id).first() is not None
    return json_ok({'thread': data})


@community_bp.route('/threads/<int:thread_id>', methods=['PUT'])
@login_required
def update_thread(thread_id):
    thread = get_visible_thread(thread_id)
    if not thread:
        return json_error('Thread not found', 404)
    if not is_owner_or_admin(thread.author_id):
        return json_error('Forbidden', 403)

    payload, error = validate_body(ThreadUpdate)
    if error:
        return error

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(thread, field, value)
    db.session.commit()
    return json_ok({'thread': thread.to_dict()})


@community_bp.route('/threads/<int:thread_id>', methods=['DELETE'])
@login_required
def delete_thread(thread_id):
    thread = get_visible_thread(thread_id)
    if not thread:
        return json_error('Thread not found', 404)
    if not is_owner_or_admin(thread.author_id):
        return json_error('Forbidden', 403)

    if thread.status != 'hidden':
        thread.status = 'hidden'
        if thread.category and thread.category.posts_count:
            thread.category.posts_count -= 1
    db.session.commit()

    logger.info(f"Thread {thread.id} hidden by user {current_user.id}.")
    return json_ok({'message': 'Thread deleted'})


@community_bp.route('/threads/<int:thread_id>/pin', methods=['POST'])
@login_required
def toggle_pin(thread_id):
    thread = get_visible_thread(thread_id)
    if not thread:
        return json_error('Thread not found', 404)
    if not is_owner_or_admin(thread.author_id):
        return json_error('Forbidden', 403)

    thread.pinned = not thread.pinned
    db.session.commit()
    return json_ok({'pinned': thread.pinned})


@community_bp.route('/threads/<int:thread_id>/vote', methods=['POST'])
@login_required
def toggle_thread_like(thread_id):
    thread = get_visible_thread(thread_id)
    if not thread:
        return json_error('Thread not found', 404)

    existing = ThreadLike.query.filter_by(thread_id=thread.id, user_id=current_user.id).first()
    if existing:
        db.session.delete(existing)
        liked = False
    else:
        db.session.add(ThreadLike(thread_id=thread.id, user_id=current_user.id))
        liked = True
    db.session.flush()
    thread.likes_count = ThreadLike.query.filter_by(thread_id=thread.id).count()
    db.session.commit()
    return json_ok({'liked': liked, 'likes_count': thread.likes_count})


# Replies

@community_bp.route('/threads/<int:thread_id>/posts', methods=['GET'])
def list_posts(thread_id):
    thread = get_visible_thread(thread_id)
    if not thread:
        return json_error('Thread not found', 404)

    page, limit = get_pagination(default_limit=50)
    query = (ThreadReply.query.filter(ThreadReply.thread_id == thread.id, ThreadReply.status != 'hidden')
             .order_by(ThreadReply.created_at.asc(), ThreadReply.id.asc()))
    posts, total, pages = paginate(query, page, limit)
    return json_ok({'posts': [p.to_dict() for p in posts], 'total': total, 'page': page, 'pages': pages})


@community_bp.route('/threads/<int:thread_id>/posts', methods=['POST'])
@login_required
def create_post(thread_id):
    thread = db.session.get(Thread, thread_id)
    if not thread or thread.status == 'hidden':
        return json_error('Thread not found', 404)
    if thread.locked:
        return json_error('Thread is locked', 403)

    payload, error = validate_body(ReplyCreate)
    if error:
        return error

    if payload.parent_reply_id is not None:
        parent = db.session.get(ThreadReply, payload.parent_reply_id)
        if not parent or parent.thread_id != thread.id:
            return json_error('Parent reply not found', 404)

    post = ThreadReply(thread_id=thread.id, author_id=current_user.id, content=payload.content,
                       parent_reply_id=payload.parent_reply_id, status='active')
    db.session.add(post)
    thread.replies_count = (thread.replies_count or 0) + 1
    thread.last_activity = utcnow()
    db.session.commit()

    if thread.author_id != current_user.id:
        notify_thread_reply(thread.author_id, current_user.full_name, thread.title, thread.id)

    return json_ok({'post': post.to_dict()}, 201)


@community_bp.route('/posts/<int:post_id>', methods=['PUT'])
@login_required
def update_post(post_id):
    post = db.session.get(ThreadReply, post_id)
    if not post or post.status == 'hidden':
        return json_error('Post not found', 404)
    if not is_owner_or_admin(post.author_id):
        return json_error('Forbidden', 403)

    payload, error = validate_body(ReplyUpdate)
    if error:
        return error

    post.content = payload.content
    db.session.commit()
    return json_ok({'post': post.to_dict()})


@community_bp.route('/posts/<int:post_id>', methods=['DELETE'])
@login_required
def delete_post(post_id):
    post = db.session.get(ThreadReply, post_id)
    if not post or post.status == 'hidden':
        return json_error('Post not found', 404)
    if not is_owner_or_admin(post.author_id):
        return json_error('Forbidden', 403)

    post.status = 'hidden'
    if post.thread and post.thread.replies_count:
        post.thread.replies_count -= 1
    db.session.commit()
    return json_ok({'message': 'Post deleted'})


@community_bp.route('/posts/<int:post_id>/vote', methods=['POST'])
@login_required
def vote_post(post_id):
    post = db.session.get(ThreadReply, post_id)
    if not post or post.status == 'hidden':
        return json_error('Post not found', 404)

    payload, error = validate_body(VoteRequest)
    if error:
        return error

    existing = PostVote.query.filter_by(post_id=post.id, user_id=current_user.id).first()
    if existing is None:
        db.session.add(PostVote(post_id=post.id, user_id=current_user.id, vote_type=payload.vote_type))
        vote = payload.vote_type
    elif existing.vote_type == payload.vote_type:
        db.session.delete(existing)
        vote = None
    else:
        existing.vote_type = payload.vote_type
        vote = payload.vote_type
    db.session.flush()

    post.likes_count = PostVote.query.filter_by(post_id=post.id, vote_type='like').count()
    db.session.commit()
    return json_ok({'likes_count': post.likes_count, 'vote': vote})


# Overview

@community_bp.route('/stats', methods=['GET'])
def community_stats():
    online_since = utcnow() - timedelta(minutes=ONLINE_MINUTES)
    return json_ok({'stats': {
        'totalMembers': User.query.filter_by(status='active').count(),
        'totalThreads': Thread.query.filter_by(status='active').count(),
        'totalPosts': ThreadReply.query.filter_by(status='active').count(),
        'onlineNow': User.query.filter(User.status == 'active', User.last_login >= online_since).count(),
    }})


@community_bp.route('/trending', methods=['GET'])
def trending():
    limit = min(max(request.args.get('limit', 10, type=int) or 10, 1), 50)
    since = utcnow() - timedelta(days=TRENDING_DAYS)
    threads = (Thread.query.filter(Thread.status == 'active', Thread.created_at >= since)
               .order_by(Thread.replies_count.desc(), Thread.views.desc(), Thread.created_at.desc())
               .limit(limit).all())
    topics = [{'id': t.id, 'title': t.title, 'category': t.category.name if t.category else None,
               'replies_count': t.replies_count, 'views': t.views, 'created_at': isoformat(t.created_at)}
              for t in threads]
    return json_ok({'topics': topics})


@community_bp.route('/recent-activity', methods=['GET'])
def recent_activity():
    limit = min(max(request.args.get('limit', 10, type=int) or 10, 1), 50)
    activities = []

    for thread in (Thread.query.filter_by(status='active')
                   .order_by(Thread.created_at.desc()).limit(limit).all()):
        activities.append({'type': 'thread_created', 'user': _activity_user(thread.author), 'action': 'started',
                           'topic': thread.title, 'thread_id': thread.id, 'created_at': thread.created_at})

    for post in (ThreadReply.query.filter_by(status='active')
                 .order_by(ThreadReply.created_at.desc()).limit(limit).all()):
        activities.append({'type': 'post_reply', 'user': _activity_user(post.author), 'action': 'replied to',
                           'topic': post.thread.title if post.thread else 'Discussion',
                           'thread_id': post.thread_id, 'created_at': post.created_at})

    activities.sort(key=lambda item: item['created_at'], reverse=True)
    for item in activities:
        item['created_at'] = isoformat(item['created_at'])
    return json_ok({'activities': activities[:limit]})


def _activity_user(user):
    if not user:
        return {'full_name': 'Anonymous', 'avatar_url': None}
    return {'full_name': user.full_name, 'avatar_url': user.avatar_url}
