# agrireach/community/models.py
from agrireach.init_db import db, utcnow, isoformat

THREAD_STATUSES = ('active', 'pending', 'hidden')
REPLY_STATUSES = ('active', 'hidden')
VOTE_TYPES = ('like', 'dislike')


class ForumCategory(db.Model):
    __tablename__ = 'forum_categories'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(120), unique=True, nullable=False)
    description = db.Column(db.Text)
    posts_count = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'posts_count': self.posts_count,
            'created_at': isoformat(self.created_at),
        }


class Thread(db.Model):
    __tablename__ = 'threads'
    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey('forum_categories.id'), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    tags = db.Column(db.JSON, default=list)
    pinned = db.Column(db.Boolean, default=False, nullable=False)
    locked = db.Column(db.Boolean, default=False, nullable=False)
    status = db.Column(db.String(20), default='active', nullable=False, index=True)
    views = db.Column(db.Integer, default=0, nullable=False)
    replies_count = db.Column(db.Integer, default=0, nullable=False)
    likes_count = db.Column(db.Integer, default=0, nullable=False)
    last_activity = db.Column(db.DateTime, default=utcnow, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    category = db.relationship('ForumCategory')
    author = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'category_id': self.category_id,
            'category': self.category.name if self.category else None,
            'author_id': self.author_id,
            'author': self.author.summary() if self.author else None,
            'title': self.title,
            'content': self.content,
            'tags': self.tags or [],
            'pinned': self.pinned,
            'locked': self.locked,
            'status': self.status,
            'views': self.views,
            'replies_count': self.replies_count,
            'likes_count': self.likes_count,
            'last_activity': isoformat(self.last_activity),
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class ThreadReply(db.Model):
    __tablename__ = 'thread_replies'
    id = db.Column(db.Integer, primary_key=True)
    thread_id = db.Column(db.Integer, db.ForeignKey('threads.id'), nullable=False, index=True)
    author_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    parent_reply_id = db.Column(db.Integer, db.ForeignKey('thread_replies.id'))
    content = db.Column(db.Text, nullable=False)
    likes_count = db.Column(db.Integer, default=0, nullable=False)
    status = db.Column(db.String(20), default='active', nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    thread = db.relationship('Thread')
    author = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'thread_id': self.thread_id,
            'author_id': self.author_id,
            'author': self.author.summary() if self.author else None,
            'parent_reply_id': self.parent_reply_id,
            'content': self.content,
            'likes_count': self.likes_count,
            'status': self.status,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class ThreadLike(db.Model):
    __tablename__ = 'thread_likes'
    __table_args__ = (db.UniqueConstraint('thread_id', 'user_id', name='uq_thread_like'),)
    id = db.Column(db.Integer, primary_key=True)
    thread_id = db.Column(db.Integer, db.ForeignKey('threads.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)


class PostVote(db.Model):
    __tablename__ = 'post_votes'
    __table_args__ = (db.UniqueConstraint('post_id', 'user_id', name='uq_post_vote'),)
    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('thread_replies.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    vote_type = db.Column(db.String(10), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
