from agrireach.init_db import db
from agrireach.community.models import ForumCategory, Thread
from agrireach.notifications.models import Notification


def post_thread(client, headers, **overrides):
    body = {'title': 'Best rice varieties for rainy season', 'content': 'What do you plant?',
            'category': 'Crop Tips'}
    body.update(overrides)
    response = client.post('/api/community/threads', json=body, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']['thread']


def test_thread_creates_category_by_name(client, make_user, get_row):
    _, author = make_user()
    thread = post_thread(client, author)
    assert thread['category'] == 'Crop Tips'

    # Same category again, by a different spelling of the name
    second = post_thread(client, author, category='crop tips')
    assert second['category_id'] == thread['category_id']
    assert get_row(ForumCategory, thread['category_id'])['posts_count'] == 2
    assert get_row(ForumCategory, thread['category_id'])['slug'] == 'crop-tips'


def test_thread_requires_a_category(client, make_user):
    _, author = make_user()
    response = client.post('/api/community/threads', json={'title': 'No category', 'content': 'x'},
                           headers=author)
    assert response.status_code == 400

    response = client.post('/api/community/threads', json={'title': 'Bad id', 'content': 'x', 'category_id': 42},
                           headers=author)
    assert response.status_code == 404


def test_category_creation_is_admin_only(client, make_user):
    _, user = make_user()
    _, admin = make_user(roles=['admin'])
    assert client.post('/api/community/categories', json={'name': 'Livestock'}, headers=user).status_code == 403
    assert client.post('/api/community/categories', json={'name': 'Livestock'}, headers=admin).status_code == 201
    assert client.post('/api/community/categories', json={'name': 'livestock'}, headers=admin).status_code == 409


def test_deleted_thread_is_hidden(client, make_user, get_row):
    _, author = make_user()
    _, reader = make_user()
    thread = post_thread(client, author)

    assert client.delete(f"/api/community/threads/{thread['id']}", headers=reader).status_code == 403
    assert client.delete(f"/api/community/threads/{thread['id']}", headers=author).status_code == 200

    assert get_row(Thread, thread['id'])['status'] == 'hidden'
    assert get_row(ForumCategory, thread['category_id'])['posts_count'] == 0
    assert client.get('/api/community/threads').get_json()['data']['total'] == 0
    assert client.get(f"/api/community/threads/{thread['id']}", headers=reader).status_code == 404


def test_pinned_threads_come_first(client, make_user):
    _, author = make_user()
    first = post_thread(client, author, title='First thread')
    post_thread(client, author, title='Second thread')
    assert client.post(f"/api/community/threads/{first['id']}/pin", headers=author).get_json()['data'] == \
        {'pinned': True}

    threads = client.get('/api/community/threads').get_json()['data']['threads']
    assert threads[0]['id'] == first['id']


def test_reply_notifies_author_and_counts(app, client, make_user, get_row):
    author_id, author = make_user()
    _, replier = make_user(full_name='Rina Replier')
    thread = post_thread(client, author)

    response = client.post(f"/api/community/threads/{thread['id']}/posts", json={'content': 'IR64 works'},
                           headers=replier)
    assert response.status_code == 201

    # Replying to your own thread does not notify
    client.post(f"/api/community/threads/{thread['id']}/posts", json={'content': 'Thanks'}, headers=author)

    assert get_row(Thread, thread['id'])['replies_count'] == 2
    posts = client.get(f"/api/community/threads/{thread['id']}/posts").get_json()['data']['posts']
    assert [p['content'] for p in posts] == ['IR64 works', 'Thanks']
    with app.app_context():
        notifications = Notification.query.filter_by(user_id=author_id, type='community').all()
        assert len(notifications) == 1
        assert notifications[0].message == f'Rina Replier replied to "{thread["title"]}"'


def test_locked_thread_rejects_replies(client, make_user):
    _, author = make_user()
    _, admin = make_user(roles=['admin'])
    thread = post_thread(client, author)
    response = client.put(f"/api/admin/community/threads/{thread['id']}", json={'action': 'lock'}, headers=admin)
    assert response.status_code == 200
    assert response.get_json()['data']['thread']['locked'] is True

    response = client.post(f"/api/community/threads/{thread['id']}/posts", json={'content': 'Late'},
                           headers=author)
    assert response.status_code == 403
    assert response.get_json()['error'] == 'Thread is locked'


def test_thread_like_toggles(client, make_user):
    _, author = make_user()
    _, fan = make_user()
    thread = post_thread(client, author)

    data = client.post(f"/api/community/threads/{thread['id']}/vote", headers=fan).get_json()['data']
    assert data == {'liked': True, 'likes_count': 1}
    detail = client.get(f"/api/community/threads/{thread['id']}", headers=fan).get_json()['data']['thread']
    assert detail['liked'] is True
    data = client.post(f"/api/community/threads/{thread['id']}/vote", headers=fan).get_json()['data']
    assert data == {'liked': False, 'likes_count': 0}


def test_post_votes_toggle_and_switch(client, make_user):
    _, author = make_user()
    _, voter = make_user()
    thread = post_thread(client, author)
    post = client.post(f"/api/community/threads/{thread['id']}/posts", json={'content': 'Use compost'},
                       headers=author).get_json()['data']['post']
    url = f"/api/community/posts/{post['id']}/vote"

    assert client.post(url, json={'vote_type': 'like'}, headers=voter).get_json()['data'] == \
        {'likes_count': 1, 'vote': 'like'}
    assert client.post(url, json={'vote_type': 'dislike'}, headers=voter).get_json()['data'] == \
        {'likes_count': 0, 'vote': 'dislike'}
    assert client.post(url, json={'vote_type': 'dislike'}, headers=voter).get_json()['data'] == \
        {'likes_count': 0, 'vote': None}
    assert client.post(url, json={'vote_type': 'love'}, headers=voter).status_code == 400


def test_admin_hard_delete(app, client, make_user):
    _, author = make_user()
    _, admin = make_user(roles=['admin'])
    thread = post_thread(client, author)
    client.post(f"/api/community/threads/{thread['id']}/posts", json={'content': 'Reply'}, headers=author)

    assert client.delete(f"/api/admin/community/threads/{thread['id']}", headers=admin).status_code == 200
    with app.app_context():
        assert Thread.query.count() == 0


def test_stats_and_trending(client, make_user):
    _, author = make_user()
    quiet = post_thread(client, author, title='Quiet thread')
    busy = post_thread(client, author, title='Busy thread')
    client.post(f"/api/community/threads/{busy['id']}/posts", json={'content': 'One'}, headers=author)

    stats = client.get('/api/community/stats').get_json()['data']['stats']
    assert stats['totalThreads'] == 2
    assert stats['totalPosts'] == 1

    topics = client.get('/api/community/trending').get_json()['data']['topics']
    assert [t['id'] for t in topics] == [busy['id'], quiet['id']]

    activities = client.get('/api/community/recent-activity').get_json()['data']['activities']
    assert len(activities) == 3


def test_negative_limit_is_clamped(client, make_user):
    _, author = make_user()
    post_thread(client, author, title='First')
    post_thread(client, author, title='Second')

    topics = client.get('/api/community/trending?limit=-5').get_json()['data']['topics']
    assert len(topics) == 1
    activities = client.get('/api/community/recent-activity?limit=-5').get_json()['data']['activities']
    assert len(activities) == 1


def test_pending_threads_listed_for_admins_only(app, client, make_user):
    _, author = make_user()
    _, admin = make_user(roles=['admin'])
    post_thread(client, author, title='Visible')
    pending = post_thread(client, author, title='Awaiting review')
    with app.app_context():
        db.session.get(Thread, pending['id']).status = 'pending'
        db.session.commit()

    data = client.get('/api/community/threads?status=pending', headers=author).get_json()['data']
    assert [t['title'] for t in data['threads']] == ['Visible']
    assert client.get('/api/community/threads').get_json()['data']['total'] == 1

    data = client.get('/api/community/threads?status=pending', headers=admin).get_json()['data']
    assert [t['id'] for t in data['threads']] == [pending['id']]
