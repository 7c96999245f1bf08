from agrireach.notifications.views import create_notification


def notify(app, user_id, **overrides):
    fields = {'type': 'system', 'title': 'Hello', 'message': 'Welcome to AgriReach'}
    fields.update(overrides)
    with app.app_context():
        return create_notification(user_id, **fields).id


def test_list_and_unread_count(app, client, make_user):
    user_id, headers = make_user()
    other_id, _ = make_user()
    notify(app, user_id)
    notify(app, user_id, type='order', priority='high')
    notify(app, other_id)

    data = client.get('/api/notifications', headers=headers).get_json()['data']
    assert data['total'] == 2
    assert data['unreadCount'] == 2
    assert data['notifications'][0]['type'] == 'order'

    data = client.get('/api/notifications?priority=high', headers=headers).get_json()['data']
    assert data['total'] == 1
    assert client.get('/api/notifications?priority=urgent', headers=headers).status_code == 400
    assert client.get('/api/notifications/unread-count', headers=headers).get_json()['data'] == {'count': 2}


def test_mark_read_is_owner_only(app, client, make_user):
    user_id, headers = make_user()
    _, other = make_user()
    notification_id = notify(app, user_id)

    assert client.put(f'/api/notifications/{notification_id}/read', headers=other).status_code == 403
    assert client.put(f'/api/notifications/{notification_id}/read', headers=headers).status_code == 200
    assert client.put('/api/notifications/999/read', headers=headers).status_code == 404

    data = client.get('/api/notifications?read=true', headers=headers).get_json()['data']
    assert [n['id'] for n in data['notifications']] == [notification_id]
    assert data['unreadCount'] == 0


def test_mark_all_read(app, client, make_user):
    user_id, headers = make_user()
    notify(app, user_id)
    notify(app, user_id)
    response = client.put('/api/notifications/read-all', headers=headers)
    assert response.get_json()['data']['updated'] == 2
    assert client.get('/api/notifications/unread-count', headers=headers).get_json()['data'] == {'count': 0}


def test_delete_notification(app, client, make_user):
    user_id, headers = make_user()
    _, other = make_user()
    notification_id = notify(app, user_id)

    assert client.delete(f'/api/notifications/{notification_id}', headers=other).status_code == 403
    assert client.delete(f'/api/notifications/{notification_id}', headers=headers).status_code == 200
    assert client.get('/api/notifications', headers=headers).get_json()['data']['total'] == 0


def test_notification_is_pushed(app, make_user):
    events = []

    class RecordingPusher:
        def trigger(self, channel, event, data):
            events.append((channel, event, data))

    app.extensions['pusher'] = RecordingPusher()
    user_id, _ = make_user()
    notify(app, user_id, title='Pushed')
    assert events[0][0] == f'private-notifications-{user_id}'
    assert events[0][1] == 'new-notification'
    assert events[0][2]['title'] == 'Pushed'


def test_notifications_require_login(client):
    assert client.get('/api/notifications').status_code == 401
