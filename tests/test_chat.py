import pytest

from agrireach.chat.models import ChatConversation


class RecordingPusher:
    def __init__(self):
        self.events = []

    def trigger(self, channel, event, data):
        self.events.append((channel, event, data))


@pytest.fixture
def pusher_events(app):
    client = RecordingPusher()
    app.extensions['pusher'] = client
    return client.events


def send(client, headers, recipient_id, content='Hello'):
    return client.post('/api/chat/messages', json={'recipient_id': recipient_id, 'content': content},
                       headers=headers)


def test_send_message_pushes_to_pair_channel(app, client, make_user, pusher_events):
    alice_id, alice = make_user()
    bob_id, _ = make_user()

    response = send(client, alice, bob_id)
    assert response.status_code == 201
    message = response.get_json()['data']['message']
    assert message['read'] is False

    low, high = sorted([alice_id, bob_id])
    channel, event, data = pusher_events[-1]
    assert channel == f'private-chat-{low}-{high}'
    assert event == 'new-message'
    assert data['id'] == message['id']

    send(client, alice, bob_id, 'Second')
    with app.app_context():
        conversation = ChatConversation.query.one()
        assert (conversation.user_a_id, conversation.user_b_id) == (low, high)


def test_send_message_rejections(client, make_user):
    alice_id, alice = make_user()
    banned_id, _ = make_user(status='banned')

    assert send(client, alice, alice_id).status_code == 400
    assert send(client, alice, banned_id).status_code == 404
    assert send(client, alice, 9999).status_code == 404
    assert client.post('/api/chat/messages', json={'recipient_id': banned_id, 'content': ''},
                       headers=alice).status_code == 400


def test_reading_marks_messages_read(client, make_user, pusher_events):
    alice_id, alice = make_user()
    bob_id, bob = make_user()
    send(client, alice, bob_id, 'One')
    send(client, alice, bob_id, 'Two')

    conversations = client.get('/api/chat/conversations', headers=bob).get_json()['data']['conversations']
    assert conversations[0]['unread_count'] == 2
    assert conversations[0]['other_user']['id'] == alice_id
    assert conversations[0]['last_message']['content'] == 'Two'

    data = client.get(f'/api/chat/messages?user_id={alice_id}', headers=bob).get_json()['data']
    assert [m['content'] for m in data['messages']] == ['One', 'Two']
    assert data['hasMore'] is False
    assert pusher_events[-1][1] == 'messages-read'
    assert pusher_events[-1][2] == {'reader_id': bob_id, 'count': 2}

    conversations = client.get('/api/chat/conversations', headers=bob).get_json()['data']['conversations']
    assert conversations[0]['unread_count'] == 0


def test_message_history_pages_from_newest(client, make_user):
    _, alice = make_user()
    bob_id, _ = make_user()
    for n in range(3):
        send(client, alice, bob_id, f'm{n}')

    data = client.get(f'/api/chat/messages?user_id={bob_id}&limit=2', headers=alice).get_json()['data']
    assert [m['content'] for m in data['messages']] == ['m1', 'm2']
    assert data['hasMore'] is True
    assert client.get('/api/chat/messages', headers=alice).status_code == 400


def test_chat_user_search(client, make_user):
    _, alice = make_user(full_name='Alice')
    make_user(full_name='Bob Farmer')
    make_user(full_name='Bob Banned', status='banned')
    users = client.get('/api/chat/users?q=bob', headers=alice).get_json()['data']['users']
    assert [u['name'] for u in users] == ['Bob Farmer']


def test_pusher_auth_requires_login(client):
    response = client.post('/api/pusher/auth', data={'socket_id': '1.2', 'channel_name': 'private-chat-1-2'})
    assert response.status_code == 401


def test_pusher_auth_checks_channel(client, make_user):
    user_id, headers = make_user()
    other_id, _ = make_user()

    response = client.post('/api/pusher/auth', data={'socket_id': '1.2'}, headers=headers)
    assert response.status_code == 400

    for channel in (f'private-notifications-{other_id}', 'private-chat-98-99', 'presence-lobby'):
        response = client.post('/api/pusher/auth', data={'socket_id': '1.2', 'channel_name': channel},
                               headers=headers)
        assert response.status_code == 403

    # Allowed channel, but no realtime credentials configured
    response = client.post('/api/pusher/auth', data={'socket_id': '1.2',
                                                     'channel_name': f'private-notifications-{user_id}'},
                           headers=headers)
    assert response.status_code == 503


def test_pusher_auth_signs_allowed_channel(app, client, make_user):
    app.config.update(PUSHER_APP_ID='1', PUSHER_KEY='key', PUSHER_SECRET='secret')
    user_id, headers = make_user()
    other_id, _ = make_user()
    low, high = sorted([user_id, other_id])

    response = client.post('/api/pusher/auth', data={'socket_id': '1234.5678',
                                                     'channel_name': f'private-chat-{low}-{high}'},
                           headers=headers)
    assert response.status_code == 200
    assert response.get_json()['auth'].startswith('key:')
