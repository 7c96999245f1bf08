from agrireach.opportunities.models import Opportunity, JobApplication
from agrireach.notifications.models import Notification

JOB = {
    'title': 'Rice harvest helpers',
    'description': 'Two weeks of harvest work',
    'category': 'Harvesting',
    'location': 'Nueva Ecija',
    'pay_rate': 500,
    'pay_type': 'daily',
    'required_skills': [{'name': 'Crop Harvesting', 'min_level': 2, 'required': True}, 'Rice Cultivation'],
}


def post_job(client, headers, **overrides):
    response = client.post('/api/opportunities', json=dict(JOB, **overrides), headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']['opportunity']


def test_create_requires_recruiter(client, make_user):
    _, worker = make_user(roles=['worker'])
    assert client.post('/api/opportunities', json=JOB).status_code == 401
    response = client.post('/api/opportunities', json=JOB, headers=worker)
    assert response.status_code == 403
    assert response.get_json()['ok'] is False


def test_list_hides_hidden_and_adds_match_score(client, make_user):
    _, recruiter = make_user(roles=['recruiter'])
    _, worker = make_user(roles=['worker'], skills=[{'name': 'Crop Harvesting', 'level': 3}])
    visible = post_job(client, recruiter)
    hidden = post_job(client, recruiter, title='Removed job')
    assert client.delete(f"/api/opportunities/{hidden['id']}", headers=recruiter).status_code == 200

    response = client.get('/api/opportunities', headers=worker)
    data = response.get_json()['data']
    assert [o['id'] for o in data['opportunities']] == [visible['id']]
    assert data['opportunities'][0]['matchScore'] == 50

    anonymous = client.get('/api/opportunities').get_json()['data']
    assert 'matchScore' not in anonymous['opportunities'][0]


def test_hidden_opportunity_is_not_found_for_others(client, make_user):
    _, recruiter = make_user(roles=['recruiter'])
    _, worker = make_user(roles=['worker'])
    job = post_job(client, recruiter)
    client.delete(f"/api/opportunities/{job['id']}", headers=recruiter)

    assert client.get(f"/api/opportunities/{job['id']}", headers=worker).status_code == 404
    assert client.get(f"/api/opportunities/{job['id']}", headers=recruiter).status_code == 200


def test_get_increments_views(client, make_user, get_row):
    _, recruiter = make_user(roles=['recruiter'])
    job = post_job(client, recruiter)
    client.get(f"/api/opportunities/{job['id']}")
    client.get(f"/api/opportunities/{job['id']}")
    assert get_row(Opportunity, job['id'])['views'] == 2


def test_update_only_by_owner(client, make_user):
    _, recruiter = make_user(roles=['recruiter'])
    _, other = make_user(roles=['recruiter'])
    job = post_job(client, recruiter)

    response = client.put(f"/api/opportunities/{job['id']}", json={'title': 'Changed'}, headers=other)
    assert response.status_code == 403
    response = client.put(f"/api/opportunities/{job['id']}", json={'title': 'Changed'}, headers=recruiter)
    assert response.status_code == 200
    assert response.get_json()['data']['opportunity']['title'] == 'Changed'


def test_apply_once_and_notify_recruiter(app, client, make_user, get_row):
    recruiter_id, recruiter = make_user(roles=['recruiter'])
    worker_id, worker = make_user(roles=['worker'], skills=['Rice Cultivation'])
    job = post_job(client, recruiter)

    response = client.post(f"/api/opportunities/{job['id']}/apply", json={'cover_letter': 'Hello'}, headers=worker)
    assert response.status_code == 201
    application = response.get_json()['data']['application']
    assert application['match_score'] == 50
    assert application['status'] == 'pending'

    response = client.post(f"/api/opportunities/{job['id']}/apply", json={}, headers=worker)
    assert response.status_code == 409

    assert get_row(Opportunity, job['id'])['applications_count'] == 1
    with app.app_context():
        assert Notification.query.filter_by(user_id=recruiter_id, type='job').count() == 1

    check = client.get(f"/api/opportunities/{job['id']}/check-application", headers=worker).get_json()['data']
    assert check['hasApplied'] is True


def test_recruiter_cannot_apply(client, make_user):
    _, recruiter = make_user(roles=['recruiter'])
    job = post_job(client, recruiter)
    response = client.post(f"/api/opportunities/{job['id']}/apply", json={}, headers=recruiter)
    assert response.status_code == 403


def test_update_application_status_notifies_worker(app, client, make_user, get_row):
    _, recruiter = make_user(roles=['recruiter'])
    worker_id, worker = make_user(roles=['worker'])
    job = post_job(client, recruiter)
    application = client.post(f"/api/opportunities/{job['id']}/apply", json={}, headers=worker) \
        .get_json()['data']['application']

    response = client.put(f"/api/opportunities/applications/{application['id']}",
                          json={'status': 'accepted'}, headers=worker)
    assert response.status_code == 403

    response = client.put(f"/api/opportunities/applications/{application['id']}",
                          json={'status': 'accepted'}, headers=recruiter)
    assert response.status_code == 200
    assert get_row(JobApplication, application['id'])['status'] == 'accepted'
    with app.app_context():
        notification = Notification.query.filter_by(user_id=worker_id, type='application_update').one()
        assert notification.title == 'Application Accepted'

    listed = client.get(f"/api/opportunities/{job['id']}/applications", headers=recruiter).get_json()['data']
    assert listed['total'] == 1


def test_save_and_list_saved(client, make_user):
    _, recruiter = make_user(roles=['recruiter'])
    _, worker = make_user(roles=['worker'])
    job = post_job(client, recruiter)

    assert client.post(f"/api/opportunities/{job['id']}/save", headers=worker).status_code == 200
    assert client.post(f"/api/opportunities/{job['id']}/save", headers=worker).status_code == 200
    saved = client.get('/api/opportunities/saved', headers=worker).get_json()['data']
    assert saved['total'] == 1

    assert client.delete(f"/api/opportunities/{job['id']}/save", headers=worker).status_code == 200
    assert client.get('/api/opportunities/saved', headers=worker).get_json()['data']['total'] == 0


def test_similar_and_stats(client, make_user):
    _, recruiter = make_user(roles=['recruiter'])
    first = post_job(client, recruiter)
    second = post_job(client, recruiter, title='More harvest work', location='Tarlac')
    post_job(client, recruiter, title='Fishpond caretaker', category='Aquaculture', location='Bulacan')

    similar = client.get(f"/api/opportunities/{first['id']}/similar").get_json()['data']['opportunities']
    assert [o['id'] for o in similar] == [second['id']]

    stats = client.get('/api/opportunities/stats').get_json()['data']
    assert stats['active'] == 3
    assert stats['byCategory'] == {'Harvesting': 2, 'Aquaculture': 1}


def test_posted_requirement_without_flag_is_optional(client, make_user):
    _, recruiter = make_user(roles=['recruiter'])
    _, worker = make_user(roles=['worker'], skills=[{'name': 'Crop Harvesting', 'level': 1}])
    job = post_job(client, recruiter, required_skills=[{'name': 'Crop Harvesting', 'required': True},
                                                       {'name': 'Tractor Operation'}])
    assert job['required_skills'][1]['required'] is False

    opportunity = client.get(f"/api/opportunities/{job['id']}", headers=worker).get_json()['data']['opportunity']
    assert opportunity['matchScore'] == 67
