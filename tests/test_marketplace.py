import pytest

from agrireach.marketplace.models import Product, Order, CartItem, CheckoutToken
from agrireach.notifications.models import Notification

PRODUCT = {
    'title': 'Fresh tomatoes',
    'description': 'Harvested this morning',
    'category': 'Vegetables',
    'price': 60,
    'unit': 'kg',
    'quantity_available': 10,
}


@pytest.fixture
def seller(make_user):
    return make_user(roles=['buyer'], full_name='Sol Seller', location='Benguet')


@pytest.fixture
def admin(make_user):
    return make_user(roles=['admin'])


def list_product(client, seller_headers, admin_headers, **overrides):
    response = client.post('/api/marketplace/products', json=dict(PRODUCT, **overrides), headers=seller_headers)
    assert response.status_code == 201, response.get_json()
    product = response.get_json()['data']['product']
    assert product['status'] == 'pending_approval'
    response = client.put(f"/api/admin/marketplace/products/{product['id']}", json={'action': 'approve'},
                          headers=admin_headers)
    assert response.status_code == 200
    return response.get_json()['data']['product']


def checkout_token(client, headers, fixed_otp):
    response = client.post('/api/marketplace/checkout/send-otp', json={'amount': 120}, headers=headers)
    assert response.status_code == 200
    response = client.post('/api/marketplace/checkout/verify-otp', json={'code': fixed_otp}, headers=headers)
    assert response.status_code == 200
    return response.get_json()['data']['checkoutToken']


def test_product_listing_needs_approval(client, seller, admin, make_user):
    _, seller_headers = seller
    _, buyer = make_user(roles=['buyer'])
    response = client.post('/api/marketplace/products', json=PRODUCT, headers=seller_headers)
    product = response.get_json()['data']['product']
    assert product['location'] == 'Benguet'

    # Visible to its seller only while pending
    assert client.get(f"/api/marketplace/products/{product['id']}", headers=buyer).status_code == 404
    assert client.get('/api/marketplace/products', headers=seller_headers).get_json()['data']['total'] == 1
    assert client.get('/api/marketplace/products').get_json()['data']['total'] == 0

    response = client.put(f"/api/marketplace/products/{product['id']}", json={'status': 'active'},
                          headers=seller_headers)
    assert response.status_code == 403

    _, admin_headers = admin
    client.put(f"/api/admin/marketplace/products/{product['id']}", json={'action': 'approve'},
               headers=admin_headers)
    assert client.get(f"/api/marketplace/products/{product['id']}", headers=buyer).status_code == 200


def test_workers_cannot_list_products(client, make_user):
    _, worker = make_user(roles=['worker'])
    assert client.post('/api/marketplace/products', json=PRODUCT, headers=worker).status_code == 403


def test_product_filters_and_sorting(client, seller, admin):
    _, seller_headers = seller
    _, admin_headers = admin
    list_product(client, seller_headers, admin_headers)
    list_product(client, seller_headers, admin_headers, title='Organic lettuce', price=90, organic=True)
    list_product(client, seller_headers, admin_headers, title='Carabao mango', price=120, category='Fruits')

    data = client.get('/api/marketplace/products?sort=price-high').get_json()['data']
    assert [p['price'] for p in data['products']] == [120, 90, 60]
    data = client.get('/api/marketplace/products?organic=true').get_json()['data']
    assert [p['title'] for p in data['products']] == ['Organic lettuce']
    data = client.get('/api/marketplace/products?minPrice=70&maxPrice=100').get_json()['data']
    assert data['total'] == 1

    categories = client.get('/api/marketplace/categories').get_json()['data']['categories']
    assert categories[0] == {'name': 'Vegetables', 'count': 2, 'avgPrice': 75.0}


def test_cart_rules(client, seller, admin, make_user):
    _, seller_headers = seller
    _, admin_headers = admin
    _, buyer = make_user(roles=['buyer'])
    product = list_product(client, seller_headers, admin_headers)

    response = client.post('/api/marketplace/cart', json={'product_id': product['id']}, headers=seller_headers)
    assert response.status_code == 400

    assert client.post('/api/marketplace/cart', json={'product_id': product['id'], 'quantity': 4},
                       headers=buyer).status_code == 200
    response = client.post('/api/marketplace/cart', json={'product_id': product['id'], 'quantity': 3},
                           headers=buyer)
    assert response.get_json()['data']['item']['quantity'] == 7

    response = client.post('/api/marketplace/cart', json={'product_id': product['id'], 'quantity': 4},
                           headers=buyer)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Only 10 kg available'

    cart = client.get('/api/marketplace/cart', headers=buyer).get_json()['data']
    assert cart['summary'] == {'totalItems': 7, 'totalPrice': 420}


def test_removed_product_drops_out_of_cart(app, client, seller, admin, make_user):
    _, seller_headers = seller
    _, admin_headers = admin
    _, buyer = make_user(roles=['buyer'])
    product = list_product(client, seller_headers, admin_headers)
    client.post('/api/marketplace/cart', json={'product_id': product['id']}, headers=buyer)

    assert client.delete(f"/api/marketplace/products/{product['id']}", headers=seller_headers).status_code == 200
    cart = client.get('/api/marketplace/cart', headers=buyer).get_json()['data']
    assert cart['items'] == []
    with app.app_context():
        assert CartItem.query.count() == 0


def test_checkout_requires_verified_token(client, make_user):
    _, buyer = make_user(roles=['buyer'])
    response = client.post('/api/marketplace/checkout', json={'checkout_token': 'bogus', 'delivery_address': 'Here'},
                           headers=buyer)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid or expired checkout token'

    response = client.post('/api/marketplace/checkout/verify-otp', json={'code': '000000'}, headers=buyer)
    assert response.status_code == 400


def test_checkout_creates_orders(app, client, seller, admin, make_user, get_row, fixed_otp):
    seller_id, seller_headers = seller
    _, admin_headers = admin
    buyer_id, buyer = make_user(roles=['buyer'])
    product = list_product(client, seller_headers, admin_headers)
    client.post('/api/marketplace/cart', json={'product_id': product['id'], 'quantity': 10}, headers=buyer)

    token = checkout_token(client, buyer, fixed_otp)
    response = client.post('/api/marketplace/checkout', json={'checkout_token': token, 'delivery_address': 'Baguio'},
                           headers=buyer)
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['total'] == 600
    assert len(data['orders']) == 1

    row = get_row(Product, product['id'])
    assert row['quantity_available'] == 0
    assert row['status'] == 'sold'
    with app.app_context():
        assert CartItem.query.filter_by(user_id=buyer_id).count() == 0
        assert CheckoutToken.query.one().used is True
        assert Notification.query.filter_by(user_id=seller_id, type='order').count() == 1

    # Tokens are single use
    client.post('/api/marketplace/cart', json={'product_id': product['id']}, headers=buyer)
    response = client.post('/api/marketplace/checkout', json={'checkout_token': token, 'delivery_address': 'Baguio'},
                           headers=buyer)
    assert response.status_code == 400


def test_checkout_reports_unavailable_lines(client, seller, admin, make_user, fixed_otp):
    _, seller_headers = seller
    _, admin_headers = admin
    _, buyer = make_user(roles=['buyer'])
    product = list_product(client, seller_headers, admin_headers)
    client.post('/api/marketplace/cart', json={'product_id': product['id'], 'quantity': 5}, headers=buyer)
    client.put(f"/api/marketplace/products/{product['id']}", json={'quantity_available': 2}, headers=seller_headers)

    token = checkout_token(client, buyer, fixed_otp)
    response = client.post('/api/marketplace/checkout', json={'checkout_token': token, 'delivery_address': 'Baguio'},
                           headers=buyer)
    assert response.status_code == 400
    assert response.get_json()['details'][0]['error'] == 'Only 2 kg available'


def place_order(client, seller, admin, make_user, fixed_otp, quantity=3):
    _, seller_headers = seller
    _, admin_headers = admin
    buyer_id, buyer = make_user(roles=['buyer'])
    product = list_product(client, seller_headers, admin_headers)
    client.post('/api/marketplace/cart', json={'product_id': product['id'], 'quantity': quantity}, headers=buyer)
    token = checkout_token(client, buyer, fixed_otp)
    order = client.post('/api/marketplace/checkout', json={'checkout_token': token, 'delivery_address': 'Baguio'},
                        headers=buyer).get_json()['data']['orders'][0]
    return order, product, buyer


def test_seller_moves_order_forward(client, seller, admin, make_user, get_row, fixed_otp):
    order, _, buyer = place_order(client, seller, admin, make_user, fixed_otp)
    _, seller_headers = seller
    url = f"/api/marketplace/orders/{order['id']}"

    assert client.put(url, json={'status': 'confirmed'}, headers=buyer).status_code == 403
    assert client.put(url, json={'status': 'shipped'}, headers=seller_headers).status_code == 400
    for status in ('confirmed', 'shipped', 'delivered'):
        assert client.put(url, json={'status': status}, headers=seller_headers).status_code == 200

    row = get_row(Order, order['id'])
    assert row['status'] == 'delivered'
    assert row['payment_status'] == 'paid'
    assert client.put(url, json={'status': 'cancelled'}, headers=seller_headers).status_code == 400

    seller_orders = client.get('/api/marketplace/orders?role=seller', headers=seller_headers).get_json()['data']
    assert seller_orders['total'] == 1
    assert client.get('/api/marketplace/orders', headers=buyer).get_json()['data']['total'] == 1


def test_buyer_cancel_restores_stock(client, seller, admin, make_user, get_row, fixed_otp):
    order, product, buyer = place_order(client, seller, admin, make_user, fixed_otp)
    assert get_row(Product, product['id'])['quantity_available'] == 7

    response = client.put(f"/api/marketplace/orders/{order['id']}", json={'status': 'cancelled'}, headers=buyer)
    assert response.status_code == 200
    assert get_row(Product, product['id'])['quantity_available'] == 10


def test_buyer_cannot_cancel_confirmed_order(client, seller, admin, make_user, fixed_otp):
    order, _, buyer = place_order(client, seller, admin, make_user, fixed_otp)
    _, seller_headers = seller
    url = f"/api/marketplace/orders/{order['id']}"
    client.put(url, json={'status': 'confirmed'}, headers=seller_headers)

    response = client.put(url, json={'status': 'cancelled'}, headers=buyer)
    assert response.status_code == 400
    assert client.put(url, json={'status': 'cancelled'}, headers=seller_headers).status_code == 200


def test_order_visible_to_parties_only(client, seller, admin, make_user, fixed_otp):
    order, _, buyer = place_order(client, seller, admin, make_user, fixed_otp)
    _, stranger = make_user(roles=['buyer'])
    assert client.get(f"/api/marketplace/orders/{order['id']}", headers=buyer).status_code == 200
    assert client.get(f"/api/marketplace/orders/{order['id']}", headers=stranger).status_code == 403
