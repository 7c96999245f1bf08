# agrireach/marketplace/routes.py
import secrets
from datetime import timedelta
from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import func, or_
from agrireach.init_db import db, utcnow, isoformat
from agrireach.api import json_ok, json_error, validate_body, get_pagination, paginate
from agrireach.decorators import roles_required, is_owner_or_admin
from agrireach.logging_config import setup_logging
from agrireach.authentication.tokens import hash_token
from agrireach.authentication.views import (issue_otp, otp_rate_limited, find_matching_otp, consume_otps,
                                            send_otp_email)
from agrireach.marketplace.models import Product, CartItem, CheckoutToken, Order
from agrireach.marketplace.schemas import (ProductCreate, ProductUpdate, CartAdd, CartUpdate, CheckoutOtpRequest,
                                           CheckoutOtpVerify, CheckoutRequest, OrderStatusUpdate)
from agrireach.notifications.views import notify_order_placed, notify_order_status

marketplace_bp = Blueprint('marketplace', __name__)

logger = setup_logging()

CHECKOUT_OTP_MINUTES = 10
CHECKOUT_TOKEN_MINUTES = 30

SORT_ORDERS = {
    'newest': (Product.created_at.desc(), Product.id.desc()),
    'oldest': (Product.created_at.asc(), Product.id.asc()),
    'price-low': (Product.price.asc(), Product.id.asc()),
    'price-high': (Product.price.desc(), Product.id.desc()),
    'name': (Product.title.asc(), Product.id.asc()),
}

# Forward moves a seller may make; cancellation is handled separately
SELLER_TRANSITIONS = {
    'pending': ('confirmed',),
    'confirmed': ('shipped',),
    'shipped': ('delivered',),
}


def get_visible_product(product_id):
    product = db.session.get(Product, product_id)
    if not product:
        return None
    if product.status != 'active' and not is_owner_or_admin(product.seller_id):
        return None
    return product


# Products

@marketplace_bp.route('/products', methods=['GET'])
def list_products():
    page, limit = get_pagination()
    if current_user.is_authenticated:
        query = Product.query.filter(or_(Product.status == 'active',
                                         (Product.seller_id == current_user.id) & (Product.status != 'removed')))
    else:
        query = Product.query.filter(Product.status == 'active')

    category = request.args.get('category')
    if category and category != 'all':
        query = query.filter(Product.category == category)
    if request.args.get('seller_id', type=int):
        query = query.filter(Product.seller_id == request.args.get('seller_id', type=int))
    q = request.args.get('q', '').strip()
    if q:
        query = query.filter(or_(Product.title.ilike(f'%{q}%'), Product.description.ilike(f'%{q}%')))
    if request.args.get('organic') == 'true':
        query = query.filter(Product.organic.is_(True))
    min_price = request.args.get('minPrice', type=float)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    max_price = request.args.get('maxPrice', type=float)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)
    if request.args.get('location'):
        query = query.filter(Product.location.ilike(f"%{request.args['location']}%"))

    query = query.order_by(*SORT_ORDERS.get(request.args.get('sort', 'newest'), SORT_ORDERS['newest']))
    products, total, pages = paginate(query, page, limit)
    return json_ok({'products': [p.to_dict() for p in products], 'total': total, 'page': page, 'pages': pages})


@marketplace_bp.route('/products', methods=['POST'])
@roles_required('buyer')
def create_product():
    payload, error = validate_body(ProductCreate)
    if error:
        return error

    try:
        product = Product(seller_id=current_user.id, status='pending_approval',
                          location=payload.location or current_user.location,
                          **payload.model_dump(exclude={'location'}))
        db.session.add(product)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating product: {e}")
        return json_error('Failed to create product', 500)

    logger.info(f"Product {product.id} listed by user {current_user.id} pending approval.")
    return json_ok({'product': product.to_dict()}, 201)


@marketplace_bp.route('/products/<int:product_id>', methods=['GET'])
def get_product(product_id):
    product = get_visible_product(product_id)
    if not product:
        return json_error('Product not found', 404)

    product.views = (product.views or 0) + 1
    db.session.commit()
    return json_ok({'product': product.to_dict()})


@marketplace_bp.route('/products/<int:product_id>', methods=['PUT'])
@login_required
def update_product(product_id):
    product = db.session.get(Product, product_id)
    if not product or product.status == 'removed':
        return json_error('Product not found', 404)
    if not is_owner_or_admin(product.seller_id):
        return json_error('Forbidden', 403)

    payload, error = validate_body(ProductUpdate)
    if error:
        return error

    updates = payload.model_dump(exclude_unset=True)
    if updates.get('status') == 'active' and product.status == 'pending_approval' \
            and not current_user.has_role('admin'):
        return json_error('Product is awaiting approval', 403)
    for field, value in updates.items():
        setattr(product, field, value)
    db.session.commit()
    return json_ok({'product': product.to_dict()})


@marketplace_bp.route('/products/<int:product_id>', methods=['DELETE'])
@login_required
def delete_product(product_id):
    product = db.session.get(Product, product_id)
    if not product or product.status == 'removed':
        return json_error('Product not found', 404)
    if not is_owner_or_admin(product.seller_id):
        return json_error('Forbidden', 403)

    product.status = 'removed'
    CartItem.query.filter_by(product_id=product.id).delete(synchronize_session=False)
    db.session.commit()

    logger.info(f"Product {product.id} removed by user {current_user.id}.")
    return json_ok({'message': 'Product deleted'})


@marketplace_bp.route('/categories', methods=['GET'])
def list_categories():
    rows = (db.session.query(Product.category, func.count(Product.id), func.avg(Product.price))
            .filter(Product.status == 'active')
            .group_by(Product.category)
            .order_by(func.count(Product.id).desc(), Product.category.asc())
            .all())
    categories = [{'name': name, 'count': count, 'avgPrice': round(avg or 0, 2)} for name, count, avg in rows]
    return json_ok({'categories': categories})


# Cart

def cart_summary(items):
    return {
        'totalItems': sum(item.quantity for item in items),
        'totalPrice': round(sum(item.product.price * item.quantity for item in items), 2),
    }


@marketplace_bp.route('/cart', methods=['GET'])
@login_required
def get_cart():
    items = CartItem.query.filter_by(user_id=current_user.id).order_by(CartItem.created_at.asc()).all()

    stale = [item for item in items if not item.product or item.product.status == 'removed']
    if stale:
        for item in stale:
            db.session.delete(item)
        db.session.commit()
        logger.info(f"Removed {len(stale)} stale cart line(s) for user {current_user.id}.")
        items = [item for item in items if item not in stale]

    return json_ok({'items': [item.to_dict() for item in items], 'summary': cart_summary(items)})


@marketplace_bp.route('/cart', methods=['POST'])
@login_required
def add_to_cart():
    payload, error = validate_body(CartAdd)
    if error:
        return error

    product = db.session.get(Product, payload.product_id)
    if not product or product.status != 'active':
        return json_error('Product not available', 404)
    if product.seller_id == current_user.id:
        return json_error('You cannot add your own product to the cart', 400)

    item = CartItem.query.filter_by(user_id=current_user.id, product_id=product.id).first()
    quantity = payload.quantity + (item.quantity if item else 0)
    if quantity > product.quantity_available:
        return json_error(f'Only {product.quantity_available} {product.unit} available', 400)

    if item:
        item.quantity = quantity
    else:
        item = CartItem(user_id=current_user.id, product_id=product.id, quantity=quantity)
        db.session.add(item)
    db.session.commit()
    return json_ok({'item': item.to_dict()})


@marketplace_bp.route('/cart/<int:item_id>', methods=['PUT'])
@login_required
def update_cart_item(item_id):
    item = db.session.get(CartItem, item_id)
    if not item or item.user_id != current_user.id:
        return json_error('Cart item not found', 404)

    payload, error = validate_body(CartUpdate)
    if error:
        return error

    if not item.product or item.product.status != 'active':
        return json_error('Product not available', 400)
    if payload.quantity > item.product.quantity_available:
        return json_error(f'Only {item.product.quantity_available} {item.product.unit} available', 400)

    item.quantity = payload.quantity
    db.session.commit()
    return json_ok({'item': item.to_dict()})


@marketplace_bp.route('/cart/<int:item_id>', methods=['DELETE'])
@login_required
def remove_cart_item(item_id):
    item = db.session.get(CartItem, item_id)
    if not item or item.user_id != current_user.id:
        return json_error('Cart item not found', 404)

    db.session.delete(item)
    db.session.commit()
    return json_ok({'message': 'Item removed from cart'})


# Checkout

@marketplace_bp.route('/checkout/send-otp', methods=['POST'])
@login_required
def checkout_send_otp():
    payload, error = validate_body(CheckoutOtpRequest)
    if error:
        return error

    email = payload.email or current_user.email
    if otp_rate_limited(email, 'checkout'):
        return json_error('Too many requests. Please wait 15 minutes before requesting a new code.', 429)

    otp = issue_otp(email, 'checkout', CHECKOUT_OTP_MINUTES, user_id=current_user.id)
    if not send_otp_email(email, otp, 'checkout', CHECKOUT_OTP_MINUTES, name=current_user.full_name,
                          amount=payload.amount):
        return json_error('Failed to send verification code', 500)

    expires_at = utcnow() + timedelta(minutes=CHECKOUT_OTP_MINUTES)
    return json_ok({'message': 'Verification code sent successfully', 'expiresAt': isoformat(expires_at)})


@marketplace_bp.route('/checkout/verify-otp', methods=['POST'])
@login_required
def checkout_verify_otp():
    payload, error = validate_body(CheckoutOtpVerify)
    if error:
        return error

    email = payload.email or current_user.email
    if not find_matching_otp(email, 'checkout', payload.code):
        logger.warning(f"Invalid checkout code for {email}")
        return json_error('Invalid or expired verification code', 400)

    checkout_token = secrets.token_hex(32)
    expires_at = utcnow() + timedelta(minutes=CHECKOUT_TOKEN_MINUTES)
    consume_otps(email, 'checkout')
    db.session.add(CheckoutToken(user_id=current_user.id, email=email, token_hash=hash_token(checkout_token),
                                 expires_at=expires_at, used=False))
    db.session.commit()

    return json_ok({'message': 'Verification successful', 'checkoutToken': checkout_token,
                    'expiresAt': isoformat(expires_at)})


@marketplace_bp.route('/checkout', methods=['POST'])
@login_required
def checkout():
    payload, error = validate_body(CheckoutRequest)
    if error:
        return error

    token = CheckoutToken.query.filter_by(token_hash=hash_token(payload.checkout_token)).first()
    if not token or token.used or token.user_id != current_user.id or token.expires_at <= utcnow():
        return json_error('Invalid or expired checkout token', 400)

    items = CartItem.query.filter_by(user_id=current_user.id).all()
    if not items:
        return json_error('Your cart is empty', 400)

    problems = []
    for item in items:
        product = item.product
        if not product or product.status != 'active':
            problems.append({'cart_item_id': item.id, 'error': 'Product not available'})
        elif item.quantity > product.quantity_available:
            problems.append({'cart_item_id': item.id,
                             'error': f'Only {product.quantity_available} {product.unit} available'})
    if problems:
        return json_error('Some items in your cart cannot be ordered', 400, details=problems)

    try:
        orders = []
        for item in items:
            product = item.product
            order = Order(buyer_id=current_user.id, seller_id=product.seller_id, product_id=product.id,
                          quantity=item.quantity, total_price=round(product.price * item.quantity, 2),
                          delivery_address=payload.delivery_address, status='pending', payment_status='pending')
            db.session.add(order)
            orders.append(order)
            product.quantity_available -= item.quantity
            if product.quantity_available == 0:
                product.status = 'sold'
            db.session.delete(item)
        token.used = True
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error during checkout for user {current_user.id}: {e}")
        return json_error('Checkout failed', 500)

    for order in orders:
        notify_order_placed(order.seller_id, current_user.full_name, order.product.title, order.quantity, order.id)

    logger.info(f"User {current_user.id} placed {len(orders)} order(s).")
    return json_ok({'orders': [o.to_dict() for o in orders],
                    'total': round(sum(o.total_price for o in orders), 2)}, 201)


# Orders

@marketplace_bp.route('/orders', methods=['GET'])
@login_required
def list_orders():
    page, limit = get_pagination()
    if request.args.get('role') == 'seller':
        query = Order.query.filter_by(seller_id=current_user.id)
    else:
        query = Order.query.filter_by(buyer_id=current_user.id)
    if request.args.get('status'):
        query = query.filter(Order.status == request.args['status'])

    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    orders, total, pages = paginate(query, page, limit)
    return json_ok({'orders': [o.to_dict() for o in orders], 'total': total, 'page': page, 'pages': pages})


@marketplace_bp.route('/orders/<int:order_id>', methods=['GET'])
@login_required
def get_order(order_id):
    order = db.session.get(Order, order_id)
    if not order:
        return json_error('Order not found', 404)
    if current_user.id not in (order.buyer_id, order.seller_id) and not current_user.has_role('admin'):
        return json_error('Forbidden', 403)
    return json_ok({'order': order.to_dict()})


@marketplace_bp.route('/orders/<int:order_id>', methods=['PUT'])
@login_required
def update_order(order_id):
    order = db.session.get(Order, order_id)
    if not order:
        return json_error('Order not found', 404)

    is_seller = current_user.id == order.seller_id or current_user.has_role('admin')
    is_buyer = current_user.id == order.buyer_id
    if not (is_seller or is_buyer):
        return json_error('Forbidden', 403)

    payload, error = validate_body(OrderStatusUpdate)
    if error:
        return error

    new_status = payload.status
    if new_status == 'cancelled':
        if order.status in ('delivered', 'cancelled'):
            return json_error(f'Order is already {order.status}', 400)
        if not is_seller and order.status != 'pending':
            return json_error('Orders can only be cancelled while pending', 400)
        product = order.product
        if product:
            product.quantity_available += order.quantity
            if product.status == 'sold':
                product.status = 'active'
        if order.payment_status == 'paid':
            order.payment_status = 'refunded'
    else:
        if not is_seller:
            return json_error('Only the seller can update this order', 403)
        if new_status not in SELLER_TRANSITIONS.get(order.status, ()):
            return json_error(f'Cannot change order from {order.status} to {new_status}', 400)
        if new_status == 'delivered':
            order.payment_status = 'paid'

    order.status = new_status
    db.session.commit()

    recipient = order.seller_id if current_user.id == order.buyer_id else order.buyer_id
    notify_order_status(recipient, order.product.title if order.product else 'your item', new_status, order.id)

    logger.info(f"Order {order.id} moved to {new_status} by user {current_user.id}.")
    return json_ok({'order': order.to_dict()})
