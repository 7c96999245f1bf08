# agrireach/marketplace/models.py
from agrireach.init_db import db, utcnow, isoformat

PRODUCT_STATUSES = ('active', 'sold', 'pending_approval', 'removed')
ORDER_STATUSES = ('pending', 'confirmed', 'shipped', 'delivered', 'cancelled')
PAYMENT_STATUSES = ('pending', 'paid', 'refunded')


class Product(db.Model):
    __tablename__ = 'products'
    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(100), nullable=False, index=True)
    price = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(30), nullable=False, default='kg')
    quantity_available = db.Column(db.Integer, nullable=False, default=0)
    location = db.Column(db.String(255))
    images = db.Column(db.JSON, default=list)
    organic = db.Column(db.Boolean, default=False, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending_approval', index=True)
    views = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    seller = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'seller_id': self.seller_id,
            'seller': self.seller.summary() if self.seller else None,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'price': self.price,
            'unit': self.unit,
            'quantity_available': self.quantity_available,
            'location': self.location,
            'images': self.images or [],
            'organic': self.organic,
            'status': self.status,
            'views': self.views,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


class CartItem(db.Model):
    __tablename__ = 'cart_items'
    __table_args__ = (db.UniqueConstraint('user_id', 'product_id', name='uq_cart_line'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    product = db.relationship('Product')

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product': self.product.to_dict() if self.product else None,
            'quantity': self.quantity,
            'subtotal': round(self.product.price * self.quantity, 2) if self.product else 0,
            'created_at': isoformat(self.created_at),
        }


class CheckoutToken(db.Model):
    __tablename__ = 'checkout_tokens'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    token_hash = db.Column(db.String(64), nullable=False, unique=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)


class Order(db.Model):
    __tablename__ = 'orders'
    id = db.Column(db.Integer, primary_key=True)
    buyer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total_price = db.Column(db.Float, nullable=False)
    delivery_address = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')
    payment_status = db.Column(db.String(20), nullable=False, default='pending')
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    product = db.relationship('Product')
    buyer = db.relationship('User', foreign_keys=[buyer_id])
    seller = db.relationship('User', foreign_keys=[seller_id])

    def to_dict(self):
        return {
            'id': self.id,
            'buyer_id': self.buyer_id,
            'seller_id': self.seller_id,
            'buyer': self.buyer.summary() if self.buyer else None,
            'seller': self.seller.summary() if self.seller else None,
            'product_id': self.product_id,
            'product': {'id': self.product.id, 'title': self.product.title, 'unit': self.product.unit,
                        'price': self.product.price, 'images': self.product.images or []}
            if self.product else None,
            'quantity': self.quantity,
            'total_price': self.total_price,
            'delivery_address': self.delivery_address,
            'status': self.status,
            'payment_status': self.payment_status,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
