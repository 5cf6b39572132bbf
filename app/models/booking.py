import uuid

from app.extensions import db
from app.services.address_validation import AddressValidation
from app.services.cart import CartLine
from app.services.delivery import PICKUP
from app.utils import utcnow

ORDER_PENDING = 'pending'
ORDER_CONFIRMED = 'confirmed'
ORDER_PAID = 'paid'
ORDER_CANCELLED = 'cancelled'
ORDER_STATUSES = (ORDER_PENDING, ORDER_CONFIRMED, ORDER_PAID, ORDER_CANCELLED)


def _new_session_id():
    return uuid.uuid4().hex


class BookingSession(db.Model):
    """A customer's in-progress booking, held server-side until checkout."""
    id = db.Column(db.String(32), primary_key=True, default=_new_session_id)
    city_id = db.Column(db.Integer, db.ForeignKey('city.id'), nullable=True)
    delivery_method = db.Column(db.String(10), nullable=False, default=PICKUP)
    rental_days = db.Column(db.Integer, nullable=False, default=1)
    event_date = db.Column(db.Date)
    customer_name = db.Column(db.String(150), default='')
    customer_phone = db.Column(db.String(30), default='')
    customer_email = db.Column(db.String(150), default='')
    cart = db.Column(db.JSON, default=list)
    address = db.Column(db.JSON, default=dict)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    city = db.relationship('City')

    def cart_lines(self):
        return [CartLine.from_dict(item) for item in (self.cart or [])]

    def set_cart(self, lines):
        # JSON columns only detect reassignment, never in-place mutation
        self.cart = [line.to_dict() for line in lines]

    def validation(self):
        return AddressValidation.from_dict(self.address)

    def store_validation(self, validation):
        self.address = validation.to_dict()

    def to_dict(self):
        validation = self.validation()
        return {
            'id': self.id,
            'city': self.city.to_dict() if self.city else None,
            'delivery_method': self.delivery_method,
            'rental_days': self.rental_days,
            'event_date': self.event_date.isoformat() if self.event_date else None,
            'customer': {
                'name': self.customer_name,
                'phone': self.customer_phone,
                'email': self.customer_email,
            },
            'cart': self.cart or [],
            'address': {
                'street': validation.street,
                'state': validation.state,
                'zipcode': validation.zipcode,
                'status': validation.status,
                'is_valid': validation.is_valid,
                'distance_miles': validation.distance_miles,
                'delivery_fee': validation.delivery_fee,
                'collection_fee': validation.collection_fee,
                'fee_warning': validation.fee_warning,
                'validated': validation.geocoded.to_dict() if validation.geocoded else None,
            },
        }

    def __repr__(self):
        return f"BookingSession('{self.id}', '{self.delivery_method}')"


class ClientQuery(db.Model):
    """Audit record written each time a customer's address validates."""
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(32), index=True)
    customer_name = db.Column(db.String(150))
    customer_email = db.Column(db.String(150))
    customer_phone = db.Column(db.String(30))
    address = db.Column(db.JSON)
    event_date = db.Column(db.Date)
    rental_days = db.Column(db.Integer)
    delivery_method = db.Column(db.String(10))
    city_name = db.Column(db.String(100))
    distance = db.Column(db.Float, default=0.0)
    delivery_fee = db.Column(db.Float, default=0.0)
    collection_fee = db.Column(db.Float, default=0.0)
    cart = db.Column(db.JSON, default=list)
    pricing = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def cart_lines(self):
        return [CartLine.from_dict(item) for item in (self.cart or [])]

    def to_dict(self):
        return {
            'id': self.id,
            'customer_name': self.customer_name,
            'customer_email': self.customer_email,
            'customer_phone': self.customer_phone,
            'address': self.address,
            'event_date': self.event_date.isoformat() if self.event_date else None,
            'rental_days': self.rental_days,
            'delivery_method': self.delivery_method,
            'selected_city': self.city_name,
            'distance': self.distance,
            'delivery_fee': self.delivery_fee,
            'collection_fee': self.collection_fee,
            'cart': self.cart or [],
            'pricing': self.pricing,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Order(db.Model):
    """
    A checked-out booking. Cart lines and pricing are stored by value and
    never change afterwards, whatever happens to catalog prices.
    """
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(32), index=True)
    customer_name = db.Column(db.String(150), nullable=False)
    customer_email = db.Column(db.String(150), nullable=False, index=True)
    customer_phone = db.Column(db.String(30), nullable=False)
    delivery_method = db.Column(db.String(10), nullable=False)
    city = db.Column(db.JSON)
    address = db.Column(db.JSON)
    distance = db.Column(db.Float, default=0.0)
    event_date = db.Column(db.Date, nullable=False)
    rental_days = db.Column(db.Integer, nullable=False)
    cart = db.Column(db.JSON, nullable=False)
    pricing = db.Column(db.JSON, nullable=False)
    total = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=ORDER_PENDING, index=True)
    payment_status = db.Column(db.String(20), nullable=False, default='pending')
    payment_provider = db.Column(db.String(20))
    payment_reference = db.Column(db.String(100), index=True)
    paid_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    sales = db.relationship('Sale', backref='order', lazy='dynamic')

    @property
    def is_paid(self):
        return self.payment_status == 'paid'

    @property
    def total_minor_units(self):
        return int(round(self.total * 100))

    def to_dict(self):
        return {
            'id': self.id,
            'customer_info': {
                'name': self.customer_name,
                'email': self.customer_email,
                'phone': self.customer_phone,
            },
            'delivery_method': self.delivery_method,
            'delivery_city': self.city,
            'address': self.address,
            'distance': self.distance,
            'event_date': self.event_date.isoformat() if self.event_date else None,
            'rental_days': self.rental_days,
            'cart': self.cart,
            'pricing': self.pricing,
            'status': self.status,
            'payment_status': self.payment_status,
            'payment_provider': self.payment_provider,
            'payment_reference': self.payment_reference,
            'paid_at': self.paid_at.isoformat() if self.paid_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"Order({self.id}, '{self.customer_email}', '{self.status}')"


class Sale(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('order.id'), nullable=False)
    customer_email = db.Column(db.String(150))
    customer_name = db.Column(db.String(150))
    total = db.Column(db.Float, nullable=False)
    payment_provider = db.Column(db.String(20))
    payment_reference = db.Column(db.String(100))
    event_date = db.Column(db.Date)
    rental_days = db.Column(db.Integer)
    delivery_method = db.Column(db.String(10))
    sale_date = db.Column(db.DateTime, default=utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'order_id': self.order_id,
            'customer_email': self.customer_email,
            'customer_name': self.customer_name,
            'total': self.total,
            'payment_provider': self.payment_provider,
            'payment_reference': self.payment_reference,
            'event_date': self.event_date.isoformat() if self.event_date else None,
            'rental_days': self.rental_days,
            'delivery_method': self.delivery_method,
            'sale_date': self.sale_date.isoformat() if self.sale_date else None,
        }


class Customer(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(150), unique=True, nullable=False, index=True)
    name = db.Column(db.String(150))
    phone = db.Column(db.String(30))
    addresses = db.Column(db.JSON, default=list)
    total_orders = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=utcnow)
    last_order_at = db.Column(db.DateTime)

    def __repr__(self):
        return f"Customer('{self.email}', orders={self.total_orders})"
