from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user

from app.clients import get_clients
from app.errors import NotFoundError, ValidationError
from app.extensions import db
from app.models import BookingSession, City, Order, Product
from app.routes.admin import admin_required
from app.services import booking_service
from app.utils import rental_schedule

main = Blueprint('main', __name__)


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Expected a JSON object.')
    return data


def _get_session(session_id):
    booking = db.session.get(BookingSession, session_id)
    if booking is None:
        raise NotFoundError('Booking session not found')
    return booking


def _get_order(order_id):
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError('Order not found')
    return order


@main.route('/')
@main.route('/api/health')
def health():
    return jsonify({'status': 'ok', 'message': 'Party Rental backend is running'})


# --- Catalog ---
@main.route('/api/products')
def list_products():
    products = Product.query.filter_by(is_active=True).order_by(Product.name).all()
    return jsonify({'success': True, 'products': [p.to_dict() for p in products]})


@main.route('/api/cities')
def list_cities():
    cities = City.query.order_by(City.name).all()
    return jsonify({'success': True, 'cities': [c.to_dict() for c in cities]})


# --- Booking sessions ---
@main.route('/api/booking/sessions', methods=['POST'])
def create_booking_session():
    data = _json_body()
    booking = BookingSession()
    db.session.add(booking)
    db.session.flush()
    if data:
        booking_service.update_session(booking, data)
    else:
        db.session.commit()
    return jsonify({'success': True, 'session': booking.to_dict()}), 201


@main.route('/api/booking/sessions/<session_id>')
def get_booking_session(session_id):
    booking = _get_session(session_id)
    return jsonify({'success': True, 'session': booking.to_dict()})


@main.route('/api/booking/sessions/<session_id>', methods=['PATCH'])
def update_booking_session(session_id):
    booking = _get_session(session_id)
    booking_service.update_session(booking, _json_body())
    return jsonify({'success': True, 'session': booking.to_dict()})


@main.route('/api/booking/sessions/<session_id>/validate-address', methods=['POST'])
def validate_address(session_id):
    booking = _get_session(session_id)
    validation, applied, service_message = booking_service.validate_session_address(
        booking, get_clients().geocoder, ip_address=request.remote_addr)

    payload = {
        'success': validation.is_valid,
        'applied': applied,
        'session': booking.to_dict(),
    }
    if not applied:
        payload['message'] = 'A newer address validation replaced this one.'
    elif validation.is_valid:
        payload['message'] = 'Address validated successfully'
        if validation.fee_warning:
            payload['warning'] = ('This delivery looks far from the selected city. '
                                  'Please check that you chose the city closest to your address.')
    else:
        payload['message'] = (service_message or
                              'Unable to validate address. Please check and try again '
                              'or use the self pickup method.')
    return jsonify(payload)


@main.route('/api/booking/sessions/<session_id>/quote')
def quote(session_id):
    booking = _get_session(session_id)
    pricing = booking_service.session_pricing(booking)
    return jsonify({
        'success': True,
        'tax_rate': current_app.config['TAX_RATE'],
        'pricing': pricing.to_dict(),
        'schedule': rental_schedule(booking.event_date, booking.rental_days),
    })


@main.route('/api/booking/sessions/<session_id>/checkout', methods=['POST'])
def checkout(session_id):
    booking = _get_session(session_id)
    order = booking_service.checkout(booking, ip_address=request.remote_addr)
    return jsonify({
        'success': True,
        'message': 'Order created successfully',
        'order_id': order.id,
        'pricing': order.pricing,
    }), 201


# --- Orders ---
@main.route('/api/orders/<int:order_id>')
def get_order(order_id):
    """Customers prove ownership with the booking session id the order came from."""
    order = _get_order(order_id)
    is_admin = current_user.is_authenticated and current_user.is_admin
    if not is_admin and request.args.get('session') != order.session_id:
        raise NotFoundError('Order not found')
    return jsonify({'success': True, 'order': order.to_dict()})


@main.route('/api/booking/sessions/<session_id>/orders')
def session_orders(session_id):
    booking = _get_session(session_id)
    orders = Order.query.filter_by(session_id=booking.id).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return jsonify({'success': True, 'orders': [o.to_dict() for o in orders]})


@main.route('/api/customers/<email>/orders')
@admin_required
def customer_orders(email):
    orders = Order.query.filter_by(customer_email=email).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return jsonify({'success': True, 'orders': [o.to_dict() for o in orders]})
