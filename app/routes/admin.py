import datetime
from contextlib import contextmanager
from functools import wraps

from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user
from sqlalchemy import func

from app.errors import NotFoundError, ValidationError
from app.extensions import db
from app.forms.forms import CityForm, OrderStatusForm, ProductForm, json_formdata
from app.models import BookingSession, City, ClientQuery, Order, Product, Sale
from app.models.booking import ORDER_STATUSES
from app.services.audit import log_event
from app.services.booking_service import tax_rate
from app.services.pricing import admin_total, approximate_tax_from_total
from app.utils import parse_iso_date

admin = Blueprint('admin', __name__)


def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'success': False, 'message': 'Authentication required'}), 401
        if not current_user.is_admin:
            return jsonify({'success': False, 'message': 'Admin access required'}), 403
        return f(*args, **kwargs)
    return decorated_function


@contextmanager
def session_management():
    """Commits the block's changes, or rolls them back and re-raises."""
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def _payload():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Expected a JSON object.')
    return data


def _validated(form):
    if not form.validate():
        raise ValidationError(errors={name: errors[0] for name, errors in form.errors.items()})
    return form


def _get_or_404(model, object_id, label):
    obj = db.session.get(model, object_id)
    if obj is None:
        raise NotFoundError(f'{label} not found')
    return obj


@admin.route('/dashboard')
@admin_required
def dashboard():
    revenue = db.session.query(func.coalesce(func.sum(Sale.total), 0.0)).scalar()
    orders_by_status = dict(db.session.query(Order.status, func.count(Order.id)).group_by(Order.status).all())
    return jsonify({
        'success': True,
        'products': Product.query.count(),
        'cities': City.query.count(),
        'client_queries': ClientQuery.query.count(),
        'orders': {status: orders_by_status.get(status, 0) for status in ORDER_STATUSES},
        'revenue': round(revenue, 2),
    })


# --- Cities ---
@admin.route('/cities')
@admin_required
def cities_list():
    cities = City.query.order_by(City.name).all()
    return jsonify({'success': True, 'cities': [c.to_dict() for c in cities]})


@admin.route('/cities', methods=['POST'])
@admin_required
def add_city():
    form = _validated(CityForm(formdata=json_formdata(_payload())))
    city = City()
    form.populate_obj(city)
    with session_management():
        db.session.add(city)
    current_app.logger.info('City %s created by %s', city.name, current_user.email)
    return jsonify({'success': True, 'message': 'City added successfully', 'city': city.to_dict()}), 201


@admin.route('/cities/<int:city_id>', methods=['PUT', 'PATCH'])
@admin_required
def edit_city(city_id):
    city = _get_or_404(City, city_id, 'City')
    # unchanged fields are resubmitted so InputRequired sees them
    form = _validated(CityForm(formdata=json_formdata({**city.to_dict(), **_payload()})))
    with session_management():
        form.populate_obj(city)
    return jsonify({'success': True, 'message': 'City updated successfully', 'city': city.to_dict()})


@admin.route('/cities/<int:city_id>', methods=['DELETE'])
@admin_required
def delete_city(city_id):
    city = _get_or_404(City, city_id, 'City')
    with session_management():
        # orders keep their own snapshot of the city; open sessions must pick again
        BookingSession.query.filter_by(city_id=city.id).update({'city_id': None})
        db.session.delete(city)
    current_app.logger.info('City %s deleted by %s', city_id, current_user.email)
    return jsonify({'success': True, 'message': 'City deleted successfully'})


# --- Products ---
def _product_form(data, product=None):
    if product is None:
        current = {'is_active': True}
    else:
        current = {
            'name': product.name,
            'description': product.description,
            'base_price': product.base_price,
            'addon_name': product.addon_name,
            'addon_price': product.addon_price if product.addon_name else None,
            'is_active': product.is_active,
        }
    return _validated(ProductForm(formdata=json_formdata({**current, **data})))


def _image_urls(data):
    urls = data.get('image_urls')
    if urls is None:
        return None
    if not isinstance(urls, list) or not all(isinstance(url, str) for url in urls):
        raise ValidationError(errors={'image_urls': 'Image URLs must be a list of strings.'})
    return urls


@admin.route('/products')
@admin_required
def products_list():
    products = Product.query.order_by(Product.name).all()
    return jsonify({'success': True, 'products': [p.to_dict() for p in products]})


@admin.route('/products', methods=['POST'])
@admin_required
def add_product():
    data = _payload()
    form = _product_form(data)
    product = Product(image_urls=_image_urls(data) or [])
    form.populate_obj(product)
    if not product.addon_name:
        product.addon_name, product.addon_price = None, 0.0
    with session_management():
        db.session.add(product)
    current_app.logger.info('Product %s created by %s', product.name, current_user.email)
    return jsonify({'success': True, 'message': 'Product added successfully', 'product': product.to_dict()}), 201


@admin.route('/products/<int:product_id>', methods=['PUT', 'PATCH'])
@admin_required
def edit_product(product_id):
    product = _get_or_404(Product, product_id, 'Product')
    data = _payload()
    form = _product_form(data, product)
    image_urls = _image_urls(data)
    with session_management():
        form.populate_obj(product)
        if not product.addon_name:
            product.addon_name, product.addon_price = None, 0.0
        if image_urls is not None:
            product.image_urls = image_urls
    return jsonify({'success': True, 'message': 'Product updated successfully', 'product': product.to_dict()})


@admin.route('/products/<int:product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    product = _get_or_404(Product, product_id, 'Product')
    with session_management():
        db.session.delete(product)
    current_app.logger.info('Product %s deleted by %s', product_id, current_user.email)
    return jsonify({'success': True, 'message': 'Product deleted successfully'})


# --- Client queries ---
@admin.route('/client-queries')
@admin_required
def client_queries():
    limit = request.args.get('limit', 100, type=int)
    queries = ClientQuery.query.order_by(ClientQuery.created_at.desc(), ClientQuery.id.desc()).limit(limit).all()
    rate = tax_rate()
    results = []
    for query in queries:
        total = admin_total(query.cart_lines(), query.rental_days or 1,
                            query.delivery_fee or 0.0, query.collection_fee or 0.0, rate)
        item = query.to_dict()
        item['total'] = round(total, 2)
        item['tax'] = round(approximate_tax_from_total(total, rate), 2)
        results.append(item)
    return jsonify({'success': True, 'client_queries': results, 'count': len(results)})


# --- Orders ---
@admin.route('/orders')
@admin_required
def orders_list():
    status = request.args.get('status')
    query = Order.query
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(errors={'status': 'Unknown order status.'})
        query = query.filter_by(status=status)
    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
    return jsonify({'success': True, 'orders': [o.to_dict() for o in orders], 'count': len(orders)})


@admin.route('/orders/<int:order_id>/status', methods=['PUT', 'PATCH'])
@admin_required
def update_order_status(order_id):
    order = _get_or_404(Order, order_id, 'Order')
    form = _validated(OrderStatusForm(formdata=json_formdata(_payload())))
    previous = order.status
    with session_management():
        order.status = form.status.data
    log_event('Order Status Changed', 'SUCCESS',
              {'order_id': order.id, 'from': previous, 'to': order.status, 'by': current_user.email},
              ip_address=request.remote_addr)
    return jsonify({'success': True, 'message': 'Order status updated', 'order': order.to_dict()})


# --- Sales ---
@admin.route('/sales')
@admin_required
def sales_list():
    try:
        start_date = parse_iso_date(request.args.get('start_date'))
        end_date = parse_iso_date(request.args.get('end_date'))
    except ValueError:
        raise ValidationError(errors={'date': 'Use the YYYY-MM-DD format.'})
    limit = request.args.get('limit', 100, type=int)

    query = Sale.query
    if start_date:
        query = query.filter(Sale.sale_date >= datetime.datetime.combine(start_date, datetime.time.min))
    if end_date:
        query = query.filter(Sale.sale_date < datetime.datetime.combine(end_date + datetime.timedelta(days=1),
                                                                        datetime.time.min))
    sales = query.order_by(Sale.sale_date.desc(), Sale.id.desc()).limit(limit).all()
    return jsonify({'success': True, 'sales': [s.to_dict() for s in sales], 'count': len(sales)})
