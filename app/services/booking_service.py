"""Booking pipeline: session edits, address validation, checkout and payment bookkeeping."""
import logging

from flask import current_app
from flask_mail import Message

from app.errors import ExternalServiceError, ValidationError
from app.extensions import db, mail
from app.models import City, ClientQuery, Customer, Order, Product, Sale
from app.models.booking import ORDER_PAID
from app.services.address_validation import ADDRESS_FIELDS
from app.services.audit import log_event
from app.services.cart import billable_lines, build_cart, product_ids
from app.services.delivery import DELIVERY, DELIVERY_METHODS
from app.services.pricing import compute_from_inputs
from app.services.validation_service import validate_contact
from app.utils import parse_iso_date, utcnow

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ('customer_name', 'customer_phone', 'customer_email')


def tax_rate():
    return current_app.config['TAX_RATE']


def products_by_id(ids=None):
    query = Product.query.filter_by(is_active=True)
    if ids is not None:
        query = query.filter(Product.id.in_(ids))
    return {product.id: product for product in query.all()}


def update_session(booking, data):
    """
    Applies customer edits to a booking session.

    Address edits and city changes send the address validation back to
    EDITING; a delivery-method change re-prices a validated distance.
    """
    errors = {}
    validation = booking.validation()

    for name in CONTACT_FIELDS:
        if name in data:
            setattr(booking, name, (data[name] or '').strip())

    if 'delivery_method' in data:
        method = data['delivery_method']
        if method not in DELIVERY_METHODS:
            errors['delivery_method'] = 'Choose pickup or delivery.'
        else:
            booking.delivery_method = method
            validation.apply_delivery_method(method)

    if 'rental_days' in data:
        try:
            days = int(data['rental_days'])
        except (TypeError, ValueError):
            days = 0
        if days < 1:
            errors['rental_days'] = 'Rental days must be a positive whole number.'
        else:
            booking.rental_days = days

    if 'event_date' in data:
        try:
            booking.event_date = parse_iso_date(data['event_date'])
        except (TypeError, ValueError):
            errors['event_date'] = 'Use the YYYY-MM-DD format.'

    if 'city_id' in data:
        try:
            city = db.session.get(City, int(data['city_id']))
        except (TypeError, ValueError):
            city = None
        if city is None:
            errors['city_id'] = 'Unknown city.'
        elif city.id != booking.city_id:
            booking.city = city
            validation.invalidate()

    if 'items' in data:
        try:
            items = data['items'] or []
            booking.set_cart(build_cart(items, products_by_id(product_ids(items))))
        except ValidationError as e:
            errors.update(e.errors)
        except AttributeError:
            errors['items'] = 'Items must be a list of objects.'

    address_changes = {name: (data[name] or '').strip() for name in ADDRESS_FIELDS if name in data}
    if address_changes:
        validation.edit(**address_changes)

    if errors:
        db.session.rollback()
        raise ValidationError(errors=errors)

    booking.store_validation(validation)
    db.session.commit()
    return booking


def session_pricing(booking):
    validation = booking.validation()
    delivery_fee, collection_fee = validation.fees_for(booking.delivery_method)
    return compute_from_inputs(booking.cart_lines(), booking.rental_days,
                               delivery_fee, collection_fee, tax_rate())


def validate_session_address(booking, geocoder, ip_address=None):
    """
    Runs one validation attempt for the session's event address.

    Returns (validation, applied, service_message). `applied` is False when
    a newer edit or attempt superseded this one while the lookups were in
    flight; its results are then discarded.
    """
    if booking.city is None:
        raise ValidationError(errors={'city_id': 'Select a city first.'})

    validation = booking.validation()
    try:
        ticket = validation.begin(booking.customer_phone, booking.customer_email)
    finally:
        booking.store_validation(validation)
        db.session.commit()

    full_address = validation.full_address
    pickup_address = booking.city.pickup_address
    service_message = None
    try:
        event_location = geocoder.geocode(full_address)
        pickup_location = geocoder.geocode(pickup_address) if event_location else None
    except ExternalServiceError as e:
        logger.warning('Address lookup failed for session %s: %s', booking.id, e.message)
        event_location = pickup_location = None
        service_message = e.message

    # another request may have edited or re-validated the session meanwhile
    db.session.refresh(booking, with_for_update=True)
    validation = booking.validation()
    applied = validation.resolve(ticket, event_location, pickup_location, booking.delivery_method)
    if not applied:
        db.session.rollback()
        logger.info('Discarded stale address validation %s for session %s', ticket, booking.id)
        return booking.validation(), False, None

    booking.store_validation(validation)
    db.session.commit()

    if validation.is_valid:
        record_client_query(booking, validation, ip_address=ip_address)
    return validation, True, service_message


def record_client_query(booking, validation, ip_address=None):
    """Fire-and-forget audit of a validated address with the prices quoted at that moment."""
    pricing = session_pricing(booking)
    query = ClientQuery(
        session_id=booking.id,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        customer_phone=booking.customer_phone,
        address={
            'street': validation.street,
            'state': validation.state,
            'zipcode': validation.zipcode,
            'full_address': validation.full_address,
            'validated': validation.geocoded.to_dict() if validation.geocoded else None,
        },
        event_date=booking.event_date,
        rental_days=booking.rental_days,
        delivery_method=booking.delivery_method,
        city_name=booking.city.name if booking.city else '',
        distance=validation.distance_miles,
        delivery_fee=pricing.delivery_fee,
        collection_fee=pricing.collection_fee,
        cart=[line.to_dict() for line in billable_lines(booking.cart_lines())],
        pricing=pricing.to_dict(),
    )
    try:
        db.session.add(query)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error('Error saving client query for session %s: %s', booking.id, e)
        return None
    log_event('Client Query Saved', 'SUCCESS', {'client_query_id': query.id, 'session_id': booking.id},
              ip_address=ip_address)
    return query


def checkout(booking, ip_address=None):
    """Turns a complete booking session into a pending order priced server-side."""
    errors = validate_contact(booking.customer_name, booking.customer_phone, booking.customer_email)
    if booking.event_date is None:
        errors['event_date'] = 'Select the event date.'
    if booking.city is None:
        errors['city_id'] = 'Select a city.'
    lines = billable_lines(booking.cart_lines())
    if not lines:
        errors['items'] = 'Add at least one product.'
    validation = booking.validation()
    if booking.delivery_method == DELIVERY and not validation.is_valid:
        errors['address'] = 'Validate the event address before checkout.'
    if errors:
        raise ValidationError(errors=errors)

    pricing = session_pricing(booking)
    address = None
    if booking.delivery_method == DELIVERY:
        address = {
            'street': validation.street,
            'state': validation.state,
            'zipcode': validation.zipcode,
            'full_address': validation.full_address,
            'validated': validation.geocoded.to_dict() if validation.geocoded else None,
        }

    order = Order(
        session_id=booking.id,
        customer_name=booking.customer_name,
        customer_email=booking.customer_email,
        customer_phone=booking.customer_phone,
        delivery_method=booking.delivery_method,
        city=booking.city.snapshot(),
        address=address,
        distance=validation.distance_miles if booking.delivery_method == DELIVERY else 0.0,
        event_date=booking.event_date,
        rental_days=booking.rental_days,
        cart=[line.to_dict() for line in lines],
        pricing=pricing.to_dict(),
        total=pricing.total,
    )
    db.session.add(order)
    upsert_customer(order)
    db.session.commit()

    log_event('Order Created', 'SUCCESS', {'order_id': order.id, 'total': order.total}, ip_address=ip_address)
    return order


def upsert_customer(order):
    customer = Customer.query.filter_by(email=order.customer_email).first()
    address = order.address['full_address'] if order.address else None
    if customer is None:
        customer = Customer(
            email=order.customer_email,
            name=order.customer_name,
            phone=order.customer_phone,
            addresses=[address] if address else [],
            total_orders=1,
        )
        db.session.add(customer)
    else:
        addresses = list(customer.addresses or [])
        if address and address not in addresses:
            addresses.append(address)
        customer.addresses = addresses
        customer.name = order.customer_name
        customer.phone = order.customer_phone
        customer.total_orders = (customer.total_orders or 0) + 1
    customer.last_order_at = utcnow()
    return customer


def mark_order_paid(order, provider, reference):
    """
    Records a successful payment. The sale uses the order's stored total;
    nothing the provider reports is used for pricing. Safe to call twice.
    """
    if order.is_paid:
        return order.sales.first()

    order.status = ORDER_PAID
    order.payment_status = 'paid'
    order.payment_provider = provider
    order.payment_reference = reference
    order.paid_at = utcnow()
    sale = Sale(
        order=order,
        customer_email=order.customer_email,
        customer_name=order.customer_name,
        total=order.total,
        payment_provider=provider,
        payment_reference=reference,
        event_date=order.event_date,
        rental_days=order.rental_days,
        delivery_method=order.delivery_method,
    )
    db.session.add(sale)
    db.session.commit()

    log_event('Payment Confirmed', 'SUCCESS', {'order_id': order.id, 'provider': provider, 'reference': reference})
    send_confirmation_email(order)
    return sale


def send_confirmation_email(order):
    lines = [f'Hi {order.customer_name},', '',
             'Your party rental booking is confirmed.', '']
    for item in order.cart:
        addon = f" + {item['addon_name']}" if item.get('addon_selected') else ''
        lines.append(f"- {item['quantity']} x {item['product_name']}{addon}")
    lines.extend([
        '',
        f'Event date: {order.event_date.isoformat()} ({order.rental_days} day(s))',
        f"Total paid: ${order.pricing['total']:.2f}",
        '',
        'We will contact you shortly with delivery details.',
    ])
    msg = Message(subject=f'Booking #{order.id} confirmed',
                  recipients=[order.customer_email],
                  body='\n'.join(lines))
    try:
        mail.send(msg)
    except Exception as e:
        logger.error('Could not send confirmation e-mail for order %s: %s', order.id, e)
