from flask import Blueprint, jsonify, request, current_app

from app.clients import get_clients
from app.errors import NotFoundError, PaymentDeclined, ValidationError
from app.extensions import db
from app.models import Order
from app.models.booking import ORDER_CANCELLED
from app.services.audit import log_event
from app.services.booking_service import mark_order_paid

payments = Blueprint('payments', __name__)


def _payable_order(order_id):
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError('Order not found')
    if order.is_paid:
        raise ValidationError('This order has already been paid.')
    if order.status == ORDER_CANCELLED:
        raise ValidationError('This order was cancelled.')
    return order


def _order_summary(order):
    # payment endpoints are reachable with just an order id, so no contact details
    return {'id': order.id, 'status': order.status, 'payment_status': order.payment_status,
            'total': order.total}


def _order_for_reference(provider, reference):
    return Order.query.filter_by(payment_provider=provider, payment_reference=reference).first()


# --- Card payments ---
@payments.route('/api/orders/<int:order_id>/payment-intent', methods=['POST'])
def create_payment_intent(order_id):
    order = _payable_order(order_id)
    intent = get_clients().stripe.create_payment_intent(
        order.total_minor_units,
        description=f'Party Rental Order #{order.id}',
        receipt_email=order.customer_email,
        metadata={'order_id': order.id},
    )
    order.payment_provider = 'stripe'
    order.payment_reference = intent['id']
    db.session.commit()

    log_event('Payment Intent Created', 'SUCCESS',
              {'order_id': order.id, 'payment_intent': intent['id'], 'amount': order.total_minor_units},
              ip_address=request.remote_addr)
    return jsonify({
        'success': True,
        'client_secret': intent.get('client_secret'),
        'payment_intent_id': intent['id'],
        'amount': order.total_minor_units,
    })


@payments.route('/api/orders/<int:order_id>/confirm-payment', methods=['POST'])
def confirm_payment(order_id):
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError('Order not found')
    if order.is_paid:
        return jsonify({'success': True, 'message': 'Order already paid', 'order': _order_summary(order)})

    data = request.get_json(silent=True) or {}
    intent_id = data.get('payment_intent_id') or order.payment_reference
    if not intent_id:
        raise ValidationError(errors={'payment_intent_id': 'No payment was started for this order.'})

    intent = get_clients().stripe.retrieve_payment_intent(intent_id)
    if str(intent.get('metadata', {}).get('order_id')) != str(order.id):
        raise ValidationError('This payment does not belong to the order.')

    status = intent.get('status')
    if status != 'succeeded':
        log_event('Payment Declined', 'FAILURE', {'order_id': order.id, 'payment_intent': intent_id, 'status': status},
                  ip_address=request.remote_addr)
        raise PaymentDeclined('Payment not successful', provider_status=status)

    mark_order_paid(order, 'stripe', intent_id)
    return jsonify({'success': True, 'message': 'Payment confirmed and booking saved',
                    'order': _order_summary(order)})


@payments.route('/api/webhook', methods=['POST'])
def stripe_webhook():
    event = get_clients().stripe.construct_event(request.get_data(), request.headers.get('Stripe-Signature'))
    event_type = event.get('type')
    intent = event.get('data', {}).get('object', {})

    if event_type == 'payment_intent.succeeded':
        order_id = intent.get('metadata', {}).get('order_id')
        order = db.session.get(Order, int(order_id)) if str(order_id or '').isdigit() else None
        if order is None:
            current_app.logger.warning('Webhook for unknown order %r (intent %s)', order_id, intent.get('id'))
        else:
            mark_order_paid(order, 'stripe', intent.get('id'))
    elif event_type == 'payment_intent.payment_failed':
        error = intent.get('last_payment_error') or {}
        current_app.logger.info('Payment failed for intent %s: %s', intent.get('id'), error.get('message'))
        log_event('Payment Declined', 'FAILURE',
                  {'payment_intent': intent.get('id'), 'reason': error.get('message')})
    else:
        current_app.logger.debug('Ignoring webhook event %s', event_type)

    return jsonify({'received': True})


# --- PayPal ---
@payments.route('/api/paypal/orders', methods=['POST'])
def create_paypal_order():
    data = request.get_json(silent=True) or {}
    try:
        order_id = int(data.get('order_id'))
    except (TypeError, ValueError):
        raise ValidationError(errors={'order_id': 'Order id is required.'})
    order = _payable_order(order_id)

    paypal_order = get_clients().paypal.create_order(
        order.total, f'Party Rental Order #{order.id}', reference_id=order.id)
    order.payment_provider = 'paypal'
    order.payment_reference = paypal_order['id']
    db.session.commit()

    log_event('PayPal Order Created', 'SUCCESS', {'order_id': order.id, 'paypal_order': paypal_order['id']},
              ip_address=request.remote_addr)
    return jsonify({'success': True, 'id': paypal_order['id'], 'status': paypal_order.get('status')})


@payments.route('/api/paypal/orders/<paypal_order_id>/capture', methods=['POST'])
def capture_paypal_order(paypal_order_id):
    order = _order_for_reference('paypal', paypal_order_id)
    if order is None:
        raise NotFoundError('Order not found')
    if order.is_paid:
        return jsonify({'success': True, 'message': 'Order already paid', 'order': _order_summary(order)})

    capture = get_clients().paypal.capture_order(paypal_order_id)
    status = capture.get('status')
    if status != 'COMPLETED':
        log_event('Payment Declined', 'FAILURE', {'order_id': order.id, 'paypal_order': paypal_order_id, 'status': status},
                  ip_address=request.remote_addr)
        raise PaymentDeclined('PayPal payment was not completed', provider_status=status)

    mark_order_paid(order, 'paypal', paypal_order_id)
    return jsonify({'success': True, 'message': 'Payment confirmed and booking saved',
                    'order': _order_summary(order)})
