import hashlib
import hmac
import json
import time

import pytest

from app.extensions import db, mail
from app.models import ApiLog, Order, Sale


@pytest.fixture
def order_id(client, booking):
    client.post(f"/api/booking/sessions/{booking['id']}/validate-address")
    response = client.post(f"/api/booking/sessions/{booking['id']}/checkout")
    return response.get_json()['order_id']


def signed_headers(payload, secret='whsec_test', timestamp=None):
    timestamp = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(secret.encode(), f'{timestamp}.'.encode() + payload, hashlib.sha256).hexdigest()
    return {'Stripe-Signature': f't={timestamp},v1={signature}', 'Content-Type': 'application/json'}


def test_payment_intent_uses_stored_total(client, clients, order_id):
    response = client.post(f'/api/orders/{order_id}/payment-intent')
    data = response.get_json()
    assert response.status_code == 200
    assert data['client_secret'] == 'pi_1_secret_abc'
    assert data['amount'] == 8036

    method, path, sent = clients.stripe.requests[0]
    assert sent['amount'] == 8036
    assert sent['metadata[order_id]'] == order_id
    assert sent['receipt_email'] == 'jane@example.com'
    assert db.session.get(Order, order_id).payment_reference == 'pi_1'


def test_declined_payment_keeps_order_pending(client, clients, order_id):
    client.post(f'/api/orders/{order_id}/payment-intent')
    response = client.post(f'/api/orders/{order_id}/confirm-payment')
    data = response.get_json()
    assert response.status_code == 402
    assert data['status'] == 'requires_payment_method'

    order = db.session.get(Order, order_id)
    assert order.status == 'pending'
    assert Sale.query.count() == 0
    assert ApiLog.query.filter_by(event_type='Payment Declined').count() == 1

    # the same order can be paid on a retry
    clients.stripe.set_status('pi_1', 'succeeded')
    assert client.post(f'/api/orders/{order_id}/confirm-payment').status_code == 200


def test_confirmed_payment_records_one_sale_and_sends_mail(client, clients, order_id):
    client.post(f'/api/orders/{order_id}/payment-intent')
    clients.stripe.set_status('pi_1', 'succeeded')

    with mail.record_messages() as outbox:
        response = client.post(f'/api/orders/{order_id}/confirm-payment')
        again = client.post(f'/api/orders/{order_id}/confirm-payment')

    assert response.status_code == 200
    assert again.get_json()['message'] == 'Order already paid'
    order = db.session.get(Order, order_id)
    assert order.status == 'paid'
    assert order.payment_provider == 'stripe'
    sale = Sale.query.one()
    assert sale.total == order.total
    assert sale.payment_reference == 'pi_1'
    assert len(outbox) == 1
    assert outbox[0].recipients == ['jane@example.com']


def test_paid_order_cannot_start_new_payment(client, clients, order_id):
    client.post(f'/api/orders/{order_id}/payment-intent')
    clients.stripe.set_status('pi_1', 'succeeded')
    client.post(f'/api/orders/{order_id}/confirm-payment')
    response = client.post(f'/api/orders/{order_id}/payment-intent')
    assert response.status_code == 400


def test_webhook_marks_order_paid(client, order_id):
    payload = json.dumps({
        'type': 'payment_intent.succeeded',
        'data': {'object': {'id': 'pi_hook', 'metadata': {'order_id': str(order_id)}}},
    }).encode()
    response = client.post('/api/webhook', data=payload, headers=signed_headers(payload))
    assert response.status_code == 200
    assert response.get_json() == {'received': True}
    order = db.session.get(Order, order_id)
    assert order.is_paid
    assert order.payment_reference == 'pi_hook'


def test_webhook_failure_event_is_logged(client, order_id):
    payload = json.dumps({
        'type': 'payment_intent.payment_failed',
        'data': {'object': {'id': 'pi_x', 'last_payment_error': {'message': 'Card declined'}}},
    }).encode()
    response = client.post('/api/webhook', data=payload, headers=signed_headers(payload))
    assert response.status_code == 200
    assert not db.session.get(Order, order_id).is_paid
    assert ApiLog.query.filter_by(event_type='Payment Declined').count() == 1


@pytest.mark.parametrize('headers', [
    {},
    {'Stripe-Signature': 'garbage'},
    {'Stripe-Signature': 't=1,v1=deadbeef'},
])
def test_webhook_rejects_bad_signatures(client, headers):
    response = client.post('/api/webhook', data=b'{"type": "payment_intent.succeeded"}', headers=headers)
    assert response.status_code == 400


def test_webhook_rejects_stale_timestamp(client):
    payload = b'{"type": "payment_intent.succeeded"}'
    headers = signed_headers(payload, timestamp=int(time.time()) - 3600)
    assert client.post('/api/webhook', data=payload, headers=headers).status_code == 400


def test_paypal_order_and_capture(client, clients, order_id):
    response = client.post('/api/paypal/orders', json={'order_id': order_id})
    paypal_id = response.get_json()['id']
    path, payload = clients.paypal.posts[0]
    assert path == '/v2/checkout/orders'
    assert payload['intent'] == 'CAPTURE'
    assert payload['purchase_units'][0]['amount'] == {'currency_code': 'USD', 'value': '80.36'}

    response = client.post(f'/api/paypal/orders/{paypal_id}/capture')
    assert response.status_code == 200
    order = db.session.get(Order, order_id)
    assert order.is_paid
    assert order.payment_provider == 'paypal'


def test_paypal_capture_not_completed(client, clients, order_id):
    paypal_id = client.post('/api/paypal/orders', json={'order_id': order_id}).get_json()['id']
    clients.paypal.capture_status = 'PAYER_ACTION_REQUIRED'
    response = client.post(f'/api/paypal/orders/{paypal_id}/capture')
    assert response.status_code == 402
    assert not db.session.get(Order, order_id).is_paid


def test_paypal_unknown_order(client):
    assert client.post('/api/paypal/orders/NOPE/capture').status_code == 404
    assert client.post('/api/paypal/orders', json={}).status_code == 400
