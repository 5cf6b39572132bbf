from flask import Blueprint, jsonify, request, current_app

from app.clients import get_clients
from app.errors import NotFoundError, ValidationError
from app.extensions import db
from app.models import MobilePayment
from app.models.payment import MOBILE_FAILED, MOBILE_SUCCESS
from app.services import kelpay_service
from app.services.audit import log_event
from app.utils import mask_mobile_number, utcnow

mobile = Blueprint('mobile', __name__, url_prefix='/api/mobile')

REQUIRED_FIELDS = ('mobileNumber', 'amount', 'currency', 'movieId')


@mobile.route('/pay', methods=['POST'])
def pay():
    data = request.get_json(silent=True) or {}
    missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
    if missing:
        raise ValidationError('Missing required fields: ' + ', '.join(REQUIRED_FIELDS),
                              errors={name: 'This field is required.' for name in missing})

    mobile_number = str(data['mobileNumber'])
    if not kelpay_service.validate_mobile_number(mobile_number):
        raise ValidationError('Invalid mobile number format. Use DRC format (e.g., 243123456789 or 0123456789)',
                              errors={'mobileNumber': 'Invalid DRC mobile number.'})
    try:
        amount = float(data['amount'])
    except (TypeError, ValueError):
        raise ValidationError(errors={'amount': 'Amount must be a number.'})
    if amount <= 0:
        raise ValidationError(errors={'amount': 'Amount must be greater than zero.'})

    movie_id = str(data['movieId'])
    formatted = kelpay_service.format_mobile_number(mobile_number)
    operator = kelpay_service.get_mobile_operator(mobile_number)
    reference = kelpay_service.new_reference()
    description = data.get('description') or f'Payment for movie {movie_id}'

    current_app.logger.info('Processing mobile payment: mobile=%s amount=%s %s operator=%s reference=%s',
                            mask_mobile_number(formatted), amount, data['currency'], operator, reference)

    response = get_clients().kelpay.request_payment(
        mobile_number=formatted,
        amount=amount,
        currency=data['currency'],
        description=description,
        reference=reference,
    )

    payment = MobilePayment(
        transaction_id=response['transactionid'],
        reference=reference,
        movie_id=movie_id,
        amount=amount,
        currency=data['currency'],
        mobile_number=formatted,
        operator=operator,
    )
    db.session.add(payment)
    db.session.commit()

    log_event('Mobile Payment Requested', 'SUCCESS',
              {'transaction_id': payment.transaction_id, 'reference': reference, 'operator': operator},
              ip_address=request.remote_addr)
    return jsonify({
        'success': True,
        'code': response.get('code'),
        'description': response.get('description'),
        'reference': response.get('reference', reference),
        'transactionId': payment.transaction_id,
        'operator': operator,
    })


@mobile.route('/callback', methods=['POST'])
def callback():
    # KELPAY retries anything that is not a 200, so every outcome is acknowledged
    try:
        data = request.get_json(silent=True) or request.form.to_dict()
        transaction_id = data.get('transactionid')
        code = str(data.get('code'))
        current_app.logger.info('KELPAY callback received: code=%s reference=%s transaction=%s',
                                code, data.get('reference'), transaction_id)

        payment = MobilePayment.query.filter_by(transaction_id=transaction_id).first() if transaction_id else None
        if payment is None:
            current_app.logger.warning('Mobile payment not found for transaction %s', transaction_id)
        else:
            payment.status = MOBILE_SUCCESS if code == '0' else MOBILE_FAILED
            payment.description = data.get('description')
            payment.updated_at = utcnow()
            db.session.commit()
            current_app.logger.info('Mobile payment %s is now %s', transaction_id, payment.status)

        log_event('Mobile Callback', 'SUCCESS' if payment else 'NOT_FOUND',
                  {'transaction_id': transaction_id, 'code': code})
        return 'OK', 200
    except Exception as e:
        db.session.rollback()
        current_app.logger.error('Mobile callback processing error: %s', e)
        return 'ERROR', 200


@mobile.route('/status/<transaction_id>')
def status(transaction_id):
    payment = MobilePayment.query.filter_by(transaction_id=transaction_id).first()
    if payment is None:
        raise NotFoundError('Payment not found')
    return jsonify(payment.to_dict())
