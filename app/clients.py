import atexit

from flask import current_app

from app.services.geocoding import NominatimGeocoder
from app.services.kelpay_service import KelpayService
from app.services.payments import PayPalGateway, StripeGateway

EXTENSION_KEY = 'rental_clients'


class Clients:
    """External collaborators shared by every request of one application."""

    def __init__(self, geocoder, stripe, paypal, kelpay):
        self.geocoder = geocoder
        self.stripe = stripe
        self.paypal = paypal
        self.kelpay = kelpay

    @classmethod
    def from_config(cls, config):
        return cls(
            geocoder=NominatimGeocoder(
                config['GEOCODER_URL'],
                config['GEOCODER_USER_AGENT'],
                timeout=config['GEOCODER_TIMEOUT'],
            ),
            stripe=StripeGateway(
                config['STRIPE_SECRET_KEY'],
                webhook_secret=config['STRIPE_WEBHOOK_SECRET'],
                api_url=config['STRIPE_API_URL'],
                currency=config['STRIPE_CURRENCY'],
            ),
            paypal=PayPalGateway(
                config['PAYPAL_CLIENT_ID'],
                config['PAYPAL_SECRET'],
                api_url=config['PAYPAL_API'],
            ),
            kelpay=KelpayService(
                config['KELPAY_API_URL'],
                merchant_code=config['KELPAY_MERCHANT_CODE'],
                token=config['KELPAY_TOKEN'],
                callback_url=config['KELPAY_CALLBACK_URL'],
            ),
        )

    def close(self):
        for client in (self.geocoder, self.stripe, self.paypal, self.kelpay):
            close = getattr(client, 'close', None)
            if close is not None:
                close()


def init_clients(app, clients=None):
    if clients is None:
        clients = Clients.from_config(app.config)
        atexit.register(clients.close)
    app.extensions[EXTENSION_KEY] = clients
    return clients


def get_clients():
    return current_app.extensions[EXTENSION_KEY]
