import pytest

from app import create_app
from app.clients import Clients
from app.commands import seed_catalog
from app.extensions import db
from app.models import City, Product, User
from app.services.geocoding import GeocodedAddress
from app.services.kelpay_service import KelpayService
from app.services.payments import PayPalGateway, StripeGateway
from config import TestingConfig

CHARLOTTE_PICKUP = '3244 Bamburgh Court, Charlotte, NC 28216'
EVENT_ADDRESS = {'street': '100 Main St', 'state': 'NC', 'zipcode': '28202'}
EVENT_FULL_ADDRESS = '100 Main St, NC 28202'
CONTACT = {'customer_name': 'Jane Doe', 'customer_phone': '(704) 555-0100',
           'customer_email': 'jane@example.com'}


class FakeGeocoder:
    """Answers from a fixed table; `on_geocode` runs once, mid-lookup."""

    def __init__(self):
        self.locations = {}
        self.calls = []
        self.error = None
        self.on_geocode = None

    def add(self, query, lat, lon):
        self.locations[query] = GeocodedAddress(lat, lon, display_name=query, address={'postcode': '28202'})

    def geocode(self, query):
        self.calls.append(query)
        if self.on_geocode is not None:
            hook, self.on_geocode = self.on_geocode, None
            hook(query)
        if self.error is not None:
            raise self.error
        return self.locations.get(query)


class FakeStripe(StripeGateway):
    """Real payload building and webhook verification, canned HTTP answers."""

    def __init__(self):
        super().__init__('sk_test_dummy', webhook_secret='whsec_test')
        self.intents = {}
        self.requests = []

    def _request(self, method, path, data=None):
        self.requests.append((method, path, data))
        if method == 'POST' and path == '/payment_intents':
            intent_id = f'pi_{len(self.intents) + 1}'
            metadata = {key[len('metadata['):-1]: str(value)
                        for key, value in data.items() if key.startswith('metadata[')}
            self.intents[intent_id] = {
                'id': intent_id,
                'client_secret': f'{intent_id}_secret_abc',
                'amount': data['amount'],
                'currency': data['currency'],
                'status': 'requires_payment_method',
                'metadata': metadata,
            }
            return dict(self.intents[intent_id])
        return dict(self.intents[path.rsplit('/', 1)[-1]])

    def set_status(self, intent_id, status):
        self.intents[intent_id]['status'] = status


class FakePayPal(PayPalGateway):

    def __init__(self):
        super().__init__('client-id', 'secret')
        self.posts = []
        self.capture_status = 'COMPLETED'

    def _post(self, path, payload=None):
        self.posts.append((path, payload))
        if path.endswith('/capture'):
            return {'id': path.split('/')[-2], 'status': self.capture_status}
        return {'id': f'PAYPAL-{len(self.posts)}', 'status': 'CREATED'}


@pytest.fixture
def clients():
    geocoder = FakeGeocoder()
    geocoder.add(CHARLOTTE_PICKUP, 35.2271, -80.8431)
    geocoder.add(EVENT_FULL_ADDRESS, 35.2271, -80.9000)
    return Clients(
        geocoder=geocoder,
        stripe=FakeStripe(),
        paypal=FakePayPal(),
        kelpay=KelpayService('https://kelpay.test/v1'),
    )


@pytest.fixture
def app(clients):
    app = create_app(TestingConfig, clients=clients)
    with app.app_context():
        db.create_all()
        seed_catalog()
        yield app
        db.session.remove()
        db.drop_all()
    clients.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def charlotte(app):
    return City.query.filter_by(name='Charlotte').one()


@pytest.fixture
def chair(app):
    return Product.query.filter_by(name='White Folding Chair').one()


@pytest.fixture
def table(app):
    return Product.query.filter_by(name='Folding Table').one()


def make_user(email='admin@example.com', password='s3cret-pass', is_admin=True):
    user = User(name='Admin', email=email, is_admin=is_admin)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin_client(client):
    make_user()
    response = client.post('/auth/login', json={'email': 'admin@example.com', 'password': 's3cret-pass'})
    assert response.status_code == 200
    return client


@pytest.fixture
def booking(client, charlotte, chair, table):
    """A delivery booking with contact details, cart and an unvalidated address."""
    response = client.post('/api/booking/sessions', json={
        **CONTACT,
        **EVENT_ADDRESS,
        'city_id': charlotte.id,
        'delivery_method': 'delivery',
        'rental_days': 3,
        'event_date': '2026-11-14',
        'items': [
            {'product_id': chair.id, 'quantity': 2},
            {'product_id': table.id, 'quantity': 1, 'addon_selected': True},
        ],
    })
    assert response.status_code == 201
    return response.get_json()['session']
