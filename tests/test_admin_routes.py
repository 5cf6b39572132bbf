import datetime

import pytest

from app.extensions import db
from app.models import City, Order, Product, Sale
from app.services.booking_service import mark_order_paid
from tests.conftest import make_user

NEW_CITY = {'name': 'Greenville', 'state': 'SC', 'pickup_address': '1 Main St, Greenville, SC 29601',
            'latitude': 34.8526, 'longitude': -82.3940}


@pytest.fixture
def order_id(client, booking):
    client.post(f"/api/booking/sessions/{booking['id']}/validate-address")
    return client.post(f"/api/booking/sessions/{booking['id']}/checkout").get_json()['order_id']


def test_admin_routes_require_login(client):
    response = client.get('/admin/cities')
    assert response.status_code == 401


def test_non_admin_is_forbidden(client):
    make_user(email='staff@example.com', password='pass-1234', is_admin=False)
    client.post('/auth/login', json={'email': 'staff@example.com', 'password': 'pass-1234'})
    assert client.get('/admin/cities').status_code == 403


def test_wrong_password(client):
    make_user()
    response = client.post('/auth/login', json={'email': 'admin@example.com', 'password': 'nope'})
    assert response.status_code == 401


def test_login_form_errors(client):
    response = client.post('/auth/login', json={'email': 'not-an-email'})
    assert response.status_code == 400
    assert {'email', 'password'} <= set(response.get_json()['errors'])


def test_logout(admin_client):
    assert admin_client.post('/auth/logout').status_code == 200
    assert admin_client.get('/admin/cities').status_code == 401


def test_city_crud(admin_client):
    response = admin_client.post('/admin/cities', json=NEW_CITY)
    assert response.status_code == 201
    city_id = response.get_json()['city']['id']

    response = admin_client.put(f'/admin/cities/{city_id}', json={'pickup_address': '2 Main St, Greenville, SC 29601'})
    assert response.status_code == 200
    city = db.session.get(City, city_id)
    assert city.pickup_address == '2 Main St, Greenville, SC 29601'
    assert city.latitude == 34.8526

    assert admin_client.delete(f'/admin/cities/{city_id}').status_code == 200
    assert db.session.get(City, city_id) is None


def test_city_on_the_equator_is_accepted(admin_client):
    response = admin_client.post('/admin/cities', json={**NEW_CITY, 'latitude': 0, 'longitude': 0})
    assert response.status_code == 201


def test_city_coordinates_out_of_range(admin_client):
    response = admin_client.post('/admin/cities', json={**NEW_CITY, 'latitude': 91})
    assert response.status_code == 400
    assert 'latitude' in response.get_json()['errors']


def test_product_crud(admin_client):
    response = admin_client.post('/admin/products', json={
        'name': 'Canopy Tent', 'description': '10x10', 'base_price': 45,
        'image_urls': ['https://cdn.example.com/tent.png']})
    assert response.status_code == 201
    product = response.get_json()['product']
    assert product['addon'] is None
    assert product['is_active'] is True
    assert product['image_urls'] == ['https://cdn.example.com/tent.png']

    response = admin_client.put(f"/admin/products/{product['id']}",
                                json={'addon_name': 'Side Walls', 'addon_price': 20, 'is_active': False})
    updated = response.get_json()['product']
    assert updated['addon'] == {'name': 'Side Walls', 'price': 20.0}
    assert updated['is_active'] is False
    assert updated['base_price'] == 45.0

    names = [p['name'] for p in admin_client.get('/api/products').get_json()['products']]
    assert 'Canopy Tent' not in names

    assert admin_client.delete(f"/admin/products/{product['id']}").status_code == 200
    assert db.session.get(Product, product['id']) is None


def test_product_validation(admin_client):
    response = admin_client.post('/admin/products', json={'name': 'Bad', 'base_price': -1, 'addon_name': 'Extra'})
    errors = response.get_json()['errors']
    assert response.status_code == 400
    assert {'base_price', 'addon_name'} <= set(errors)


def test_free_product_is_allowed(admin_client):
    response = admin_client.post('/admin/products', json={'name': 'Flyer', 'base_price': 0})
    assert response.status_code == 201


def test_client_queries_show_admin_totals(admin_client, booking):
    admin_client.post(f"/api/booking/sessions/{booking['id']}/validate-address")
    queries = admin_client.get('/admin/client-queries').get_json()['client_queries']
    assert len(queries) == 1
    # chair covers were not selected but still count in the admin figure
    total = ((1.88 + 1.00) * 2 * 3 + 15 * 3 + 20) * 1.0725
    assert queries[0]['total'] == round(total, 2)
    assert queries[0]['tax'] == round(total - total / 1.0725, 2)
    assert queries[0]['selected_city'] == 'Charlotte'


def test_orders_filter_and_status_change(admin_client, order_id):
    assert admin_client.get('/admin/orders?status=pending').get_json()['count'] == 1
    assert admin_client.get('/admin/orders?status=paid').get_json()['count'] == 0
    assert admin_client.get('/admin/orders?status=bogus').status_code == 400

    response = admin_client.put(f'/admin/orders/{order_id}/status', json={'status': 'confirmed'})
    assert response.status_code == 200
    order = db.session.get(Order, order_id)
    assert order.status == 'confirmed'
    assert order.total == pytest.approx(80.3603)

    response = admin_client.put(f'/admin/orders/{order_id}/status', json={'status': 'paid'})
    assert response.status_code == 400


def test_sales_date_filter(admin_client, order_id):
    mark_order_paid(db.session.get(Order, order_id), 'stripe', 'pi_1')
    sale = Sale.query.one()
    sale.sale_date = datetime.datetime(2026, 3, 10, 15, 30)
    db.session.commit()

    def count(query):
        return admin_client.get(f'/admin/sales{query}').get_json()['count']

    assert count('') == 1
    assert count('?start_date=2026-03-10&end_date=2026-03-10') == 1
    assert count('?start_date=2026-03-11') == 0
    assert count('?end_date=2026-03-09') == 0
    assert admin_client.get('/admin/sales?start_date=March').status_code == 400


def test_dashboard_summary(admin_client, order_id):
    mark_order_paid(db.session.get(Order, order_id), 'paypal', 'PAYPAL-1')
    data = admin_client.get('/admin/dashboard').get_json()
    assert data['orders']['paid'] == 1
    assert data['revenue'] == round(80.3603, 2)
    assert data['cities'] == 5
