import click

from app.extensions import db
from app.models import City, Product, User

DEFAULT_CITIES = [
    {'name': 'Charlotte', 'state': 'NC', 'latitude': 35.2271, 'longitude': -80.8431,
     'pickup_address': '3244 Bamburgh Court, Charlotte, NC 28216'},
    {'name': 'Raleigh', 'state': 'NC', 'latitude': 35.7796, 'longitude': -78.6382,
     'pickup_address': '456 Fayetteville St, Raleigh, NC 27601'},
    {'name': 'Columbia', 'state': 'SC', 'latitude': 34.0007, 'longitude': -81.0348,
     'pickup_address': '789 Main St, Columbia, SC 29201'},
    {'name': 'Atlanta', 'state': 'GA', 'latitude': 33.7490, 'longitude': -84.3880,
     'pickup_address': '101 Peachtree St, Atlanta, GA 30303'},
    {'name': 'Miami', 'state': 'FL', 'latitude': 25.7617, 'longitude': -80.1918,
     'pickup_address': '202 Biscayne Blvd, Miami, FL 33132'},
]

DEFAULT_PRODUCTS = [
    {'name': 'White Folding Chair', 'description': 'Resin folding chair for indoor and outdoor events.',
     'base_price': 1.88, 'addon_name': 'Chair Cover', 'addon_price': 1.00},
    {'name': 'Folding Table', 'description': '6 ft rectangular banquet table, seats 6 to 8 guests.',
     'base_price': 10.00, 'addon_name': 'Tablecloth', 'addon_price': 5.00},
]


def seed_catalog():
    """Inserts the default cities and products that are not there yet. Returns how many were added."""
    added = 0
    for data in DEFAULT_CITIES:
        if City.query.filter_by(name=data['name'], state=data['state']).first() is None:
            db.session.add(City(**data))
            added += 1
    for data in DEFAULT_PRODUCTS:
        if Product.query.filter_by(name=data['name']).first() is None:
            db.session.add(Product(**data))
            added += 1
    db.session.commit()
    return added


def register_commands(app):

    @app.cli.command('seed_db')
    def seed_db_command():
        """Adds the default service cities and rentable products."""
        db.create_all()
        added = seed_catalog()
        click.echo(f'Database seeded: {added} new cities/products.')

    @app.cli.command('create_admin')
    @click.argument('email')
    @click.argument('password')
    @click.option('--name', default='Administrator')
    def create_admin_command(email, password, name):
        """Creates an admin account, or resets the password of an existing one."""
        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(email=email, name=name)
            db.session.add(user)
        user.is_admin = True
        user.is_active = True
        user.set_password(password)
        db.session.commit()
        click.echo(f'Admin {email} is ready.')
