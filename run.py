from app import create_app, db
from app.models import User, ApiLog, Product, City, BookingSession, ClientQuery, Order, Sale, Customer, MobilePayment

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        'db': db,
        'User': User,
        'ApiLog': ApiLog,
        'Product': Product,
        'City': City,
        'BookingSession': BookingSession,
        'ClientQuery': ClientQuery,
        'Order': Order,
        'Sale': Sale,
        'Customer': Customer,
        'MobilePayment': MobilePayment,
    }


if __name__ == '__main__':
    app.run()
