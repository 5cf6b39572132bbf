# app/models/__init__.py
from app.models.user import User, ApiLog
from app.models.equipment import Product
from app.models.location import City
from app.models.booking import BookingSession, ClientQuery, Order, Sale, Customer
from app.models.payment import MobilePayment
