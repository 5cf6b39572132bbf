import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


class Config:
    """Base configuration, read from the environment."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'change-me'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///' + os.path.join(basedir, 'app.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_COOKIE_SAMESITE = 'Lax'

    # JSON API: forms are posted by the storefront/admin client, not rendered here
    WTF_CSRF_ENABLED = os.environ.get('WTF_CSRF_ENABLED', 'false').lower() == 'true'

    TAX_RATE = float(os.environ.get('TAX_RATE', '0.0725'))

    # --- Geocoding ---
    GEOCODER_URL = os.environ.get('GEOCODER_URL') or 'https://nominatim.openstreetmap.org/search'
    GEOCODER_USER_AGENT = os.environ.get('GEOCODER_USER_AGENT') or 'party-rental-backend/1.0'
    GEOCODER_TIMEOUT = float(os.environ.get('GEOCODER_TIMEOUT', '10'))

    # --- Stripe ---
    STRIPE_API_URL = os.environ.get('STRIPE_API_URL') or 'https://api.stripe.com/v1'
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET')
    STRIPE_CURRENCY = os.environ.get('STRIPE_CURRENCY') or 'usd'

    # --- PayPal ---
    PAYPAL_API = os.environ.get('PAYPAL_API') or 'https://api-m.paypal.com'
    PAYPAL_CLIENT_ID = os.environ.get('PAYPAL_CLIENT_ID')
    PAYPAL_SECRET = os.environ.get('PAYPAL_SECRET')

    # --- KELPAY (mobile money) ---
    KELPAY_API_URL = os.environ.get('KELPAY_API_URL') or 'https://pay.keccel.com/kelpay/v1'
    KELPAY_MERCHANT_CODE = os.environ.get('KELPAY_MERCHANT_CODE')
    KELPAY_TOKEN = os.environ.get('KELPAY_TOKEN')
    KELPAY_CALLBACK_URL = os.environ.get('KELPAY_CALLBACK_URL')

    # --- E-mail ---
    MAIL_SERVER = os.environ.get('MAIL_SERVER') or 'smtp.gmail.com'
    MAIL_PORT = int(os.environ.get('MAIL_PORT', '587'))
    MAIL_USE_TLS = True
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER') or MAIL_USERNAME


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = 'bookings@example.com'
    STRIPE_SECRET_KEY = 'sk_test_dummy'
    STRIPE_WEBHOOK_SECRET = 'whsec_test'
    KELPAY_MERCHANT_CODE = None
    KELPAY_TOKEN = None
