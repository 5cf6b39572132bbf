from app.extensions import db
from app.utils import utcnow

MOBILE_PENDING = 'pending'
MOBILE_SUCCESS = 'success'
MOBILE_FAILED = 'failed'


class MobilePayment(db.Model):
    """Mobile-money ticket payment tracked until KELPAY calls back."""
    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(100), unique=True, nullable=False, index=True)
    reference = db.Column(db.String(100), nullable=False)
    movie_id = db.Column(db.String(100), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(10), nullable=False)
    mobile_number = db.Column(db.String(20), nullable=False)
    operator = db.Column(db.String(50))
    status = db.Column(db.String(20), nullable=False, default=MOBILE_PENDING)
    description = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'transactionId': self.transaction_id,
            'reference': self.reference,
            'status': self.status,
            'amount': self.amount,
            'currency': self.currency,
            'operator': self.operator,
            'description': self.description,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"MobilePayment('{self.transaction_id}', '{self.status}')"
