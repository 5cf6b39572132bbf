from app.extensions import db


class City(db.Model):
    """Service city with the warehouse customers pick up from."""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    state = db.Column(db.String(50), nullable=False)
    pickup_address = db.Column(db.String(255), nullable=False)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)

    __table_args__ = (
        db.CheckConstraint('latitude >= -90 AND latitude <= 90', name='ck_city_latitude'),
        db.CheckConstraint('longitude >= -180 AND longitude <= 180', name='ck_city_longitude'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'state': self.state,
            'pickup_address': self.pickup_address,
            'latitude': self.latitude,
            'longitude': self.longitude,
        }

    def snapshot(self):
        return {'id': self.id, 'name': self.name, 'state': self.state,
                'pickup_address': self.pickup_address}

    def __repr__(self):
        return f"City('{self.name}', '{self.state}')"
