from app.extensions import db


class Product(db.Model):
    """Rentable party equipment, priced per item per rental day."""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    base_price = db.Column(db.Float, nullable=False)
    addon_name = db.Column(db.String(100))
    addon_price = db.Column(db.Float, default=0.0)
    image_urls = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True)

    __table_args__ = (db.CheckConstraint('base_price >= 0', name='ck_product_base_price'),)

    @property
    def addon(self):
        if not self.addon_name:
            return None
        return {'name': self.addon_name, 'price': self.addon_price or 0.0}

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'base_price': self.base_price,
            'addon': self.addon,
            'image_urls': self.image_urls or [],
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"Product('{self.name}', '{self.base_price}')"
