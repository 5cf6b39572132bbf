from app.errors import ValidationError


class CartLine:
    """
    One product in the booking cart.

    The product's name, price and addon are copied in when the line is built,
    so a persisted snapshot keeps the price the customer saw even if the
    catalog changes later.
    """

    def __init__(self, product_id, product_name, base_price, quantity=0,
                 addon_selected=False, addon_name=None, addon_price=0.0):
        if quantity < 0:
            raise ValidationError(errors={'quantity': 'Quantity cannot be negative.'})
        if base_price < 0:
            raise ValidationError(errors={'base_price': 'Price cannot be negative.'})
        self.product_id = product_id
        self.product_name = product_name
        self.base_price = float(base_price)
        self.quantity = int(quantity)
        self.addon_name = addon_name
        self.addon_price = float(addon_price or 0.0)
        # an addon can only be selected when the product offers one
        self.addon_selected = bool(addon_selected) and addon_name is not None

    @classmethod
    def from_product(cls, product, quantity=0, addon_selected=False):
        return cls(
            product_id=product.id,
            product_name=product.name,
            base_price=product.base_price,
            quantity=quantity,
            addon_selected=addon_selected,
            addon_name=product.addon_name,
            addon_price=product.addon_price if product.addon_name else 0.0,
        )

    @classmethod
    def from_dict(cls, data):
        return cls(
            product_id=data.get('product_id'),
            product_name=data.get('product_name'),
            base_price=data.get('base_price', 0.0),
            quantity=data.get('quantity', 0),
            addon_selected=data.get('addon_selected', False),
            addon_name=data.get('addon_name'),
            addon_price=data.get('addon_price', 0.0),
        )

    @property
    def unit_price(self):
        return self.base_price + (self.addon_price if self.addon_selected else 0.0)

    def line_total(self, rental_days):
        return self.unit_price * self.quantity * rental_days

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'product_name': self.product_name,
            'base_price': self.base_price,
            'quantity': self.quantity,
            'addon_selected': self.addon_selected,
            'addon_name': self.addon_name,
            'addon_price': self.addon_price,
        }

    def __repr__(self):
        return f"CartLine('{self.product_name}', qty={self.quantity}, addon={self.addon_selected})"


def billable_lines(lines):
    """Lines with quantity 0 never reach pricing or persistence."""
    return [line for line in lines if line.quantity > 0]


def product_ids(items):
    """Product ids of request items, as integers; unparsable ids are skipped."""
    ids = []
    for item in items or []:
        try:
            ids.append(int(item.get('product_id')))
        except (TypeError, ValueError):
            continue
    return ids


def build_cart(items, products_by_id):
    """
    Builds cart lines from request items of the form
    {'product_id': .., 'quantity': .., 'addon_selected': ..}.
    """
    lines = []
    errors = {}
    for index, item in enumerate(items or []):
        try:
            product = products_by_id.get(int(item.get('product_id')))
        except (TypeError, ValueError):
            product = None
        if product is None:
            errors[f'items[{index}].product_id'] = 'Unknown product.'
            continue
        try:
            quantity = int(item.get('quantity', 0))
        except (TypeError, ValueError):
            errors[f'items[{index}].quantity'] = 'Quantity must be a whole number.'
            continue
        if quantity < 0:
            errors[f'items[{index}].quantity'] = 'Quantity cannot be negative.'
            continue
        lines.append(CartLine.from_product(product, quantity, bool(item.get('addon_selected'))))
    if errors:
        raise ValidationError(errors=errors)
    return lines
