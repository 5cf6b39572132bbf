"""
Pricing aggregation for rental bookings.

Two computations live here on purpose:

* `compute_from_inputs` is the checkout price. Tax applies to the product
  subtotal only; delivery and collection fees are added untaxed.
* `admin_total` / `approximate_tax_from_total` are what the admin panel
  shows for saved client queries. They tax the grand total including fees
  and back the tax out of that figure, so they differ from the checkout
  price whenever fees are non-zero.
"""
from app.services.cart import billable_lines

DEFAULT_TAX_RATE = 0.0725


class PricingBreakdown:

    def __init__(self, subtotal, tax, delivery_fee, collection_fee):
        self.subtotal = subtotal
        self.tax = tax
        self.subtotal_with_tax = subtotal + tax
        self.delivery_fee = delivery_fee
        self.collection_fee = collection_fee
        self.total = self.subtotal_with_tax + delivery_fee + collection_fee

    @property
    def total_minor_units(self):
        """Total in cents, as payment providers expect it."""
        return int(round(self.total * 100))

    def to_dict(self):
        return {
            'subtotal': self.subtotal,
            'tax': self.tax,
            'subtotal_with_tax': self.subtotal_with_tax,
            'delivery_fee': self.delivery_fee,
            'collection_fee': self.collection_fee,
            'total': self.total,
        }

    def __repr__(self):
        return f"PricingBreakdown(subtotal={self.subtotal:.2f}, total={self.total:.2f})"


def compute_from_inputs(lines, rental_days, delivery_fee=0.0, collection_fee=0.0,
                        tax_rate=DEFAULT_TAX_RATE):
    subtotal = sum(line.line_total(rental_days) for line in billable_lines(lines))
    tax = subtotal * tax_rate
    return PricingBreakdown(subtotal, tax, delivery_fee, collection_fee)


def admin_total(lines, rental_days, delivery_fee, collection_fee, tax_rate=DEFAULT_TAX_RATE):
    """Total as displayed in the admin panel: cart with every addon, plus fees, taxed as a whole."""
    # the addon price counts whether or not it was selected
    cart_total = sum((line.base_price + line.addon_price) * line.quantity * rental_days
                     for line in billable_lines(lines))
    taxable = cart_total + delivery_fee + collection_fee
    return taxable + taxable * tax_rate


def approximate_tax_from_total(total, tax_rate=DEFAULT_TAX_RATE):
    return total - total / (1 + tax_rate)
