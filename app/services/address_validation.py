"""
Event-address validation for delivery bookings.

    EMPTY -> EDITING -> VALIDATING -> VALID | INVALID

Editing the street, state or zip (or swapping the pickup city) drops any
previous geocode, distance and fees and returns to EDITING. Every validation
attempt takes a ticket from a monotonically increasing sequence; only the
result carrying the latest ticket is applied, so a slow response for an
older address can never overwrite a newer one.
"""
from app.errors import ValidationError
from app.services.delivery import calculate_distance, trip_fees, is_fee_above_warning, DELIVERY
from app.services.geocoding import GeocodedAddress
from app.services.validation_service import validate_phone, validate_email

EMPTY = 'empty'
EDITING = 'editing'
VALIDATING = 'validating'
VALID = 'valid'
INVALID = 'invalid'
STATES = (EMPTY, EDITING, VALIDATING, VALID, INVALID)

ADDRESS_FIELDS = ('street', 'state', 'zipcode')


class AddressValidation:

    def __init__(self, street='', state='', zipcode='', status=None, sequence=0,
                 distance_miles=0.0, delivery_fee=0.0, collection_fee=0.0, geocoded=None):
        self.street = street or ''
        self.state = state or ''
        self.zipcode = zipcode or ''
        self.status = status or (EDITING if self._has_text() else EMPTY)
        self.sequence = sequence
        self.distance_miles = distance_miles
        self.delivery_fee = delivery_fee
        self.collection_fee = collection_fee
        self.geocoded = geocoded

    # --- state queries ---

    @property
    def is_valid(self):
        return self.status == VALID

    @property
    def full_address(self):
        return f'{self.street}, {self.state} {self.zipcode}'

    @property
    def fee_warning(self):
        """Non-blocking hint that the address may be outside the city's service area."""
        return self.is_valid and is_fee_above_warning(self.delivery_fee)

    def _has_text(self):
        return any(getattr(self, name).strip() for name in ADDRESS_FIELDS)

    def _clear_result(self):
        self.distance_miles = 0.0
        self.delivery_fee = 0.0
        self.collection_fee = 0.0
        self.geocoded = None

    # --- transitions ---

    def edit(self, **fields):
        """Updates address parts; any actual change invalidates earlier results."""
        unknown = set(fields) - set(ADDRESS_FIELDS)
        if unknown:
            raise ValueError(f'Unknown address fields: {sorted(unknown)}')
        changed = False
        for name, value in fields.items():
            value = value or ''
            if value != getattr(self, name):
                setattr(self, name, value)
                changed = True
        if changed:
            self.invalidate()
        return changed

    def invalidate(self):
        """Drops any result and supersedes in-flight validations."""
        self._clear_result()
        self.sequence += 1
        self.status = EDITING if self._has_text() else EMPTY

    def begin(self, phone, email):
        """
        Starts a validation attempt and returns its ticket.

        Raises ValidationError when the address is incomplete or the contact
        details are malformed. The machine is then left in EDITING and no
        lookup may be issued.
        """
        errors = {}
        for name in ADDRESS_FIELDS:
            if not getattr(self, name).strip():
                errors[name] = 'This field is required.'
        phone_error = validate_phone(phone)
        if phone_error:
            errors['phone'] = phone_error
        email_error = validate_email(email)
        if email_error:
            errors['email'] = email_error
        if errors:
            if self.status not in (EDITING, EMPTY):
                self._clear_result()
                self.status = EDITING if self._has_text() else EMPTY
            raise ValidationError(errors=errors)

        self.sequence += 1
        self.status = VALIDATING
        return self.sequence

    def resolve(self, ticket, event_location, pickup_location, delivery_method):
        """
        Applies the lookup results for `ticket`.

        Returns False, leaving the state untouched, when the ticket has
        been superseded by a newer attempt or an edit.
        """
        if ticket != self.sequence or self.status != VALIDATING:
            return False
        if event_location is None or pickup_location is None:
            self._clear_result()
            self.status = INVALID
            return True

        self.distance_miles = calculate_distance(
            pickup_location.lat, pickup_location.lon,
            event_location.lat, event_location.lon,
        )
        self.delivery_fee, self.collection_fee = trip_fees(self.distance_miles, delivery_method)
        self.geocoded = event_location
        self.status = VALID
        return True

    def apply_delivery_method(self, delivery_method):
        """Recomputes fees for the known distance when the customer switches method."""
        if self.is_valid:
            self.delivery_fee, self.collection_fee = trip_fees(self.distance_miles, delivery_method)

    def fees_for(self, delivery_method):
        if delivery_method != DELIVERY or not self.is_valid:
            return 0.0, 0.0
        return self.delivery_fee, self.collection_fee

    # --- persistence ---

    def to_dict(self):
        return {
            'street': self.street,
            'state': self.state,
            'zipcode': self.zipcode,
            'status': self.status,
            'sequence': self.sequence,
            'distance_miles': self.distance_miles,
            'delivery_fee': self.delivery_fee,
            'collection_fee': self.collection_fee,
            'geocoded': self.geocoded.to_dict() if self.geocoded else None,
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            street=data.get('street', ''),
            state=data.get('state', ''),
            zipcode=data.get('zipcode', ''),
            status=data.get('status'),
            sequence=data.get('sequence', 0),
            distance_miles=data.get('distance_miles', 0.0),
            delivery_fee=data.get('delivery_fee', 0.0),
            collection_fee=data.get('collection_fee', 0.0),
            geocoded=GeocodedAddress.from_dict(data.get('geocoded')),
        )

    def __repr__(self):
        return f"AddressValidation('{self.full_address}', status={self.status}, seq={self.sequence})"
