import math

EARTH_RADIUS_MILES = 3959

MINIMUM_FEE = 10.0
LONG_HAUL_MILES = 11
SHORT_HAUL_RATE = 2.0
LONG_HAUL_RATE = 1.6

# Fees above this suggest the customer picked the wrong city
FEE_WARNING_THRESHOLD = 50

PICKUP = 'pickup'
DELIVERY = 'delivery'
DELIVERY_METHODS = (PICKUP, DELIVERY)


def calculate_distance(lat1, lon1, lat2, lon2):
    """Great-circle (haversine) distance in statute miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def distance_fee(distance_miles):
    """
    Fee charged for one trip of `distance_miles`.

    The per-mile rate drops past 11 miles and never goes below the
    10.00 floor. Delivery and collection currently use the same rule.
    """
    rate_per_mile = LONG_HAUL_RATE if distance_miles > LONG_HAUL_MILES else SHORT_HAUL_RATE
    return max(distance_miles * rate_per_mile, MINIMUM_FEE)


def trip_fees(distance_miles, delivery_method):
    """Returns (delivery_fee, collection_fee); pickup orders carry no fee."""
    if delivery_method != DELIVERY:
        return 0.0, 0.0
    return distance_fee(distance_miles), distance_fee(distance_miles)


def is_fee_above_warning(delivery_fee):
    return delivery_fee > FEE_WARNING_THRESHOLD
