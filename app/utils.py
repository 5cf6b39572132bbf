import datetime

DELIVERY_WINDOW = '8:00 AM - 10:00 AM'


def utcnow():
    """Naive UTC timestamp, as stored in the database."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def parse_iso_date(value):
    """
    Parses 'YYYY-MM-DD'.
    Returns None for empty input; raises ValueError for malformed input.
    """
    if not value:
        return None
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(value)


def rental_schedule(event_date, rental_days):
    """
    Delivery happens on the event date, the equipment comes back
    `rental_days` days later; both inside the morning window.
    """
    if event_date is None:
        return None
    return_date = event_date + datetime.timedelta(days=rental_days)
    return {
        'delivery_date': event_date.isoformat(),
        'return_date': return_date.isoformat(),
        'window': DELIVERY_WINDOW,
    }


def mask_mobile_number(mobile_number):
    if not mobile_number or len(mobile_number) < 8:
        return mobile_number
    return f'{mobile_number[:3]}****{mobile_number[-3:]}'
