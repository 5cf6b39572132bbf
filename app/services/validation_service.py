import re

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
NON_DIGITS = re.compile(r'\D')


def phone_digits(phone):
    return NON_DIGITS.sub('', phone or '')


def validate_phone(phone):
    """Returns an error message, or None for a 10-digit number (formatting ignored)."""
    if len(phone_digits(phone)) != 10:
        return 'Phone number must be 10 digits'
    return None


def validate_email(email):
    if not EMAIL_PATTERN.match(email or ''):
        return 'Please enter a valid email address'
    return None


def validate_contact(name, phone, email):
    """Field -> message for every problem in the customer's contact details."""
    errors = {}
    if not (name or '').strip():
        errors['name'] = 'This field is required.'
    phone_error = validate_phone(phone)
    if phone_error:
        errors['phone'] = phone_error
    email_error = validate_email(email)
    if email_error:
        errors['email'] = email_error
    return errors
