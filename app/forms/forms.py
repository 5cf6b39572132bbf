from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import StringField, BooleanField, FloatField, TextAreaField, SelectField, PasswordField
from wtforms.validators import DataRequired, Email, InputRequired, NumberRange, Optional, Length, ValidationError

from app.models.booking import ORDER_CONFIRMED, ORDER_CANCELLED


def json_formdata(data):
    """The JSON API feeds WTForms through form-encoded strings so numeric zeros and booleans validate."""
    formdata = MultiDict()
    for key, value in (data or {}).items():
        if isinstance(value, bool):
            value = 'y' if value else 'false'
        elif value is None:
            value = ''
        formdata.add(key, str(value))
    return formdata


# Form for creating/editing a service city
class CityForm(FlaskForm):
    name = StringField('City', validators=[DataRequired()])
    state = StringField('State', validators=[DataRequired(), Length(max=50)])
    pickup_address = StringField('Pickup Address', validators=[DataRequired()])
    latitude = FloatField('Latitude', validators=[InputRequired(), NumberRange(min=-90, max=90)])
    longitude = FloatField('Longitude', validators=[InputRequired(), NumberRange(min=-180, max=180)])


# Form for creating/editing rentable products
class ProductForm(FlaskForm):
    name = StringField('Product Name', validators=[DataRequired()])
    description = TextAreaField('Description')
    base_price = FloatField('Price per Item per Day ($)', validators=[InputRequired(), NumberRange(min=0)])
    addon_name = StringField('Addon Name (optional)', validators=[Optional(), Length(max=100)])
    addon_price = FloatField('Addon Price ($)', validators=[Optional(), NumberRange(min=0)])
    is_active = BooleanField('Available for Rent', default=True)

    def validate_addon_name(self, field):
        if field.data and self.addon_price.data is None:
            raise ValidationError('Addon price is required when the product has an addon.')


class LoginForm(FlaskForm):
    email = StringField('E-mail', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired()])
    remember = BooleanField('Remember me')


# Admins move orders forward or cancel them; prices are never editable
class OrderStatusForm(FlaskForm):
    status = SelectField('Status', choices=[
        (ORDER_CONFIRMED, 'Confirmed'), (ORDER_CANCELLED, 'Cancelled')
    ], validators=[DataRequired()])
