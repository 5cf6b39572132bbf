from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user, login_user, logout_user

from app.errors import ValidationError
from app.extensions import db, login_manager
from app.forms.forms import LoginForm, json_formdata
from app.models.user import User
from app.services.audit import log_event
from app.utils import utcnow

auth = Blueprint('auth', __name__)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'message': 'Authentication required'}), 401


@auth.route('/login', methods=['POST'])
def login():
    form = LoginForm(formdata=json_formdata(request.get_json(silent=True) or request.form.to_dict()))
    if not form.validate():
        raise ValidationError(errors={name: errors[0] for name, errors in form.errors.items()})

    user = User.query.filter_by(email=form.email.data.strip().lower()).first()
    if user is None or not user.is_active or not user.check_password(form.password.data):
        log_event('Admin Login', 'FAILURE', {'email': form.email.data}, ip_address=request.remote_addr)
        return jsonify({'success': False, 'message': 'Login failed. Check your e-mail and password.'}), 401

    login_user(user, remember=form.remember.data)
    user.last_seen = utcnow()
    db.session.commit()
    current_app.logger.info('User %s logged in', user.email)
    return jsonify({'success': True, 'user': {'id': user.id, 'name': user.name, 'email': user.email,
                                              'is_admin': user.is_admin}})


@auth.route('/logout', methods=['POST'])
def logout():
    if current_user.is_authenticated:
        current_app.logger.info('User %s logged out', current_user.email)
    logout_user()
    return jsonify({'success': True, 'message': 'Logged out'})
