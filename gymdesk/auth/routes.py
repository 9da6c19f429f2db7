"""Authentication routes"""
import logging
from datetime import datetime
from flask import jsonify
from flask_login import login_user, logout_user, current_user, login_required
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from gymdesk import db
from gymdesk.auth import auth_bp
from gymdesk.models import Gym
from gymdesk.auth.forms import RegisterForm, LoginForm
from gymdesk.utils.helpers import json_formdata, form_error_response, error_response, log_activity

logger = logging.getLogger(__name__)

def _normalize_email(email):
    return (email or '').strip().lower()

@auth_bp.route('/gym/register', methods=['POST'])
def register():
    """Register a gym and start its session"""
    form = RegisterForm(formdata=json_formdata())
    if not form.validate_on_submit():
        return form_error_response(form, 'Faltan campos: name, email, password')

    email = _normalize_email(form.email.data)
    if Gym.query.filter_by(email=email).first():
        return error_response('Ya existe un gym con ese email')

    gym = Gym(name=form.name.data.strip(), email=email)
    gym.set_password(form.password.data)

    try:
        db.session.add(gym)
        db.session.flush()
        log_activity(gym.id, 'register', f'Gym {gym.email} registered', entity_type='gym', entity_id=gym.id)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return error_response('Ya existe un gym con ese email')
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error creating gym %s', email)
        return error_response('Error creando gym', 500)

    login_user(gym, remember=True)
    logger.info('Gym %s registered', gym.id)
    return jsonify(gym.to_dict()), 201

@auth_bp.route('/auth/login', methods=['POST'])
def login():
    """Gym login"""
    form = LoginForm(formdata=json_formdata())
    if not form.validate_on_submit():
        return form_error_response(form, 'Faltan campos: email, password')

    gym = Gym.query.filter_by(email=_normalize_email(form.email.data)).first()

    if gym is None or not gym.check_password(form.password.data):
        logger.warning('Failed login for %s', form.email.data)
        return error_response('Credenciales inválidas', 401)

    login_user(gym, remember=True)
    gym.last_login = datetime.utcnow()

    log_activity(gym.id, 'login', f'Gym {gym.email} logged in', entity_type='gym', entity_id=gym.id)
    db.session.commit()

    return jsonify(gym.to_dict())

@auth_bp.route('/auth/logout', methods=['POST'])
def logout():
    """Gym logout"""
    if current_user.is_authenticated:
        log_activity(current_user.id, 'logout', f'Gym {current_user.email} logged out',
                     entity_type='gym', entity_id=current_user.id)
        db.session.commit()

    logout_user()
    return jsonify({'ok': True})

@auth_bp.route('/auth/me')
@login_required
def me():
    """Currently authenticated gym"""
    return jsonify(current_user.to_dict())
