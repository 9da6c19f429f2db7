"""Helper functions"""
from collections import defaultdict
from datetime import datetime
from flask import request, jsonify, abort
from flask_login import current_user
from werkzeug.datastructures import MultiDict
from gymdesk import db
from gymdesk.models import ActivityLog, Client, Payment

def json_formdata():
    """Request JSON body as form data.

    Null values are dropped and numbers become strings, the way a browser
    form would send them. Booleans, lists and objects abort with a 400.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return MultiDict()
    data = MultiDict()
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, (bool, list, dict)):
            response = jsonify({'error': 'Datos inválidos', 'errors': {key: ['Valor no válido']}})
            response.status_code = 400
            abort(response)
        data[key] = value if isinstance(value, str) else str(value)
    return data

def form_error_response(form, message='Datos inválidos'):
    """400 response carrying the form's field errors"""
    return jsonify({'error': message, 'errors': form.errors}), 400

def error_response(message, status=400):
    return jsonify({'error': message}), status

def log_activity(gym_id, action, description, entity_type=None, entity_id=None):
    """Add an audit row for the current request to the session (not committed)"""
    log = ActivityLog(
        gym_id=gym_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        ip_address=request.remote_addr,
        user_agent=request.user_agent.string[:255] if request.user_agent else None
    )
    db.session.add(log)
    return log

def utc_today():
    return datetime.utcnow().date()

def get_owned_client(client_id):
    """Client with ``client_id`` belonging to the logged-in gym, or None"""
    try:
        client_id = int(client_id)
    except (TypeError, ValueError):
        return None
    return Client.query.filter_by(id=client_id, gym_id=current_user.id).first()

def payments_by_client(client_ids):
    """Payments of the given clients grouped by client id, in one query"""
    grouped = defaultdict(list)
    if not client_ids:
        return grouped
    for payment in Payment.query.filter(Payment.client_id.in_(client_ids)).all():
        grouped[payment.client_id].append(payment)
    return grouped
