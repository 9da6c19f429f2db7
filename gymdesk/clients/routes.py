"""Client management routes"""
import logging
from flask import request, jsonify
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from gymdesk import db
from gymdesk.clients import clients_bp
from gymdesk.models import Client, EmailLog
from gymdesk.clients.forms import ClientForm
from gymdesk.billing import project_status, status_to_dict
from gymdesk.utils.decorators import client_required
from gymdesk.utils.helpers import (json_formdata, form_error_response, error_response, log_activity,
                                   get_owned_client, payments_by_client, utc_today)

logger = logging.getLogger(__name__)

SORT_KEYS = {
    'name': lambda row: (row['name'] or '').lower(),
    'plan': lambda row: (row['currentPlan'] or '').lower(),
    'paid': lambda row: row['totalPaidThisMonth'],
    'debt': lambda row: row['currentDebt'],
    'due': lambda row: row['nextDue'] or '',
}

def client_row(client, payments, today):
    """Client fields merged with the status projected from its payments"""
    row = client.to_dict()
    row.update(status_to_dict(project_status(payments, today)))
    row['status'] = 'active' if client.is_active(today) else 'inactive'
    return row

@clients_bp.route('', methods=['GET'])
@login_required
def list_clients():
    """Roster of the logged-in gym with each client's billing status"""
    search = request.args.get('search', '', type=str).strip()
    status = request.args.get('status', '', type=str)
    sort = request.args.get('sort', 'name', type=str)
    direction = request.args.get('dir', 'asc', type=str)
    today = utc_today()

    query = Client.query.filter_by(gym_id=current_user.id)

    if search:
        query = query.filter(
            db.or_(
                Client.name.ilike(f'%{search}%'),
                Client.email.ilike(f'%{search}%'),
                Client.phone.ilike(f'%{search}%')
            )
        )

    clients = query.order_by(Client.created_at.asc(), Client.id.asc()).all()

    if status in ('active', 'inactive'):
        want_active = status == 'active'
        clients = [c for c in clients if c.is_active(today) == want_active]

    grouped = payments_by_client([c.id for c in clients])
    rows = [client_row(c, grouped[c.id], today) for c in clients]

    if sort in SORT_KEYS:
        rows.sort(key=SORT_KEYS[sort], reverse=direction == 'desc')
        if sort == 'due':
            # Clients without a due date go last in both directions
            rows.sort(key=lambda row: row['nextDue'] is None)

    return jsonify(rows)

@clients_bp.route('', methods=['POST'])
@login_required
def add_client():
    """Add new client"""
    form = ClientForm(formdata=json_formdata())
    if not form.validate_on_submit():
        return form_error_response(form)

    client = Client(gym_id=current_user.id)
    form.populate_client(client)

    try:
        db.session.add(client)
        db.session.flush()
        log_activity(current_user.id, 'create_client', f'Created client: {client.name}',
                     entity_type='client', entity_id=client.id)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error creating client for gym %s', current_user.id)
        return error_response('Error creando cliente', 500)

    return jsonify(client.to_dict()), 201

@clients_bp.route('/<int:id>', methods=['GET'])
@login_required
@client_required
def view_client(client):
    """Client details with projected status and payment history"""
    history = client.payment_history()
    row = client_row(client, history, utc_today())
    row['payments'] = [p.to_dict() for p in history]
    return jsonify(row)

@clients_bp.route('/<int:id>', methods=['PUT'])
@login_required
@client_required
def edit_client(client):
    """Edit client contact details"""
    form = ClientForm(formdata=json_formdata())
    if not form.validate_on_submit():
        return form_error_response(form)

    form.populate_client(client)
    log_activity(current_user.id, 'update_client', f'Updated client: {client.name}',
                 entity_type='client', entity_id=client.id)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error updating client %s', client.id)
        return error_response('Error actualizando cliente', 500)

    return jsonify(client.to_dict())

@clients_bp.route('/<int:id>', methods=['DELETE'])
@login_required
@client_required
def delete_client(client):
    """Delete client together with its payments and email logs"""
    log_activity(current_user.id, 'delete_client', f'Deleted client: {client.name}',
                 entity_type='client', entity_id=client.id)

    try:
        db.session.delete(client)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error deleting client %s', client.id)
        return error_response('Error eliminando cliente', 500)

    return jsonify({'ok': True})

def _email_logs(client):
    return client.email_logs.order_by(EmailLog.sent_at.desc(), EmailLog.id.desc()).all()

@clients_bp.route('/<int:id>/emails')
@login_required
@client_required
def client_emails(client):
    """Email history of a client, newest first"""
    return jsonify({'emails': [log.to_dict() for log in _email_logs(client)]})

@clients_bp.route('/emails')
@login_required
def email_log():
    """Email history of the client given by ``clientId``, newest first"""
    client_id = request.args.get('clientId')
    if not client_id:
        return error_response('clientId is required')

    client = get_owned_client(client_id)
    if client is None:
        return error_response('Cliente no encontrado', 404)

    return jsonify([log.to_dict() for log in _email_logs(client)])
