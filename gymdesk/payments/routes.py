"""Payment routes"""
import logging
from flask import request, jsonify
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from gymdesk import db
from gymdesk.payments import payments_bp
from gymdesk.payments.forms import PaymentForm
from gymdesk.billing import BillingError, record_payment, prefill_for
from gymdesk.utils.helpers import (json_formdata, form_error_response, error_response, log_activity,
                                   get_owned_client)

logger = logging.getLogger(__name__)

def _client_from_args():
    """(client, error_response) for the ``clientId`` query argument"""
    client_id = request.args.get('clientId')
    if not client_id:
        return None, error_response('clientId es requerido')

    client = get_owned_client(client_id)
    if client is None:
        return None, error_response('Cliente no encontrado', 404)
    return client, None

@payments_bp.route('', methods=['GET'])
@login_required
def list_payments():
    """Payment history of a client, newest first"""
    client, error = _client_from_args()
    if error:
        return error

    return jsonify([p.to_dict() for p in client.payment_history()])

@payments_bp.route('', methods=['POST'])
@login_required
def add_payment():
    """Record a payment and refresh the client's billing snapshot"""
    form = PaymentForm(formdata=json_formdata())
    if not form.validate_on_submit():
        return form_error_response(form, 'Datos de pago inválidos')

    client = get_owned_client(form.clientId.data)
    if client is None:
        return error_response('Cliente no encontrado', 404)
    client_id = client.id

    try:
        payment, created = record_payment(client, form.to_submission())
        if created:
            log_activity(current_user.id, 'create_payment',
                         f'Payment of {payment.amount} ({payment.plan}) for {client.name}',
                         entity_type='payment', entity_id=payment.id)
        db.session.commit()
    except BillingError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), 400
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error creating payment for client %s', client_id)
        return error_response('Error creando pago', 500)

    return jsonify(payment.to_dict()), 201 if created else 200

@payments_bp.route('/prefill')
@login_required
def payment_prefill():
    """Initial values for the new-payment form of a client"""
    client, error = _client_from_args()
    if error:
        return error

    return jsonify(prefill_for(client))
