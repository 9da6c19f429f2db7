"""Utility decorators"""
from functools import wraps
from flask import jsonify
from flask_login import current_user
from gymdesk.utils.helpers import get_owned_client

def client_required(f):
    """Load the client named by the ``id`` URL argument for the logged-in gym.

    Clients of other gyms are reported as missing, the same as unknown ids.
    """
    @wraps(f)
    def decorated_function(id, *args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'error': 'No autorizado'}), 401

        client = get_owned_client(id)
        if client is None:
            return jsonify({'error': 'Cliente no encontrado'}), 404

        return f(client, *args, **kwargs)
    return decorated_function

