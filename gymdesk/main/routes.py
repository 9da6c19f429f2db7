"""Main routes"""
from datetime import timedelta
from flask import jsonify
from flask_login import login_required, current_user
from gymdesk.main import main_bp
from gymdesk.models import Client
from gymdesk.billing import project_status
from gymdesk.utils.helpers import payments_by_client, utc_today

@main_bp.route('/dashboard')
@login_required
def dashboard():
    """Roster totals for the logged-in gym"""
    today = utc_today()
    clients = Client.query.filter_by(gym_id=current_user.id).all()
    grouped = payments_by_client([c.id for c in clients])

    statuses = [project_status(grouped[c.id], today) for c in clients]
    in_7 = today + timedelta(days=7)

    stats = {
        'totalClients': len(clients),
        'activeClients': sum(1 for c in clients if c.is_active(today)),
        'clientsWithDebt': sum(1 for s in statuses if s.current_debt > 0),
        'monthlyIncome': float(sum(s.paid_this_month for s in statuses)),
        'dueThisWeek': sum(1 for s in statuses if s.next_due and today <= s.next_due <= in_7),
    }
    return jsonify(stats)

@main_bp.route('/health')
def health():
    return jsonify({'status': 'ok'})
