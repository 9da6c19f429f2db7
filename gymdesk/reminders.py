"""Due-date reminders recorded in the email log"""
import logging
from datetime import datetime, timedelta
from flask import current_app
from gymdesk import db
from gymdesk.models import Client, EmailLog

logger = logging.getLogger(__name__)

def reminder_kind(client, today, days_ahead):
    """'overdue', 'reminder' or None for a client's next payment date"""
    due = client.next_payment_date
    if due is None:
        return None
    if due < today:
        return 'overdue'
    if due <= today + timedelta(days=days_ahead):
        return 'reminder'
    return None

def already_logged(client, kind, due):
    return client.email_logs.filter_by(type=kind, due_date=due).first() is not None

def send_due_reminders(today=None, days_ahead=None):
    """Write one email log row per client and due date needing a reminder.

    Clients without an email address are skipped; a reminder of the same type
    for the same due date is never logged twice.

    Returns:
        list of EmailLog rows created
    """
    today = today or datetime.utcnow().date()
    if days_ahead is None:
        days_ahead = current_app.config['REMINDER_DAYS_AHEAD']

    created = []
    candidates = Client.query.filter(Client.next_payment_date.isnot(None)).order_by(Client.id).all()
    for client in candidates:
        kind = reminder_kind(client, today, days_ahead)
        if kind is None or not client.email:
            continue
        due = client.next_payment_date
        if already_logged(client, kind, due):
            continue

        if kind == 'overdue':
            subject = f'{client.gym.name}: tu cuota venció el {due.isoformat()}'
        else:
            subject = f'{client.gym.name}: tu cuota vence el {due.isoformat()}'

        log = EmailLog(client_id=client.id, type=kind, subject=subject, due_date=due, status='sent')
        db.session.add(log)
        created.append(log)

    db.session.commit()
    logger.info('Logged %d due reminders', len(created))
    return created
