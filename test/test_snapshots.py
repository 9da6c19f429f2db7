"""
Test snapshot drift detection/repair and the due reminder job
"""
from datetime import date, timedelta
from decimal import Decimal
from gymdesk import db
from gymdesk.models import Client, EmailLog
from gymdesk.billing import PaymentSubmission, find_snapshot_drift, rebuild_snapshot, record_payment
from gymdesk.reminders import send_due_reminders

def seed_client(gym_id, name='Lucía', email='lucia@mail.com'):
    client = Client(gym_id=gym_id, name=name, email=email)
    db.session.add(client)
    db.session.commit()
    return client

def test_recorded_payment_leaves_snapshot_in_sync(app, gym):
    client = seed_client(gym['id'])
    record_payment(client, PaymentSubmission(client_id=client.id, plan='Fitness', amount=1000, debt=250,
                                             period_to=date(2026, 10, 31)))
    db.session.commit()
    assert find_snapshot_drift(client) == {}

def test_drift_is_detected_and_rebuilt(app, gym):
    client = seed_client(gym['id'])
    record_payment(client, PaymentSubmission(client_id=client.id, plan='Fitness', amount=1000, debt=250,
                                             period_to=date(2026, 10, 31)))
    db.session.commit()

    # A stale write elsewhere
    client.current_debt = Decimal('0')
    client.active_until = None
    db.session.commit()

    drift = find_snapshot_drift(client)
    assert set(drift) == {'current_debt', 'active_until'}
    assert drift['current_debt'] == (Decimal('0.00'), Decimal('250.00'))

    fixed = rebuild_snapshot(client)
    db.session.commit()
    assert set(fixed) == {'current_debt', 'active_until'}
    assert client.current_debt == Decimal('250.00')
    assert client.active_until == date(2026, 10, 31) + timedelta(days=45)
    assert find_snapshot_drift(client) == {}

def test_client_without_payments_has_empty_snapshot(app, gym):
    client = seed_client(gym['id'])
    assert find_snapshot_drift(client) == {}

    client.current_plan = 'Basic'
    db.session.commit()
    assert 'current_plan' in rebuild_snapshot(client)
    assert client.current_plan is None

def test_reminders_for_due_and_overdue_clients(app, gym):
    today = date(2026, 10, 18)
    due_soon = seed_client(gym['id'], name='Pronto', email='pronto@mail.com')
    overdue = seed_client(gym['id'], name='Atrasado', email='atrasado@mail.com')
    far = seed_client(gym['id'], name='Lejos', email='lejos@mail.com')
    no_email = seed_client(gym['id'], name='Sin mail', email=None)

    due_soon.next_payment_date = today + timedelta(days=2)
    overdue.next_payment_date = today - timedelta(days=5)
    far.next_payment_date = today + timedelta(days=20)
    no_email.next_payment_date = today + timedelta(days=1)
    db.session.commit()

    logs = send_due_reminders(today=today, days_ahead=3)
    kinds = {log.client_id: log.type for log in logs}
    assert kinds == {due_soon.id: 'reminder', overdue.id: 'overdue'}
    assert all(log.status == 'sent' for log in logs)
    assert 'Iron Gym' in logs[0].subject

    # Running again for the same due dates logs nothing new
    assert send_due_reminders(today=today, days_ahead=3) == []
    assert EmailLog.query.count() == 2
