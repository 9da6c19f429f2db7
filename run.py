#!/usr/bin/env python3
"""Application entry point"""
import os
import sys
from datetime import datetime, timedelta

def init_database():
    """Initialize the database"""
    from gymdesk import create_app, db
    app = create_app(os.getenv('FLASK_ENV') or 'development')
    with app.app_context():
        db.create_all()
        print("Database initialized!")

def create_demo_gym():
    """Create a demo gym with a few clients and payments"""
    from gymdesk import create_app, db
    from gymdesk.models import Gym, Client
    from gymdesk.billing import PaymentSubmission, record_payment
    from dateutil.relativedelta import relativedelta

    app = create_app(os.getenv('FLASK_ENV') or 'development')

    with app.app_context():
        db.create_all()

        if Gym.query.filter_by(email='demo@gymdesk.app').first():
            print("Demo gym already exists!")
            return

        gym = Gym(name='Demo Gym', email='demo@gymdesk.app')
        gym.set_password('demo1234')
        db.session.add(gym)
        db.session.flush()

        today = datetime.utcnow().date()
        month_start = today.replace(day=1)
        month_end = month_start + relativedelta(months=1) - timedelta(days=1)

        clients = [
            Client(gym_id=gym.id, name='Ana Gómez', email='ana@example.com', phone='1155550001', due_day=1),
            Client(gym_id=gym.id, name='Bruno Díaz', email='bruno@example.com', phone='1155550002', due_day=10),
            Client(gym_id=gym.id, name='Carla Ruiz', phone='1155550003', due_day=15),
        ]
        db.session.add_all(clients)
        db.session.flush()

        try:
            # Fully paid month
            record_payment(clients[0], PaymentSubmission(
                client_id=clients[0].id, plan='Fitness', amount=15000,
                period_from=month_start, period_to=month_end))
            # Partial payment leaves debt
            record_payment(clients[1], PaymentSubmission(
                client_id=clients[1].id, plan='Pro fitness', amount=10000, debt=8000,
                period_from=month_start, period_to=month_end))
            db.session.commit()
            print("Demo gym created successfully!")
            print("Email: demo@gymdesk.app")
            print("Password: demo1234")
        except Exception as e:
            db.session.rollback()
            print("Error: {}".format(e))

def check_snapshots(repair=False):
    """Report (and optionally repair) clients whose snapshot drifted from their payments"""
    from gymdesk import create_app, db
    from gymdesk.models import Client
    from gymdesk.billing import find_snapshot_drift, rebuild_snapshot

    app = create_app(os.getenv('FLASK_ENV') or 'development')

    with app.app_context():
        drifted = 0
        for client in Client.query.order_by(Client.id).all():
            drift = rebuild_snapshot(client) if repair else find_snapshot_drift(client)
            if drift:
                drifted += 1
                for field, (stored, expected) in sorted(drift.items()):
                    print("Client {} {}: stored={} expected={}".format(client.id, field, stored, expected))
        if repair:
            db.session.commit()
        print("{} client(s) {}".format(drifted, 'repaired' if repair else 'out of sync'))
        return drifted

def send_reminders():
    """Log due-date reminders for clients about to expire or overdue"""
    from gymdesk import create_app
    from gymdesk.reminders import send_due_reminders

    app = create_app(os.getenv('FLASK_ENV') or 'development')
    with app.app_context():
        logs = send_due_reminders()
        print("{} reminder(s) logged".format(len(logs)))

if __name__ == '__main__':
    # Handle command-line arguments
    if len(sys.argv) > 1:
        command = sys.argv[1]
        if command == 'init-db':
            init_database()
        elif command == 'create-demo':
            create_demo_gym()
        elif command == 'check-snapshots':
            sys.exit(1 if check_snapshots() else 0)
        elif command == 'rebuild-snapshots':
            check_snapshots(repair=True)
        elif command == 'send-reminders':
            send_reminders()
        else:
            print("Unknown command: {}".format(command))
            print("Available commands: init-db, create-demo, check-snapshots, rebuild-snapshots, send-reminders")
            sys.exit(1)
    else:
        # Run the Flask development server
        from gymdesk import create_app
        app = create_app(os.getenv('FLASK_ENV') or 'development')
        app.run(host='0.0.0.0', port=5000, debug=True)
