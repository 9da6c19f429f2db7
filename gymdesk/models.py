"""Database models for GymDesk"""
from datetime import datetime
from gymdesk import db, login_manager
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

@login_manager.user_loader
def load_user(gym_id):
    return db.session.get(Gym, int(gym_id))

def _money(value):
    return float(value) if value is not None else 0.0

def _iso(value):
    return value.isoformat() if value else None

class Gym(UserMixin, db.Model):
    """Gym account; the tenant that owns a roster of clients"""
    __tablename__ = 'gyms'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    clients = db.relationship('Client', backref='gym', lazy='dynamic', cascade='all, delete-orphan')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'email': self.email}

    def __repr__(self):
        return f'<Gym {self.email}>'

class Client(db.Model):
    """Gym member tracked for billing.

    The ``current_*``, ``active_until``, ``last_payment_date`` and
    ``next_payment_date`` columns are a snapshot of the latest payment's
    effect. They are rewritten together with every new payment and can be
    rebuilt from the payment history at any time.
    """
    __tablename__ = 'clients'

    id = db.Column(db.Integer, primary_key=True)
    gym_id = db.Column(db.Integer, db.ForeignKey('gyms.id'), nullable=False, index=True)

    # Contact Information
    name = db.Column(db.String(200), nullable=False, index=True)
    email = db.Column(db.String(120))
    phone = db.Column(db.String(30))
    address = db.Column(db.String(255))
    address_number = db.Column(db.String(20))
    due_day = db.Column(db.Integer)  # 1..31

    # Billing snapshot
    current_plan = db.Column(db.String(50))
    current_debt = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    active_until = db.Column(db.Date)
    last_payment_date = db.Column(db.Date)
    next_payment_date = db.Column(db.Date)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('current_debt >= 0', name='ck_clients_debt_non_negative'),
    )

    # Relationships
    payments = db.relationship('Payment', backref='client', lazy='dynamic', cascade='all, delete-orphan')
    email_logs = db.relationship('EmailLog', backref='client', lazy='dynamic', cascade='all, delete-orphan')

    def payment_history(self):
        """Payments newest first; the id breaks ties on equal creation time"""
        return self.payments.order_by(Payment.created_at.desc(), Payment.id.desc()).all()

    def is_active(self, today):
        return self.active_until is not None and self.active_until >= today

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'addressNumber': self.address_number,
            'dueDay': self.due_day,
            'currentPlan': self.current_plan,
            'currentDebt': _money(self.current_debt),
            'activeUntil': _iso(self.active_until),
            'lastPaymentDate': _iso(self.last_payment_date),
            'nextPaymentDate': _iso(self.next_payment_date),
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Client {self.name}>'

class Payment(db.Model):
    """Append-only record of money received for a covered period"""
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    plan = db.Column(db.String(50), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    debt = db.Column(db.Numeric(12, 2), nullable=False, default=0)  # Balance owed after this payment

    period_from = db.Column(db.Date)
    period_to = db.Column(db.Date)
    next_payment_date = db.Column(db.Date)

    idempotency_key = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        db.UniqueConstraint('client_id', 'idempotency_key', name='uq_payments_client_idempotency_key'),
        db.CheckConstraint('debt >= 0', name='ck_payments_debt_non_negative'),
        db.CheckConstraint('period_from IS NULL OR period_to IS NULL OR period_from <= period_to',
                           name='ck_payments_period_order'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'amount': _money(self.amount),
            'plan': self.plan,
            'discount': _money(self.discount),
            'debt': _money(self.debt),
            'period_from': _iso(self.period_from),
            'period_to': _iso(self.period_to),
            'next_payment_date': _iso(self.next_payment_date),
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Payment {self.id} {self.plan} {self.amount}>'

class EmailLog(db.Model):
    """Record of a billing email sent (or attempted) to a client"""
    __tablename__ = 'email_logs'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id'), nullable=False, index=True)
    sent_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    type = db.Column(db.String(30), nullable=False)  # reminder, overdue
    subject = db.Column(db.String(255))
    due_date = db.Column(db.Date)
    status = db.Column(db.String(20), default='sent')  # sent, failed

    def to_dict(self):
        return {
            'id': self.id,
            'sent_at': _iso(self.sent_at),
            'type': self.type,
            'subject': self.subject,
            'due_date': _iso(self.due_date),
            'status': self.status,
        }

    def __repr__(self):
        return f'<EmailLog {self.type} {self.client_id}>'

class ActivityLog(db.Model):
    """Activity log for audit trail"""
    __tablename__ = 'activity_logs'

    id = db.Column(db.Integer, primary_key=True)
    gym_id = db.Column(db.Integer, db.ForeignKey('gyms.id'), index=True)
    action = db.Column(db.String(100), nullable=False)
    entity_type = db.Column(db.String(50))  # client, payment, gym
    entity_id = db.Column(db.Integer)
    description = db.Column(db.Text)
    ip_address = db.Column(db.String(50))
    user_agent = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<ActivityLog {self.action}>'

