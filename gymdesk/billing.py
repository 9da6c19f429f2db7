"""Billing rules: client status projection and payment reconciliation"""
import logging
from collections import namedtuple
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from flask import current_app
from sqlalchemy.exc import IntegrityError
from gymdesk import db
from gymdesk.models import Payment

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')

# Snapshot columns kept on Client, in the order they are reported
SNAPSHOT_FIELDS = ('current_plan', 'current_debt', 'last_payment_date', 'next_payment_date', 'active_until')

class BillingError(ValueError):
    """A payment submission broke a billing rule; nothing was written"""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        body = {'error': self.message}
        if self.field:
            body['errors'] = {self.field: [self.message]}
        return body

ClientStatus = namedtuple('ClientStatus', [
    'current_plan', 'current_debt', 'paid_this_month', 'next_due', 'is_month_fully_paid'
])

PaymentSubmission = namedtuple('PaymentSubmission', [
    'client_id', 'plan', 'amount', 'discount', 'debt',
    'period_from', 'period_to', 'next_payment_date', 'idempotency_key'
])
PaymentSubmission.__new__.__defaults__ = (None,) * 7

def to_money(value):
    """Coerce a number (or numeric string) to a two-place Decimal; None is zero"""
    if value is None or value == '':
        return ZERO
    try:
        return Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise BillingError(f'Monto inválido: {value!r}')

def _newest_first(payments):
    return sorted(payments, key=lambda p: (p.created_at or datetime.min, p.id or 0), reverse=True)

def _in_month(moment, today):
    return moment is not None and moment.year == today.year and moment.month == today.month

def project_status(payments, today=None):
    """Derive a client's billing status from its payment history.

    Args:
        payments: iterable of Payment rows in any order
        today: reference date for "this month" (defaults to UTC today)

    Returns:
        ClientStatus. The latest payment (by creation time, then id) gives
        plan, debt and next due date; every payment created in the current
        calendar month counts towards ``paid_this_month``.
    """
    today = today or datetime.utcnow().date()
    ordered = _newest_first(payments)
    latest = ordered[0] if ordered else None

    current_plan = latest.plan if latest else None
    current_debt = max(to_money(latest.debt), ZERO) if latest else ZERO
    next_due = (latest.period_to or latest.next_payment_date) if latest else None

    paid_this_month = sum(
        (to_money(p.amount) for p in ordered if _in_month(p.created_at, today)),
        ZERO
    )

    return ClientStatus(
        current_plan=current_plan,
        current_debt=current_debt,
        paid_this_month=paid_this_month,
        next_due=next_due,
        is_month_fully_paid=paid_this_month > 0 and current_debt <= 0,
    )

def status_to_dict(status):
    return {
        'currentPlan': status.current_plan,
        'currentDebt': float(status.current_debt),
        'totalPaidThisMonth': float(status.paid_this_month),
        'nextDue': status.next_due.isoformat() if status.next_due else None,
        'isMonthFullyPaid': status.is_month_fully_paid,
    }

def _non_negative(name, value):
    value = to_money(value)
    if value < 0:
        raise BillingError(f'{name} no puede ser negativo', field=name)
    return value

def reconcile(prior_debt, amount_paid, discount):
    """Debt left after applying a payment and a discount, floored at zero"""
    prior_debt = _non_negative('debt', prior_debt)
    amount_paid = _non_negative('amount', amount_paid)
    discount = _non_negative('discount', discount)
    return max(prior_debt - amount_paid - discount, ZERO)

def settlement_amount(prior_debt, discount):
    """Default amount for a debt settlement payment: the debt minus the discount"""
    return max(_non_negative('debt', prior_debt) - _non_negative('discount', discount), ZERO)

def debt_settlement_plan():
    return current_app.config['DEBT_SETTLEMENT_PLAN']

def active_until_for(next_due):
    if next_due is None:
        return None
    return next_due + timedelta(days=current_app.config['ACTIVE_GRACE_DAYS'])

def validate_submission(submission):
    """Reject a submission before anything is written"""
    if not submission.client_id:
        raise BillingError('clientId y plan son requeridos', field='clientId')
    if not submission.plan:
        raise BillingError('clientId y plan son requeridos', field='plan')
    if submission.plan not in current_app.config['PLANS']:
        raise BillingError(f'Plan desconocido: {submission.plan}', field='plan')
    if submission.period_from and submission.period_to and submission.period_from > submission.period_to:
        raise BillingError('periodFrom no puede ser posterior a periodTo', field='periodFrom')
    for name in ('amount', 'discount', 'debt'):
        value = getattr(submission, name)
        if value is not None:
            _non_negative(name, value)

def resolve_amounts(prior_debt, submission):
    """Work out (amount, discount, new_debt) for a submission.

    The debt settlement plan defaults the amount to the outstanding debt less
    the discount and always recomputes the resulting debt. Other plans take a
    caller-supplied debt as the balance carried forward and fall back to the
    reconciliation formula when it is omitted.
    """
    discount = to_money(submission.discount)
    if submission.plan == debt_settlement_plan():
        if submission.amount is None:
            amount = settlement_amount(prior_debt, discount)
        else:
            amount = to_money(submission.amount)
        return amount, discount, reconcile(prior_debt, amount, discount)

    amount = to_money(submission.amount)
    if submission.debt is not None:
        return amount, discount, to_money(submission.debt)
    return amount, discount, reconcile(prior_debt, amount, discount)

def apply_snapshot(client, payment):
    """Overwrite the client's snapshot with the effect of ``payment``"""
    next_due = payment.next_payment_date
    client.current_plan = payment.plan
    client.current_debt = to_money(payment.debt)
    client.last_payment_date = payment.created_at.date()
    client.next_payment_date = next_due
    client.active_until = active_until_for(next_due)

def find_existing_payment(client, idempotency_key):
    if not idempotency_key:
        return None
    return client.payments.filter_by(idempotency_key=idempotency_key).first()

def record_payment(client, submission, now=None):
    """Append a payment and refresh the client's snapshot in one unit of work.

    The payment row and the snapshot update are flushed together; the caller
    commits (or rolls back) the session. A submission whose idempotency key
    was already used for this client returns the stored payment instead.

    Returns:
        (payment, created) tuple
    """
    validate_submission(submission)

    existing = find_existing_payment(client, submission.idempotency_key)
    if existing is not None:
        logger.info('Duplicate payment submission for client %s (key %s)', client.id, submission.idempotency_key)
        return existing, False

    now = now or datetime.utcnow()
    amount, discount, new_debt = resolve_amounts(client.current_debt, submission)

    payment = Payment(
        client_id=client.id,
        amount=amount,
        plan=submission.plan,
        discount=discount,
        debt=new_debt,
        period_from=submission.period_from,
        period_to=submission.period_to,
        next_payment_date=submission.period_to or submission.next_payment_date,
        idempotency_key=submission.idempotency_key or None,
        created_at=now,
    )

    db.session.add(payment)
    apply_snapshot(client, payment)
    try:
        db.session.flush()
    except IntegrityError:
        # Lost a race with a concurrent submission using the same key
        db.session.rollback()
        existing = find_existing_payment(client, submission.idempotency_key)
        if existing is None:
            raise
        return existing, False

    logger.info('Recorded payment %s for client %s: amount=%s discount=%s debt=%s',
                payment.id, client.id, amount, discount, new_debt)
    return payment, True

def prefill_for(client):
    """Initial values for the new-payment form.

    A client that owes money is locked to the debt settlement plan, with the
    full debt as the amount and the covered period of the last payment that
    left debt behind.
    """
    debt = to_money(client.current_debt)
    if debt <= 0:
        return {
            'clientId': client.id,
            'currentDebt': 0.0,
            'plan': None,
            'amount': None,
            'discount': None,
            'debt': None,
            'periodFrom': None,
            'periodTo': None,
            'planLocked': False,
            'periodLocked': False,
        }

    last_with_debt = next(
        (p for p in client.payment_history() if to_money(p.debt) > 0),
        None
    )
    period_locked = bool(last_with_debt and last_with_debt.period_from and last_with_debt.period_to)

    return {
        'clientId': client.id,
        'currentDebt': float(debt),
        'plan': debt_settlement_plan(),
        'amount': float(settlement_amount(debt, ZERO)),
        'discount': 0.0,
        'debt': 0.0,
        'periodFrom': last_with_debt.period_from.isoformat() if period_locked else None,
        'periodTo': last_with_debt.period_to.isoformat() if period_locked else None,
        'planLocked': True,
        'periodLocked': period_locked,
    }

def expected_snapshot(client):
    """Snapshot values implied by the client's payment history"""
    history = client.payment_history()
    if not history:
        return {
            'current_plan': None,
            'current_debt': ZERO,
            'last_payment_date': None,
            'next_payment_date': None,
            'active_until': None,
        }
    latest = history[0]
    status = project_status(history)
    next_due = latest.next_payment_date or status.next_due
    return {
        'current_plan': status.current_plan,
        'current_debt': status.current_debt,
        'last_payment_date': latest.created_at.date() if latest.created_at else None,
        'next_payment_date': next_due,
        'active_until': active_until_for(next_due),
    }

def find_snapshot_drift(client):
    """Fields whose stored snapshot value differs from the payment history.

    Returns:
        dict mapping field name to (stored, expected); empty when in sync
    """
    expected = expected_snapshot(client)
    drift = {}
    for field in SNAPSHOT_FIELDS:
        stored = getattr(client, field)
        if field == 'current_debt':
            stored = to_money(stored)
        if stored != expected[field]:
            drift[field] = (stored, expected[field])
    return drift

def rebuild_snapshot(client):
    """Rewrite the snapshot from payment history; returns the drift that was fixed"""
    drift = find_snapshot_drift(client)
    if drift:
        expected = expected_snapshot(client)
        for field in SNAPSHOT_FIELDS:
            setattr(client, field, expected[field])
        logger.warning('Rebuilt snapshot for client %s: %s', client.id, ', '.join(sorted(drift)))
    return drift
