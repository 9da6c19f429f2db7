"""
Tests for the billing arithmetic: debt reconciliation and status projection
"""
from collections import namedtuple
from datetime import date, datetime
from decimal import Decimal
import pytest
from gymdesk.billing import (BillingError, PaymentSubmission, project_status, reconcile,
                             resolve_amounts, settlement_amount, to_money)

FakePayment = namedtuple('FakePayment', 'id amount plan discount debt period_to next_payment_date created_at')

TODAY = date(2026, 10, 18)

def pay(id, amount, created_at, plan='Basic', debt=0, period_to=None, next_payment_date=None):
    return FakePayment(id, Decimal(str(amount)), plan, Decimal('0'), Decimal(str(debt)),
                       period_to, next_payment_date, created_at)

def test_reconcile_scenario():
    assert reconcile(1000, 400, 100) == Decimal('500.00')

def test_reconcile_floors_at_zero():
    assert reconcile(300, 500, 0) == Decimal('0.00')
    assert reconcile(0, 0, 0) == Decimal('0.00')

def test_reconcile_is_monotonic_in_amount_and_discount():
    prior = 1000
    previous = None
    for amount in range(0, 1300, 100):
        debt = reconcile(prior, amount, 50)
        assert debt >= 0
        if previous is not None:
            assert debt <= previous
        previous = debt

    previous = None
    for discount in range(0, 1300, 100):
        debt = reconcile(prior, 200, discount)
        assert debt >= 0
        if previous is not None:
            assert debt <= previous
        previous = debt

def test_reconcile_rejects_negative_inputs():
    with pytest.raises(BillingError):
        reconcile(100, -1, 0)
    with pytest.raises(BillingError):
        reconcile(100, 0, -5)

def test_to_money_rejects_garbage():
    with pytest.raises(BillingError):
        to_money('abc')
    assert to_money(None) == Decimal('0.00')
    assert to_money('12.345') == Decimal('12.35')

def test_settlement_amount():
    assert settlement_amount(1000, 100) == Decimal('900.00')
    assert settlement_amount(0, 0) == Decimal('0.00')
    assert settlement_amount(50, 80) == Decimal('0.00')

def test_projection_without_payments():
    status = project_status([], TODAY)
    assert status.current_plan is None
    assert status.current_debt == 0
    assert status.paid_this_month == 0
    assert status.next_due is None
    assert status.is_month_fully_paid is False

def test_projection_two_payments_this_month_fully_paid():
    payments = [
        pay(1, 1000, datetime(2026, 10, 2, 10, 0), debt=500, period_to=date(2026, 10, 31)),
        pay(2, 500, datetime(2026, 10, 9, 18, 30), plan='Pago deuda', debt=0, period_to=date(2026, 10, 31)),
    ]
    status = project_status(payments, TODAY)
    assert status.paid_this_month == Decimal('1500.00')
    assert status.current_debt == 0
    assert status.current_plan == 'Pago deuda'
    assert status.is_month_fully_paid is True

def test_projection_uses_latest_payment_regardless_of_input_order():
    older = pay(1, 800, datetime(2026, 9, 1), plan='Basic', debt=200, period_to=date(2026, 9, 30))
    newer = pay(2, 900, datetime(2026, 10, 1), plan='Fitness', debt=100, period_to=date(2026, 10, 31))
    status = project_status([newer, older], TODAY)
    assert status == project_status([older, newer], TODAY)
    assert status.current_plan == 'Fitness'
    assert status.current_debt == Decimal('100.00')
    assert status.next_due == date(2026, 10, 31)
    # debt outstanding, so not fully paid
    assert status.paid_this_month == Decimal('900.00')
    assert status.is_month_fully_paid is False

def test_projection_ignores_other_months():
    payments = [
        pay(1, 700, datetime(2026, 9, 30, 23, 59)),
        pay(2, 700, datetime(2025, 10, 5)),
    ]
    status = project_status(payments, TODAY)
    assert status.paid_this_month == 0
    assert status.is_month_fully_paid is False

def test_projection_breaks_timestamp_ties_by_id():
    moment = datetime(2026, 10, 3, 12, 0)
    first = pay(7, 100, moment, plan='Basic', debt=300)
    second = pay(8, 100, moment, plan='Pago deuda', debt=0)
    assert project_status([second, first], TODAY).current_plan == 'Pago deuda'
    assert project_status([first, second], TODAY).current_plan == 'Pago deuda'

def test_projection_next_due_falls_back_to_next_payment_date():
    status = project_status([pay(1, 100, datetime(2026, 10, 1), next_payment_date=date(2026, 11, 1))], TODAY)
    assert status.next_due == date(2026, 11, 1)

def test_projection_is_idempotent_and_debt_never_negative():
    payments = [
        pay(1, 100, datetime(2026, 10, 1), debt=0),
        pay(2, 50, datetime(2026, 10, 2), debt=20),
    ]
    first = project_status(payments, TODAY)
    second = project_status(payments, TODAY)
    assert first == second
    assert first.current_debt >= 0

def test_settlement_plan_amount_defaults_to_debt_minus_discount(app):
    submission = PaymentSubmission(client_id=1, plan='Pago deuda', discount=100)
    amount, discount, debt = resolve_amounts(Decimal('1000'), submission)
    assert amount == Decimal('900.00')
    assert discount == Decimal('100.00')
    assert debt == Decimal('0.00')

def test_settlement_plan_with_no_debt_stays_at_zero(app):
    amount, _, debt = resolve_amounts(Decimal('0'), PaymentSubmission(client_id=1, plan='Pago deuda'))
    assert amount == Decimal('0.00')
    assert debt == Decimal('0.00')

def test_settlement_plan_override_is_reconciled(app):
    submission = PaymentSubmission(client_id=1, plan='Pago deuda', amount=400, discount=100, debt=999)
    amount, _, debt = resolve_amounts(Decimal('1000'), submission)
    assert amount == Decimal('400.00')
    assert debt == Decimal('500.00')

def test_regular_plan_keeps_supplied_debt(app):
    submission = PaymentSubmission(client_id=1, plan='Fitness', amount=10000, debt=5000)
    assert resolve_amounts(Decimal('0'), submission)[2] == Decimal('5000.00')

def test_regular_plan_without_debt_reconciles(app):
    submission = PaymentSubmission(client_id=1, plan='Basic', amount=400, discount=100)
    assert resolve_amounts(Decimal('1000'), submission)[2] == Decimal('500.00')
