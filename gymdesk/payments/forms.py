"""Payment forms"""
from flask import current_app
from flask_wtf import FlaskForm
from wtforms import StringField, IntegerField, DecimalField, DateField
from wtforms.validators import InputRequired, Optional, NumberRange, Length, ValidationError
from gymdesk.billing import PaymentSubmission

class PaymentForm(FlaskForm):
    """New payment form"""
    clientId = IntegerField('Client', validators=[InputRequired(message='clientId y plan son requeridos')])
    plan = StringField('Plan', validators=[InputRequired(message='clientId y plan son requeridos'), Length(max=50)])
    amount = DecimalField('Amount', places=2, validators=[Optional(), NumberRange(min=0)])
    discount = DecimalField('Discount', places=2, validators=[Optional(), NumberRange(min=0)])
    debt = DecimalField('Debt After Payment', places=2, validators=[Optional(), NumberRange(min=0)])
    periodFrom = DateField('Period From', validators=[Optional()])
    periodTo = DateField('Period To', validators=[Optional()])
    nextPaymentDate = DateField('Next Payment Date', validators=[Optional()])
    idempotencyKey = StringField('Idempotency Key', validators=[Optional(), Length(max=100)])

    def validate_plan(self, field):
        if field.data not in current_app.config['PLANS']:
            raise ValidationError(f'Plan desconocido: {field.data}')

    def validate_periodTo(self, field):
        if self.periodFrom.data and field.data and self.periodFrom.data > field.data:
            raise ValidationError('periodFrom no puede ser posterior a periodTo')

    def to_submission(self):
        return PaymentSubmission(
            client_id=self.clientId.data,
            plan=self.plan.data,
            amount=self.amount.data,
            discount=self.discount.data,
            debt=self.debt.data,
            period_from=self.periodFrom.data,
            period_to=self.periodTo.data,
            next_payment_date=self.nextPaymentDate.data,
            idempotency_key=self.idempotencyKey.data or None,
        )
