"""Client forms"""
from flask_wtf import FlaskForm
from wtforms import StringField, IntegerField
from wtforms.validators import DataRequired, Email, Optional, Length, NumberRange

class ClientForm(FlaskForm):
    """Client registration form; JSON keys follow the dashboard's camelCase"""
    name = StringField('Name', validators=[DataRequired(message='El nombre es requerido'), Length(max=200)])
    email = StringField('Email', validators=[Optional(), Email(), Length(max=120)])
    phone = StringField('Phone', validators=[Optional(), Length(max=30)])
    address = StringField('Address', validators=[Optional(), Length(max=255)])
    addressNumber = StringField('Address Number', validators=[Optional(), Length(max=20)])
    dueDay = IntegerField('Due Day', validators=[
        Optional(),
        NumberRange(min=1, max=31, message='dueDay debe estar entre 1 y 31')
    ])

    def populate_client(self, client):
        client.name = self.name.data.strip()
        client.email = self.email.data or None
        client.phone = self.phone.data or None
        client.address = self.address.data or None
        client.address_number = self.addressNumber.data or None
        client.due_day = self.dueDay.data
