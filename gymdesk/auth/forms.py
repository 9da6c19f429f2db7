"""Authentication forms"""
from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField
from wtforms.validators import DataRequired, Email, Length

class RegisterForm(FlaskForm):
    """Gym registration form"""
    name = StringField('Name', validators=[DataRequired(message='Faltan campos: name, email, password'), Length(max=200)])
    email = StringField('Email', validators=[DataRequired(message='Faltan campos: name, email, password'), Email(), Length(max=120)])
    password = PasswordField('Password', validators=[
        DataRequired(message='Faltan campos: name, email, password'),
        Length(min=6, message='La contraseña debe tener al menos 6 caracteres')
    ])

class LoginForm(FlaskForm):
    """Login form"""
    email = StringField('Email', validators=[DataRequired(message='Faltan campos: email, password')])
    password = PasswordField('Password', validators=[DataRequired(message='Faltan campos: email, password')])
