"""Provides the login form."""

from typing import Any, Mapping

from werkzeug.datastructures import MultiDict
from wtforms import Form, PasswordField, StringField
from wtforms.validators import DataRequired


class LoginForm(Form):
    """Log in form."""

    username = StringField('Username or phone', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])

    @classmethod
    def from_request_data(cls, data: Mapping[str, Any]) -> 'LoginForm':
        """
        Build the form from JSON or form data.

        Clients may send the handle as either ``username`` or ``identifier``.
        """
        form_data = MultiDict({key: str(value) for key, value in data.items()
                               if value is not None})
        if not form_data.get('username') and form_data.get('identifier'):
            form_data['username'] = form_data['identifier']
        return cls(form_data)
