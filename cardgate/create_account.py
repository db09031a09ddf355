"""
Script for creating a new account.

Uses the credential store and identity verifier configured for the web app
(see :mod:`cardgate.config`).
"""

from typing import Optional

import click
import dateutil.parser

from . import accounts
from .auth import current_gate
from .domain import Role
from .exceptions import AccountExists
from .factory import create_web_app


@click.command()
@click.option('--username', prompt='Username')
@click.option('--password', prompt='Password', hide_input=True,
              confirmation_prompt=True)
@click.option('--role', type=click.Choice(Role.ALL), default=Role.STUDENT,
              show_default=True)
@click.option('--subscription', 'subscriptions', multiple=True,
              help='Subscription tag; may be given more than once.')
@click.option('--expires', default=None,
              help='When a student account expires, e.g. 2027-06-30.')
@click.option('--phone', default=None)
def create_account(username: str, password: str, role: str,
                   subscriptions: tuple, expires: Optional[str] = None,
                   phone: Optional[str] = None) -> None:
    """Create a new account."""
    expires_at = dateutil.parser.parse(expires) if expires else None
    app = create_web_app()
    with app.app_context():
        gate = current_gate()
        gate.store.create_all()
        try:
            account = accounts.create_account(
                gate.store, gate.verifier, username, password, role=role,
                subscriptions=subscriptions, expires_at=expires_at,
                phone=phone
            )
        except (ValueError, AccountExists) as e:
            raise click.ClickException(str(e)) from e
    click.echo(f'Created {account.role} {account.username}'
               f' ({account.account_id}), expires {account.expires_at}')


if __name__ == '__main__':
    create_account()
