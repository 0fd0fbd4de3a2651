"""
commands.py: Maintenance commands (Flask CLI).

  flask --app fleamarket.wsgi purge-blacklist
      Deletes blacklist rows whose token has already expired. Meant for a
      cron/scheduler; never run on the request path. Idempotent.

  flask --app fleamarket.wsgi set-role EMAIL ROLE
      Out-of-band administrative role change. Takes effect on the user's
      next request: access tokens do not carry a trusted role.
"""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from fleamarket.app.extensions import db
from fleamarket.app.models.user import Role
from fleamarket.app.services.auth_service import AuthService
from fleamarket.app.stores.blacklist_store import SqlAlchemyBlacklistStore
from fleamarket.app.stores.user_store import SqlAlchemyUserStore

logger = logging.getLogger(__name__)


@click.command("purge-blacklist")
@with_appcontext
def purge_blacklist_command() -> None:
    service = AuthService(
        users=SqlAlchemyUserStore(db.session),
        blacklist=SqlAlchemyBlacklistStore(db.session),
        codec=current_app.extensions["token_codec"],
    )
    deleted = service.purge_expired_tokens()
    click.echo(f"Purged {deleted} expired blacklist entries.")


@click.command("set-role")
@click.argument("email")
@click.argument("role", type=click.Choice(Role.ALL, case_sensitive=False))
@with_appcontext
def set_role_command(email: str, role: str) -> None:
    store = SqlAlchemyUserStore(db.session)
    user = store.find_by_email(email)
    if user is None:
        raise click.ClickException(f"No user with email '{email}'.")

    store.set_role(user.id, role.lower())
    db.session.commit()
    logger.info("Role changed: user_id=%d role=%s", user.id, role.lower())
    click.echo(f"{email} is now {role.lower()}.")
