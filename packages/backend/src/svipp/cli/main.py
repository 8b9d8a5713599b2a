"""svipp-admin — operator commands for the auth subsystem.

Usage:
    svipp-admin check-config                     # Are the auth secrets present?
    svipp-admin init-db                          # Create tables (development)
    svipp-admin unlinked                         # Drivers/customers with no owner
    svipp-admin link driver 42 kari@example.no   # Give driver 42 an owner

Unlinked drivers and customers can be mutated by *any* signed-in
account (the API logs an audit event each time). Linking them is how
that gap gets closed, one row at a time.
"""

from __future__ import annotations

import asyncio
import sys

import click

from svipp import __version__
from svipp.config import Settings
from svipp.errors import ConfigurationError, SvippError


def _run(coro):
    """Run an async coroutine from a synchronous Click handler."""
    return asyncio.run(coro)


@click.group()
@click.version_option(version=__version__, prog_name="svipp-admin")
def cli():
    """Svipp admin tools."""


@cli.command("check-config")
def check_config():
    """Verify that the pepper and signing key are configured."""
    from svipp.auth.secret_material import SecretMaterial

    try:
        material = SecretMaterial.from_settings(Settings())
    except ConfigurationError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)

    click.secho("✓ Auth secrets configured", fg="green")
    click.echo(f"  algorithm:      {material.algorithm}")
    click.echo(f"  issuer check:   {material.issuer or 'disabled'}")
    click.echo(f"  audience check: {material.audience or 'disabled'}")
    click.echo(f"  token lifetime: {material.token_lifetime}")
    click.echo(f"  bcrypt rounds:  {material.bcrypt_rounds}")


@cli.command("init-db")
def init_db():
    """Create all tables that don't exist yet."""
    from svipp.db.engine import create_tables, engine

    async def _go():
        try:
            await create_tables()
        finally:
            await engine.dispose()

    _run(_go())
    click.echo("✓ Tables created")


@cli.command()
def unlinked():
    """List drivers and customers that have no owning account."""
    from svipp.db.engine import async_session_factory, engine
    from svipp.services.resource_service import ResourceService

    async def _go():
        try:
            async with async_session_factory() as session:
                return await ResourceService(session).list_unlinked()
        finally:
            await engine.dispose()

    rows = _run(_go())
    total = sum(len(v) for v in rows.values())
    if not total:
        click.echo("✓ Every driver and customer is linked to an account")
        return

    for kind, items in rows.items():
        if not items:
            continue
        click.secho(f"{kind}s ({len(items)})", bold=True)
        for row in items:
            click.echo(f"  #{row.id:<6} {row.name}")


@cli.command()
@click.argument("kind", type=click.Choice(["driver", "customer"]))
@click.argument("resource_id", type=int)
@click.argument("email")
def link(kind: str, resource_id: int, email: str):
    """Link a driver or customer to the account with EMAIL."""
    from svipp.db.engine import async_session_factory, engine
    from svipp.services.resource_service import ResourceService

    async def _go():
        try:
            async with async_session_factory() as session:
                return await ResourceService(session).link_owner(kind, resource_id, email)
        finally:
            await engine.dispose()

    try:
        user_id = _run(_go())
    except SvippError as e:
        click.secho(f"✗ {e.public_detail}", fg="red", err=True)
        sys.exit(1)

    click.echo(f"✓ {kind} {resource_id} linked to user {user_id}")


def main():
    cli()


if __name__ == "__main__":
    main()
