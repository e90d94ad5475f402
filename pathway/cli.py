"""CLI tools for Pathway administration."""

import click

from pathway.core.config import settings
from pathway.core.security import create_access_token
from pathway.db.enums import Role
from pathway.db.session import SessionLocal
from pathway.services import member_service, organization_service
from pathway.services.catalog_service import get_catalog
from pathway.services.errors import ServiceError


@click.group()
def cli():
    """Pathway CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Organization name")
def create_org(name: str):
    """
    Create an organization.

    Example:
        pathway create-org --name "Central Congregation"
    """
    db = SessionLocal()
    try:
        org = organization_service.create_organization(db, name)
        click.echo(f"✓ Created organization: {org.name}")
        click.echo(f"  ID: {org.id}")
    except ServiceError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--name", required=True, help="Administrator display name")
@click.option("--email", required=True, help="Administrator email address")
def create_admin(name: str, email: str):
    """
    Create an approved platform administrator (not bound to an organization).

    The administrator signs in through the identity provider with this email.

    Example:
        pathway create-admin --name "Ada" --email "ada@example.com"
    """
    db = SessionLocal()
    try:
        member = member_service.create_member(
            db,
            get_catalog(),
            name=name,
            email=email,
            role=Role.ADMINISTRATOR,
        )
        click.echo(f"✓ Created administrator: {member.email}")
        click.echo(f"  ID: {member.id}")
    except ServiceError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Member email to issue a token for")
def mint_token(email: str):
    """
    Issue a bearer token for an approved member (dev only).

    Example:
        pathway mint-token --email "ada@example.com"
    """
    if settings.ENV not in ("dev", "test"):
        click.echo("❌ Token minting is only available in dev mode")
        raise SystemExit(1)

    db = SessionLocal()
    try:
        member = member_service.get_member_by_email(db, email)
        if not member:
            click.echo(f"❌ Member not found: {email}")
            raise SystemExit(1)
        if not member.is_approved or not member.is_active:
            click.echo(f"❌ Member {email} is not active and approved")
            raise SystemExit(1)

        token = create_access_token(member.id, member.role, member.organization_id)
        click.echo(token)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
