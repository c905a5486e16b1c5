"""
Flask CLI commands:
- flask --app api init-db
- flask --app api create-admin --email admin@example.com --name Admin
"""
import click
from flask import current_app

from models import storage
from models.user import UserRole


def register_cli(app):
    @app.cli.command("init-db")
    @click.option("--drop", is_flag=True, help="Drop all tables first.")
    def init_db(drop):
        """Create database tables."""
        if drop:
            storage.drop_all()
        storage.reload()
        click.echo("database initialized")

    @app.cli.command("create-admin")
    @click.option("--email", required=True)
    @click.option("--name", required=True)
    @click.password_option()
    def create_admin(email, name, password):
        """Create an admin account (admins cannot self-register)."""
        user = current_app.extensions["auth_service"].create_principal(email, password, name, UserRole.ADMIN.value)
        click.echo(f"admin created: {user.id}")
