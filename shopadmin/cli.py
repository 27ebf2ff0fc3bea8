import click
from flask import current_app

from shopadmin.auth import hash_password
from shopadmin.database import PostgresStore
from shopadmin.store import get_store


def seed_admin(store, config):
    """Create the bootstrap admin account from ADMIN_EMAIL / ADMIN_PASSWORD."""
    if not config.get("ADMIN_PASSWORD"):
        current_app.logger.warning("ADMIN_PASSWORD not set, skipping admin bootstrap")
        return False

    return store.initialize_admin(
        config["ADMIN_EMAIL"],
        hash_password(config["ADMIN_PASSWORD"]),
        config["ADMIN_NAME"],
    )


def register_commands(app):
    @app.cli.command("init-db")
    def init_db_command():
        """Create tables (postgres) and the bootstrap admin."""
        store = get_store()
        if isinstance(store, PostgresStore):
            store.init_schema()
        created = seed_admin(store, current_app.config)
        click.echo(f"Store ready ({store.name}); admin {'created' if created else 'unchanged'}.")

    @app.cli.command("reset-schema")
    @click.option("--yes", is_flag=True, help="Confirm dropping every table.")
    def reset_schema_command(yes):
        """Drop and recreate every table, then seed the admin account."""
        store = get_store()
        if not isinstance(store, PostgresStore):
            raise click.ClickException("reset-schema needs a reachable DATABASE_URL")
        if not yes:
            raise click.ClickException("refusing to drop tables without --yes")

        store.reset_schema()
        seed_admin(store, current_app.config)
        click.echo("Database schema reset.")

    @app.cli.command("change-admin-password")
    @click.argument("email")
    @click.argument("password")
    def change_admin_password_command(email, password):
        """Set a new password for an existing admin user."""
        if not get_store().set_admin_password(email, hash_password(password)):
            raise click.ClickException(f"User with email {email} not found")
        click.echo(f"Password updated for {email}")

    @app.cli.command("check-db")
    def check_db_command():
        """Report which store is active and how many records it holds."""
        store = get_store()
        stats = store.get_dashboard_stats()
        click.echo(f"Store: {store.name}")
        click.echo(f"Products: {stats['totalProducts']} ({stats['activeProducts']} active)")
        click.echo(f"Blogs: {stats['totalBlogs']} ({stats['publishedBlogs']} published)")
