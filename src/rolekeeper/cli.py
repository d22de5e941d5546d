"""Command-line interface for rolekeeper.

This module provides the CLI commands for running the administration API and
managing roles directly against the configured database.
"""

import asyncio
from typing import Any, Awaitable, Callable, NoReturn

import click

from rolekeeper import __version__
from rolekeeper.core.config import get_settings
from rolekeeper.core.logging import LoggingContext, configure_logging, get_logger
from rolekeeper.domain.entities import PermissionCatalog
from rolekeeper.domain.exceptions import RoleError


@click.group()
@click.version_option(version=__version__, prog_name="rolekeeper")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Set log level (overrides ROLEKEEPER_LOG_LEVEL)",
)
def cli(log_level: str | None) -> None:
    """rolekeeper - role-based access control for back-office tools."""
    settings = get_settings()
    if log_level is not None:
        settings.log_level = log_level
    configure_logging(settings)


@cli.command()
@click.option(
    "--host",
    type=str,
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--workers",
    type=int,
    default=None,
    help="Number of worker processes (overrides config)",
)
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
def serve(host: str | None, port: int | None, workers: int | None, reload: bool) -> None:
    """Start the role administration API server."""
    import uvicorn

    settings = get_settings()

    bind_host = host or settings.host
    bind_port = port or settings.port
    bind_workers = workers or settings.workers

    logger = get_logger(__name__)
    logger.info(
        "Starting rolekeeper server",
        host=bind_host,
        port=bind_port,
        workers=bind_workers,
        reload=reload,
        environment=settings.environment,
    )

    uvicorn.run(
        "rolekeeper.infrastructure.api.app:app",
        host=bind_host,
        port=bind_port,
        workers=1 if reload else bind_workers,
        reload=reload,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


def _run(action: Callable[..., Awaitable[Any]]) -> Any:
    """Run ``action(db)`` against a fresh database manager.

    Domain errors are reported on stderr and turn into exit status 1.
    """
    from rolekeeper.infrastructure.persistence.database import DatabaseManager

    async def runner() -> Any:
        db = DatabaseManager(get_settings())
        try:
            return await action(db)
        finally:
            await db.disconnect()

    try:
        with LoggingContext(command=click.get_current_context().command_path):
            return asyncio.run(runner())
    except RoleError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


def _repository(db: Any) -> Any:
    from rolekeeper.infrastructure.persistence.repositories import RoleRepository

    return RoleRepository(db.session_factory)


def _service(db: Any) -> Any:
    from rolekeeper.domain.services import RoleAdministrationService

    return RoleAdministrationService(_repository(db), protected_role_id=get_settings().protected_role_id)


@cli.command()
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
def init_db(force: bool) -> None:
    """Initialize the database.

    Creates all database tables and seeds the built-in Developer and Staff
    roles. Use this only in development.
    """
    from rolekeeper.infrastructure.persistence.database import init_database, seed_builtin_roles

    settings = get_settings()

    if settings.is_production and not force:
        click.echo(
            "ERROR: Running in production mode. Use migrations instead of init-db.",
            err=True,
        )
        raise SystemExit(1)

    if not force:
        click.confirm(
            "This will create all database tables. Continue?",
            abort=True,
            default=False,
        )

    async def initialize(db: Any) -> None:
        await init_database(db)
        if not settings.seed_builtin_roles:
            async with db.session() as session:
                await seed_builtin_roles(session, settings)

    _run(initialize)
    click.echo("Database initialized successfully.")


@cli.command()
def info() -> None:
    """Display rolekeeper configuration."""
    settings = get_settings()

    click.echo(f"""
rolekeeper v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}
  API Prefix:   {settings.api_prefix}

Server:
  Host:         {settings.host}
  Port:         {settings.port}
  Workers:      {settings.workers}

Database:
  URL:          {settings.database_url}
  Pool Size:    {settings.db_pool_size}
  Echo:         {settings.db_echo}

Roles:
  Protected:    {settings.protected_role_id}
  Default:      {settings.default_role_id}
  Max per user: {settings.max_roles_per_user}
  Catalog:      v{PermissionCatalog.version}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


@cli.command()
def catalog() -> None:
    """Print the permission catalog grouped by category."""
    click.echo(f"Permission catalog v{PermissionCatalog.version}")
    for category in PermissionCatalog.categories():
        click.echo(f"\n{category.name}")
        for entry in category.permissions:
            click.echo(f"  {entry.key.value:<28} {entry.label}")


@cli.group()
def roles() -> None:
    """Manage roles in the configured database."""


@roles.command("list")
def list_roles() -> None:
    """List every role, ordered by position."""

    async def load(db: Any) -> Any:
        return await _repository(db).refresh()

    snapshot = _run(load)
    for role in snapshot:
        flags = []
        if role.is_protected:
            flags.append("protected")
        if role.is_default:
            flags.append("default")
        granted = sum(PermissionCatalog.expand(role.permissions).values())
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(f"{role.position:>4}  {role.id:<20} {role.name} ({role.color}) {granted} granted{suffix}")


@roles.command("create")
@click.argument("name")
@click.option("--color", type=str, default=None, help="Hex display color, e.g. '#3b82f6'")
def create_role(name: str, color: str | None) -> None:
    """Create a role named NAME."""

    async def create(db: Any) -> Any:
        return await _service(db).create_role(name, color)

    role = _run(create)
    click.echo(f"Created role '{role.id}' at position {role.position}.")


@roles.command("delete")
@click.argument("role_id")
@click.option("--yes", is_flag=True, help="Skip confirmation prompt")
def delete_role(role_id: str, yes: bool) -> None:
    """Delete the role ROLE_ID."""
    if not yes:
        click.confirm(f"Delete role '{role_id}'?", abort=True, default=False)

    async def delete(db: Any) -> None:
        await _service(db).delete_role(role_id)

    _run(delete)
    click.echo(f"Deleted role '{role_id}'.")


def _set_permission(role_id: str, permission_key: str, granted: bool) -> None:
    async def toggle(db: Any) -> Any:
        return await _service(db).set_permission(role_id, permission_key, granted)

    _run(toggle)
    verb = "Granted" if granted else "Revoked"
    click.echo(f"{verb} '{permission_key}' on role '{role_id}'.")


@roles.command("grant")
@click.argument("role_id")
@click.argument("permission_key")
def grant(role_id: str, permission_key: str) -> None:
    """Grant PERMISSION_KEY on ROLE_ID."""
    _set_permission(role_id, permission_key, True)


@roles.command("revoke")
@click.argument("role_id")
@click.argument("permission_key")
def revoke(role_id: str, permission_key: str) -> None:
    """Revoke PERMISSION_KEY on ROLE_ID."""
    _set_permission(role_id, permission_key, False)


@roles.command("check")
@click.argument("permission_key")
@click.option("--role", "role_ids", multiple=True, required=True, help="Role id held (repeatable)")
def check(permission_key: str, role_ids: tuple[str, ...]) -> None:
    """Check whether the given roles grant PERMISSION_KEY."""
    from rolekeeper.domain.services import can

    async def load(db: Any) -> Any:
        return await _repository(db).refresh()

    snapshot = _run(load)
    allowed = can(list(role_ids), permission_key, snapshot, get_settings().protected_role_id)
    click.echo(f"{permission_key}: {'granted' if allowed else 'denied'}")


@roles.command("max-per-user")
@click.argument("value", type=int, required=False)
def max_per_user(value: int | None) -> None:
    """Show the roles-per-user cap, or set it to VALUE."""
    from rolekeeper.infrastructure.persistence.repositories import RoleSettingsRepository

    async def access(db: Any) -> int:
        repository = RoleSettingsRepository(db.session_factory, get_settings())
        if value is None:
            return await repository.get_max_roles_per_user()
        return await repository.set_max_roles_per_user(value)

    click.echo(f"maxRolesPerUser: {_run(access)}")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `rolekeeper` command is run
    or when using `python -m rolekeeper`.
    """
    cli()


if __name__ == "__main__":
    main()
