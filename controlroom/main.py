"""
Control Room main application entry point.
"""

import asyncio
import logging
from pathlib import Path
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from controlroom.config import load_config, Config
from controlroom.models import create_tables, create_async_db_engine, create_async_session_factory
from controlroom.services.auth import AuthService
from controlroom.services.errors import ControlRoomError
from controlroom.api import deleted_policies as deleted_policies_api
from controlroom.api import notifications as notifications_api
from controlroom.api import policies as policies_api
from controlroom.api import search as search_api
from controlroom.api import signatures as signatures_api
from controlroom.api import users as users_api
from controlroom.api.deps import control_room_error_handler


logger = logging.getLogger(__name__)


def create_app(config: Config) -> FastAPI:
    """Create the Control Room FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Control Room API server...")

        engine = create_async_db_engine(config.database)
        await create_tables(engine)

        app.state.config = config
        app.state.engine = engine
        app.state.session_factory = create_async_session_factory(engine)
        app.state.auth_service = AuthService(config.auth)

        if not config.auth.jwt_secret:
            logger.warning("auth.jwt_secret is not set; all logins will be rejected")

        logger.info("Control Room API server ready")

        yield

        logger.info("Shutting down Control Room API server...")
        await engine.dispose()

    app = FastAPI(
        title="Mertz Control Room",
        description="Employee resource and policy management API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(ControlRoomError, control_room_error_handler)

    app.include_router(users_api.router)
    app.include_router(policies_api.router)
    app.include_router(signatures_api.router)
    app.include_router(notifications_api.router)
    app.include_router(search_api.router)
    app.include_router(deleted_policies_api.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint (no auth required)."""
        return {"status": "ok"}

    return app


def _load_config_or_report(config_path: Path) -> Config | None:
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}")
        print("Please create a config.yaml file or specify a different path with -c")
        return None
    return load_config(config_path)


def cmd_serve(args):
    """Run the API server."""
    config = _load_config_or_report(Path(args.config))
    if config is None:
        return 1

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = create_app(config)
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    ))

    logger.info(f"API server: http://{config.server.host}:{config.server.port}")

    try:
        asyncio.run(server.serve())
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")

    return 0


async def _create_user(config: Config, args, password: str):
    from controlroom.models.user import Role
    from controlroom.services.user_service import UserService

    engine = create_async_db_engine(config.database)
    try:
        await create_tables(engine)
        session_factory = create_async_session_factory(engine)
        async with session_factory() as session:
            service = UserService(session, config.policies)
            return await service.create_user(
                email=args.email,
                password=password,
                first_name=args.first_name,
                last_name=args.last_name,
                organization=args.organization,
                role=Role(args.role),
            )
    finally:
        await engine.dispose()


def cmd_create_user(args):
    """Create a user account, e.g. to bootstrap the first admin."""
    import getpass

    config = _load_config_or_report(Path(args.config))
    if config is None:
        return 1

    try:
        password = getpass.getpass("Enter password: ")
        if not password:
            print("Error: Password cannot be empty")
            return 1

        password_confirm = getpass.getpass("Confirm password: ")
        if password != password_confirm:
            print("Error: Passwords do not match")
            return 1

    except KeyboardInterrupt:
        print("\nCancelled")
        return 1

    try:
        user = asyncio.run(_create_user(config, args, password))
    except ControlRoomError as e:
        print(f"Error: {e.message}")
        return 1

    print(f"Created {user.role.value} user {user.email} (id: {user.id})")
    return 0


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Mertz Control Room",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command (default)
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )

    # create-user command
    user_parser = subparsers.add_parser("create-user", help="Create a user account")
    user_parser.add_argument("-c", "--config", default="config.yaml")
    user_parser.add_argument("--email", required=True)
    user_parser.add_argument("--first-name", required=True)
    user_parser.add_argument("--last-name", required=True)
    user_parser.add_argument("--organization", required=True)
    user_parser.add_argument(
        "--role",
        default="admin",
        choices=["admin", "manager", "associate"],
    )

    args = parser.parse_args()

    # Default to serve if no command specified
    if args.command is None:
        args.command = "serve"
        args.config = "config.yaml"

    if args.command == "serve":
        return cmd_serve(args)
    elif args.command == "create-user":
        return cmd_create_user(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    exit(main())
