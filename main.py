"""
Main application entry point for the Phonebook API.

This module builds the FastAPI application: it configures logging and
CORS, registers the envelope-rendering exception handlers, owns the
database resource for the lifetime of the app, and includes routers for
users, contacts and phone numbers.

Modules:
- FastAPI: Web framework
- CORSMiddleware: Middleware for handling CORS
- phonebook.database: Database resource and session dependency
- phonebook.responses: Response envelope and exception handlers
- phonebook.users: Users router
- phonebook.contacts: Contacts router
- phonebook.phone_numbers: Phone numbers router
- phonebook.core: Application settings
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from phonebook import contacts, phone_numbers, users
from phonebook.core import get_settings
from phonebook.database import Database
from phonebook.logging_config import setup_logging
from phonebook.responses import include_resource, register_exception_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create missing tables on startup and release the pool on shutdown.
    """
    database: Database = app.state.database
    database.create_all()
    logger.info("Database ready: %s", database.engine.url.render_as_string())
    yield
    database.dispose()
    logger.info("Database connections closed")


def create_app(database: Database | None = None) -> FastAPI:
    """
    Build a configured application.

    Args:
        database (Database | None): Database to serve from; one is built
            from settings when omitted.

    Returns:
        FastAPI: Application with all routers and handlers attached.
    """
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
    app.state.database = database or Database.from_settings(settings)

    # Configure CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    include_resource(app, users.router)
    include_resource(app, contacts.router)
    include_resource(app, phone_numbers.router)

    @app.get("/")
    def root():
        """
        Root endpoint for the API.

        Returns:
            dict: JSON message directing users to the Swagger UI.
        """
        return {"msg": "Phonebook API. Visit /docs for Swagger UI"}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
