"""Router aggregation: every feature router is mounted under ``/api``."""

from fastapi import FastAPI

from . import accounts, categories, rules, transactions


def register_routers(app: FastAPI) -> None:
    """Attach all API routes to the FastAPI application."""

    app.include_router(accounts.router, prefix="/api")
    app.include_router(categories.router, prefix="/api")
    app.include_router(rules.router, prefix="/api")
    app.include_router(transactions.router, prefix="/api")
