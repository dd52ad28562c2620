"""Per-request session provider on top of Flask-Login."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app, g, session
from flask_login import current_user, logout_user

from utils.datastore import DataStore

SESSION_STATES: tuple[str, ...] = ("resolving", "authenticated", "anonymous")


@dataclass
class SessionContext:
    identity: Optional[str] = None
    email: Optional[str] = None
    loading: bool = True

    @property
    def state(self) -> str:
        if self.loading:
            return "resolving"
        return "authenticated" if self.identity else "anonymous"

    @property
    def is_authenticated(self) -> bool:
        return self.state == "authenticated"


def resolve_session() -> SessionContext:
    """Resolve the request identity once and publish it on ``g``."""
    ctx = SessionContext()
    if current_user and current_user.is_authenticated:
        ctx.identity = str(current_user.id)
        ctx.email = current_user.email
    ctx.loading = False
    g.session_ctx = ctx
    g.pop("data_store", None)
    return ctx


def current_session() -> SessionContext:
    ctx = g.get("session_ctx")
    return ctx if ctx is not None else SessionContext()


def get_store() -> DataStore:
    """Return the store for the resolved identity, resolving first if needed."""
    ctx = current_session()
    if ctx.loading:
        ctx = resolve_session()
    store = g.get("data_store")
    if store is None or store.identity != ctx.identity:
        store = DataStore(ctx.identity)
        g.data_store = store
    return store


def sign_out() -> None:
    identity = current_session().identity
    logout_user()
    session.clear()
    g.session_ctx = SessionContext(loading=False)
    g.pop("data_store", None)
    current_app.logger.info("session_signed_out", extra={"identity": identity})


def init_session_provider(app) -> None:
    @app.before_request
    def _resolve_before_request() -> None:
        # A before_request hook that returns a value replaces the response.
        resolve_session()

    @app.context_processor
    def _session_context():
        return {"session_ctx": current_session()}
