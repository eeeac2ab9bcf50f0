"""
Actor identity (``crm_kernel.domain.identity``).

Responsibility
--------------
Carries "who is acting" into the workflow services without coupling them
to the authentication layer.  The host binds a ``Principal`` per request;
services ask an ``IdentitySource`` when no explicit actor is passed.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator, Protocol, runtime_checkable

from crm_kernel.domain.states import SalesRole
from crm_kernel.exceptions import UnidentifiedActorError


@dataclass(frozen=True)
class Principal:
    """The authenticated actor behind a request.

    ``actor_id`` is the string form of the acting sales user's id, so that
    self-targeting checks compare ``str(entity_id) == actor_id``.
    """

    actor_id: str
    display_name: str
    role: SalesRole | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == SalesRole.ADMIN


SYSTEM_PRINCIPAL = Principal(actor_id="system", display_name="System")


@runtime_checkable
class IdentitySource(Protocol):
    def current_principal(self) -> Principal: ...


class StaticIdentitySource:
    """Always yields the same principal.  For scripts and tests."""

    def __init__(self, principal: Principal = SYSTEM_PRINCIPAL):
        self._principal = principal

    def current_principal(self) -> Principal:
        return self._principal


class ContextIdentitySource:
    """
    Principal held in a ``ContextVar`` for the duration of a request.

    Contract:
        The host calls ``bind(principal)`` around request handling.  Outside
        a binding, ``current_principal`` returns the fallback or raises
        ``UnidentifiedActorError``.
    """

    _current: ContextVar[Principal | None] = ContextVar(
        "crm_current_principal", default=None
    )

    def __init__(self, fallback: Principal | None = None):
        self._fallback = fallback

    def current_principal(self) -> Principal:
        principal = self._current.get()
        if principal is not None:
            return principal
        if self._fallback is not None:
            return self._fallback
        raise UnidentifiedActorError()

    @classmethod
    @contextmanager
    def bind(cls, principal: Principal) -> Iterator[Principal]:
        token = cls._current.set(principal)
        try:
            yield principal
        finally:
            cls._current.reset(token)
