"""Failure aggregation for request handlers.

A raw exception raised anywhere below a handler is turned into a ``Fault``
by ``classify``. While the fault unwinds, each layer may record what it was
doing (``append_context``) and may offer a user-facing fallback
(``propose_response``). The request boundary then calls ``finalize`` to get
either a response for the client or an opaque error to log.

Typical use inside a handler::

    with chain_internal_cause("error loading crate"):
        krate = (await db.execute(stmt)).scalar_one()

    with chain_user_facing_fallback(Forbidden):
        user = await authenticate(request, db)
"""

from __future__ import annotations

import contextlib
import dataclasses
from collections.abc import Callable, Iterator
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, NoResultFound
from starlette.responses import Response

from app.core.responses import (
    BadRequest,
    CargoLegacy,
    NotFound,
    ReadOnlyMode,
    ServerError,
    UserFacingError,
)


T = TypeVar("T")

ResponseFactory = Callable[[], UserFacingError]

READ_ONLY_TRANSACTION_SUFFIX = "read-only transaction"


@dataclasses.dataclass(frozen=True, slots=True)
class Internal:
    """A context message supplied by a layer, intended for logs only."""

    text: str

    def render(self) -> str:
        return self.text


@dataclasses.dataclass(frozen=True, slots=True)
class Opaque:
    """A wrapped lower-level exception, most useful as the root cause."""

    error: BaseException

    def render(self) -> str:
        return str(self.error)


ChainEntry = Internal | Opaque


class Fault(Exception):
    """A cause chain plus at most one committed user-facing response.

    The first chain entry, if present, is the root cause. The chain is for
    logging and is never sent to the client.
    """

    def __init__(
        self,
        chain: list[ChainEntry] | None = None,
        response: UserFacingError | None = None,
    ) -> None:
        super().__init__()
        self.chain: list[ChainEntry] = list(chain or [])
        self.response: UserFacingError | None = response

    @classmethod
    def internal(cls, text: str) -> Fault:
        """A fault with a root internal message and no user-facing response."""

        return cls(chain=[Internal(text)])

    @classmethod
    def user_facing(cls, entry: UserFacingError) -> Fault:
        return cls(response=entry)

    @classmethod
    def root_cause(cls, entry: UserFacingError) -> Fault:
        """Use a catalog entry both as the root cause and as the response."""

        return cls(chain=[Opaque(entry)], response=entry)

    @classmethod
    def bad_request(cls, message: str) -> Fault:
        return cls.user_facing(BadRequest(message))

    @classmethod
    def server_error(cls, message: str) -> Fault:
        return cls.user_facing(ServerError(message))

    @classmethod
    def cargo_err_legacy(cls, message: str) -> Fault:
        return cls.user_facing(CargoLegacy(message))

    def append_context(self, text: str) -> Fault:
        """Record an internal message; it reads first in the rendered chain."""

        self.chain.append(Internal(text))
        return self

    def propose_response(self, factory: ResponseFactory) -> Fault:
        """Commit a user-facing response unless one is already set.

        A response prepared further down the call stack is more specific than
        a fallback offered higher up, so it is never overwritten. ``factory``
        is only called when nothing has been committed yet.
        """

        if self.response is None:
            self.response = factory()
        return self

    def root_cause_is(self, kind: type[BaseException]) -> bool:
        if not self.chain:
            return False
        root = self.chain[0]
        return isinstance(root, Opaque) and isinstance(root.error, kind)

    def cause_chain(self) -> str:
        """Summary of the cause chain, innermost error last."""

        return " caused by ".join(entry.render() for entry in reversed(self.chain))

    def __str__(self) -> str:
        return self.cause_chain()

    def __repr__(self) -> str:
        response = "None" if self.response is None else "Some(_)"
        return f"Fault(chain={self.chain!r}, response={response})"


class InternalAppError(Exception):
    """Handed to the outer pipeline when there is no user-facing response.

    ``str()`` is the full cause chain; the pipeline logs it and answers with
    a generic 500.
    """


@dataclasses.dataclass(frozen=True, slots=True)
class Responded:
    response: Response
    cause: str | None


@dataclasses.dataclass(frozen=True, slots=True)
class Unhandled:
    error: InternalAppError


Outcome = Responded | Unhandled


def is_read_only_violation(exc: BaseException) -> bool:
    # The DBAPIError message also carries the SQL, so inspect the driver error.
    if not isinstance(exc, DBAPIError) or exc.orig is None:
        return False
    return str(exc.orig).rstrip().endswith(READ_ONLY_TRANSACTION_SUFFIX)


def is_record_absent(exc: BaseException) -> bool:
    return isinstance(exc, NoResultFound)


def classify(exc: BaseException) -> Fault:
    """Convert a raw exception into a Fault, special-casing known failures."""

    if isinstance(exc, Fault):
        return exc
    if is_read_only_violation(exc):
        return Fault(chain=[Opaque(exc)], response=ReadOnlyMode())
    return Fault(chain=[Opaque(exc)])


def finalize(fault: Fault) -> Outcome:
    """Finalize the fault built while unwinding an endpoint."""

    if fault.response is not None:
        cause = fault.cause_chain() if fault.chain else None
        return Responded(response=fault.response.response(), cause=cause)

    if fault.chain:
        root = fault.chain[0]
        if isinstance(root, Opaque) and is_record_absent(root.error):
            return Responded(response=NotFound().response(), cause=None)

    return Unhandled(error=InternalAppError(fault.cause_chain()))


@contextlib.contextmanager
def chain_internal_cause(text: str) -> Iterator[None]:
    """Add ``text`` to the cause chain of anything raised inside the block."""

    try:
        yield
    except Fault as fault:
        raise fault.append_context(text)
    except Exception as exc:
        raise classify(exc).append_context(text) from exc


@contextlib.contextmanager
def chain_user_facing_fallback(factory: ResponseFactory) -> Iterator[None]:
    """Offer a user-facing response for anything raised inside the block.

    The fallback is only applied if a response has not been set yet.
    """

    try:
        yield
    except Fault as fault:
        raise fault.propose_response(factory)
    except Exception as exc:
        raise classify(exc).propose_response(factory) from exc


def present_or_internal(value: T | None, text: str) -> T:
    if value is None:
        raise Fault.internal(text)
    return value


def present_or_fallback(value: T | None, factory: ResponseFactory) -> T:
    if value is None:
        raise Fault.user_facing(factory())
    return value
