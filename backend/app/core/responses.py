"""Catalog of user-facing error responses.

Every body has the shape ``{"errors":[{"detail": "..."}]}``. Clients parse
these bytes directly, so the texts below must not change casually.
"""

from __future__ import annotations

import abc
import dataclasses
import datetime as dt

from fastapi.responses import JSONResponse


HTTP_DATE_FORMAT = "%a, %d %b %Y %H:%M:%S GMT"

# Body detail of every 500 that has no more specific message.
INTERNAL_SERVER_ERROR_DETAIL = "Internal Server Error"


def json_error(
    detail: str, status_code: int, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Generate a response with the provided status and detail as JSON."""

    return JSONResponse(
        status_code=status_code,
        content={"errors": [{"detail": detail}]},
        headers=headers,
    )


class UserFacingError(Exception, metaclass=abc.ABCMeta):
    """Base class for the recognized user-facing outcomes."""

    status_code: int = 500

    @abc.abstractmethod
    def detail(self) -> str:
        """Text placed in the body's single error entry."""

    def headers(self) -> dict[str, str] | None:
        return None

    def response(self) -> JSONResponse:
        return json_error(self.detail(), self.status_code, self.headers())


# The following carry a message supplied by the caller.
#
# Care should be taken not to include sensitive information when building
# custom user facing messages.


@dataclasses.dataclass
class BadRequest(UserFacingError):
    message: str
    status_code: int = dataclasses.field(default=400, init=False)

    def detail(self) -> str:
        return self.message

    def __str__(self) -> str:
        return self.message


@dataclasses.dataclass
class ServerError(UserFacingError):
    message: str
    status_code: int = dataclasses.field(default=500, init=False)

    def detail(self) -> str:
        return self.message

    def __str__(self) -> str:
        return self.message


@dataclasses.dataclass
class CargoLegacy(UserFacingError):
    """An error returned with status 200.

    Older cargo clients only understand errors delivered this way. Newer
    versions support other status codes, so usage should shrink over time.
    """

    message: str
    status_code: int = dataclasses.field(default=200, init=False)

    def detail(self) -> str:
        return self.message

    def __str__(self) -> str:
        return self.message


# The following do not provide a custom message to the user.


class NotFound(UserFacingError):
    status_code = 404

    def detail(self) -> str:
        return "Not Found"

    def __str__(self) -> str:
        return "NotFound"


class Forbidden(UserFacingError):
    status_code = 403

    def detail(self) -> str:
        return "must be logged in to perform that action"

    def __str__(self) -> str:
        return "Forbidden"


class ReadOnlyMode(UserFacingError):
    status_code = 503

    def detail(self) -> str:
        return (
            "Crates.io is currently in read-only mode for maintenance. "
            "Please try again later."
        )

    def __str__(self) -> str:
        return "Tried to write in read only mode"


@dataclasses.dataclass
class TooManyRequests(UserFacingError):
    retry_after: dt.datetime
    status_code: int = dataclasses.field(default=429, init=False)

    def formatted_retry_after(self) -> str:
        retry_after = self.retry_after
        if retry_after.tzinfo is not None:
            retry_after = retry_after.astimezone(dt.timezone.utc)
        return retry_after.strftime(HTTP_DATE_FORMAT)

    def detail(self) -> str:
        return (
            "You have published too many crates in a short period of time. "
            f"Please try again after {self.formatted_retry_after()} or email "
            "help@crates.io to have your limit increased."
        )

    def headers(self) -> dict[str, str] | None:
        return {"Retry-After": self.formatted_retry_after()}

    def __str__(self) -> str:
        return "TooManyRequests"


class InsecurelyGeneratedTokenRevoked(UserFacingError):
    status_code = 401

    def detail(self) -> str:
        return (
            "The given API token does not match the format used by crates.io. "
            "Tokens generated before 2020-07-14 were generated with an insecure "
            "random number generator, and have been revoked. You can generate a "
            "new token at https://crates.io/me. "
            "For more information please see "
            "https://blog.rust-lang.org/2020/07/14/crates-io-security-advisory.html. "
            "We apologize for any inconvenience."
        )

    def __str__(self) -> str:
        return "insecurely generated, revoked 2020-07"
