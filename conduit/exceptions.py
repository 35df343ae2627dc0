"""
Domain errors raised by the service layer.

Services never build HTTP responses; they raise one of these and the
application's exception handlers translate them (see ``conduit.main``).
Operations that are naturally idempotent (favoriting twice, deleting a
comment that is not on the article) do not raise at all.
"""
from typing import Iterable


class ConduitError(Exception):
    """Base class for every error the service layer raises on purpose."""


class NotFoundError(ConduitError):
    """A required entity (article, user, comment) does not exist."""

    def __init__(self, entity: str, key=None) -> None:
        self.entity = entity
        self.key = key
        if key is None:
            message = f"{entity} not found"
        else:
            message = f"{entity} {key!r} not found"
        super().__init__(message)


class ValidationError(ConduitError):
    """
    Input that the service refuses to act on.

    *fields* names every offending field so a caller can report all of
    them at once instead of one per round trip.
    """

    def __init__(
        self, message: str, fields: Iterable[str] = (), reason: str = "can't be blank"
    ) -> None:
        self.fields = tuple(fields)
        self.reason = reason
        super().__init__(message)

    def to_dict(self) -> dict:
        if not self.fields:
            return {"errors": {"body": [str(self)]}}
        return {"errors": {field: [self.reason] for field in self.fields}}
