"""Repository lookups that surface missing records as NotFoundError."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from sandbox.exceptions import NotFoundError


def get_or_raise(aggregate_cls, identifier):
    """Load ``identifier`` or raise NotFoundError naming the aggregate."""
    try:
        return current_domain.repository_for(aggregate_cls).get(str(identifier))
    except ObjectNotFoundError as exc:
        name = aggregate_cls.__name__
        raise NotFoundError(f"{name} not found", resource=name.lower(), id=str(identifier)) from exc
