"""HATEOAS links to named falcon routes"""

__version__ = "0.1.0"

from .errors import (
    HateoasError,
    InvalidArgument,
    MissingRouteParameter,
    NoLinkableMethod,
    RouteNotFound,
)
from .link import Link, LinkResolver
from .router import BoundResolver, NamedRoute, Router
from .url import Url

__all__ = [
    "BoundResolver",
    "HateoasError",
    "InvalidArgument",
    "Link",
    "LinkResolver",
    "MissingRouteParameter",
    "NamedRoute",
    "NoLinkableMethod",
    "RouteNotFound",
    "Router",
    "Url",
]
