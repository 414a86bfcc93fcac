from types import MappingProxyType
from typing import Any, Mapping, Protocol, Self, Sequence

from .errors import InvalidArgument, NoLinkableMethod


class LinkResolver(Protocol):
    """What a link needs from the router: the methods of a named route and its URL."""

    def route_methods(self, route_name: str) -> Sequence[str]: ...

    def url_for(
        self,
        route_name: str,
        parameters: Mapping[str, Any] | None = None,
        *,
        absolute: bool = True,
    ) -> str: ...


def _check_name(value: object, what: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidArgument(f"{what} must be a non-empty string, got {value!r}")
    return value


class Link:
    """Hypermedia link to a named route.

    The method, path and url are resolved lazily through the resolver and
    kept for the lifetime of the link. A failed resolution is not kept, so
    the next call asks the resolver again.
    ```
    link = router.link("users.show", {"id": 42}).as_("self")
    link.method(), link.path(), link.url()
    ```
    Links are request-scoped and not meant to be shared between threads.
    """

    __slots__ = ("_method", "_name", "_params", "_path", "_resolver", "_route_name", "_url")

    def __init__(
        self,
        route_name: str,
        route_parameters: Mapping[str, Any] | None = None,
        *,
        resolver: LinkResolver,
    ) -> None:
        self._route_name = _check_name(route_name, "route name")
        self._params = MappingProxyType(dict(route_parameters or {}))
        self._name = route_name
        self._resolver = resolver
        self._method: str | None = None
        self._path: str | None = None
        self._url: str | None = None

    @classmethod
    def make(
        cls,
        route_name: str,
        route_parameters: Mapping[str, Any] | None = None,
        *,
        resolver: LinkResolver,
    ) -> Self:
        return cls(route_name, route_parameters, resolver=resolver)

    def as_(self, name: str) -> Self:
        """Rename the link. Returns the same link for chaining."""
        self._name = _check_name(name, "link name")
        return self

    @property
    def name(self) -> str:
        return self._name

    @property
    def route_name(self) -> str:
        return self._route_name

    @property
    def route_parameters(self) -> Mapping[str, Any]:
        return self._params

    def method(self) -> str:
        """First HTTP method of the route, skipping the HEAD alias of GET."""
        if self._method is None:
            methods = self._resolver.route_methods(self._route_name)
            method = next((m for m in methods if m != "HEAD"), None)
            if method is None:
                raise NoLinkableMethod(self._route_name)
            self._method = method
        return self._method

    def path(self) -> str:
        """Root-relative path of the route, e.g. /users/42"""
        if self._path is None:
            self._path = self._resolver.url_for(self._route_name, self._params, absolute=False)
        return self._path

    def url(self) -> str:
        """Absolute URL of the route, e.g. https://example.test/users/42"""
        if self._url is None:
            self._url = self._resolver.url_for(self._route_name, self._params, absolute=True)
        return self._url

    def __repr__(self) -> str:
        return f"Link({self._name!r}, route={self._route_name!r}, parameters={dict(self._params)!r})"
