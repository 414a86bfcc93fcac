"""Exceptions raised while building and resolving links."""


class HateoasError(Exception):
    """Base for all falcon_hateoas errors."""


class InvalidArgument(HateoasError, ValueError):  # noqa: N818
    """Empty or malformed route name or link name."""


class RouteNotFound(HateoasError, LookupError):  # noqa: N818
    """No route is registered under the requested name."""

    def __init__(self, route_name: str, detail: str = "") -> None:
        self.route_name = route_name
        super().__init__(detail or f"route not found: {route_name!r}")


class MissingRouteParameter(HateoasError, LookupError):  # noqa: N818
    """The route template needs a field the link parameters do not supply."""

    def __init__(self, route_name: str, parameter: str, template: str) -> None:
        self.route_name = route_name
        self.parameter = parameter
        self.template = template
        super().__init__(f"missing parameter {parameter!r} for route {route_name!r} ({template})")


class NoLinkableMethod(HateoasError, LookupError):  # noqa: N818
    """The route exists but answers HEAD only, so a link has no method to advertise."""

    def __init__(self, route_name: str) -> None:
        self.route_name = route_name
        super().__init__(f"route {route_name!r} has no method besides HEAD")
