import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Concatenate, Final, Mapping, final
from urllib.parse import quote

from falcon import Request, Response
from falcon.routing.compiled import CompiledRouter

from .errors import MissingRouteParameter, RouteNotFound
from .link import Link
from .url import Url, make_qs, tostr

logger = logging.getLogger("falcon_hateoas.router")

type Responder[TReq: Request, TResp: Response] = Callable[Concatenate[TReq, TResp, ...], None]

# {field}, {field:converter} or {field:converter(args)}
_FIELD_PATTERN: Final = re.compile(r"{(?P<fname>[^}:(]*)(?::(?P<cname>[^}(]*)(?:\((?P<argstr>[^}]*)\))?)?}")

# same default as falcon's DateTimeConverter
_DT_FORMAT: Final = "%Y-%m-%dT%H:%M:%S%z"


@final
class CatchallResource:
    pass


_catchall_resource: Final = CatchallResource()


def _template_fields(template: str) -> tuple[str, ...]:
    return tuple(m["fname"] for m in _FIELD_PATTERN.finditer(template))


def _dt_format(argstr: str | None) -> str:
    if argstr:
        m = re.match(r"""\s*(?:format_string\s*=\s*)?(['"])(.*?)\1""", argstr)
        if m:
            return m.group(2)
    return _DT_FORMAT


def _num_digits(argstr: str | None) -> int | None:
    if argstr:
        m = re.match(r"\s*(?:num_digits\s*=\s*)?(\d+)\s*(?:,|$)", argstr) or re.search(
            r"\bnum_digits\s*=\s*(\d+)", argstr
        )
        if m:
            return int(m.group(1))
    return None


def _render_field(value: Any, cname: str | None, argstr: str | None) -> str:
    """Render a field value so that falcon's converter of the same field accepts it."""
    if cname == "dt" and isinstance(value, datetime):
        fmt = _dt_format(argstr)
        # naive values are taken as UTC, %z would render empty otherwise
        if value.tzinfo is None and "%z" in fmt:
            value = value.replace(tzinfo=timezone.utc)
        return quote(value.strftime(fmt), safe="")
    if cname == "int" and isinstance(value, int) and not isinstance(value, bool):
        n = _num_digits(argstr)
        if n is not None:
            return quote(f"{value:0{n}d}", safe="")
    return quote(tostr(value), safe="/" if cname == "path" else "")


@dataclass(frozen=True, slots=True)
class NamedRoute:
    """Route registered under a name: falcon URI template plus allowed methods."""

    name: str
    template: str
    methods: tuple[str, ...]

    @property
    def fields(self) -> tuple[str, ...]:
        return _template_fields(self.template)

    def as_url(self, parameters: Mapping[str, Any]) -> Url:
        """Interpolate the template. Parameters not consumed by the template go to the query string."""
        parts: list[str] = []
        used: set[str] = set()
        pos = 0
        for m in _FIELD_PATTERN.finditer(self.template):
            parts.append(quote(self.template[pos : m.start()]))
            fname = m["fname"]
            value = parameters.get(fname)
            if value is None:
                raise MissingRouteParameter(self.name, fname, self.template)
            used.add(fname)
            parts.append(_render_field(value, m["cname"], m["argstr"]))
            pos = m.end()
        parts.append(quote(self.template[pos:]))

        extra = [(k, v) for k, v in parameters.items() if k not in used]
        return Url("".join(parts), query=make_qs(extra))


def _cook[T](by_meth: Mapping[str, T | None]) -> dict[str, T]:
    """Drop empty responders, put GET first and alias HEAD to it unless HEAD is given."""
    cooked = {m.upper(): r for m, r in by_meth.items() if r}
    if "GET" not in cooked:
        return cooked
    head = cooked.pop("HEAD", cooked["GET"])
    get = cooked.pop("GET")
    return {"GET": get, "HEAD": head, **cooked}


def _validate_responder(meth: str, handler: Callable[..., Any], fields: tuple[str, ...]):
    import inspect
    from inspect import Parameter

    sig = inspect.signature(handler)
    params = sig.parameters.values()

    name = handler.__name__
    if not name.startswith("on_"):
        raise ValueError("name must begin with on_")

    if len(params) < 2:
        raise TypeError("responder must accept req and resp")

    # first two params are req, resp
    # last param may be **kwargs
    req, resp, *responder_params = params

    # req, resp should be positional or positional-or-keyword
    if not (
        req.kind in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD) and req.default == Parameter.empty
    ):
        raise TypeError("wrong req parameter")

    if not (
        resp.kind in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD) and resp.default == Parameter.empty
    ):
        raise TypeError("wrong resp parameter")

    # template fields are keyword-only
    responder_params = [r for r in responder_params if r.kind == Parameter.KEYWORD_ONLY]

    # the fields and params must match exactly, though may be in different order
    diff = set(fields) ^ {param.name for param in responder_params}
    if diff:
        raise ValueError(f"no matching field and keyword-parameter: {sorted(diff)}")

    for param in responder_params:
        if param.default != Parameter.empty:
            raise TypeError(f"parameter {param.name} must have no default value")


class Router[TReq: Request, TResp: Response](CompiledRouter):
    """Falcon router with named routes, resolving names to methods and URLs for links.

    Absolute URLs are rendered against `base_url` (schema, netloc and port) and
    `root_path` (WSGI SCRIPT_NAME). Use `bind()` to render against the current
    request instead.
    """

    def __init__(self, *, base_url: str = "http://localhost", root_path: str = "", strict: bool = False) -> None:
        super().__init__()
        self._strict = strict
        self._named: dict[str, NamedRoute] = {}
        self.base_url = base_url
        self.root_path = root_path

    @property
    def named_routes(self) -> Mapping[str, NamedRoute]:
        return MappingProxyType(self._named)

    def _register(self, name: str, template: str, methods: Mapping[str, Callable[..., Any]]) -> NamedRoute:
        if not name:
            raise ValueError("route name must not be empty")
        if name in self._named:
            raise ValueError(f"route name already registered ({name})")
        if not template.startswith("/"):
            raise ValueError(f"route must begin with slash ({template})")
        if not methods:
            raise ValueError(f"no responders for route {name}")

        self._check_responders(template, methods)
        return NamedRoute(name, template, tuple(methods))

    def _check_responders(self, template: str, methods: Mapping[str, Callable[..., Any]]) -> None:
        if not self._strict:
            return
        fields = _template_fields(template)
        for http_method, responder in methods.items():
            try:
                _validate_responder(http_method, responder, fields)
            except Exception as e:
                raise ValueError(f"Handler {responder} validation error: {e}") from e

    def add_route(self, uri_template: str, resource: object, *, name: str | None = None, **kwargs: Any) -> None:
        """Add route to resource with autodetected methods, as falcon.App.add_route does.
        Supply `name` to make the route linkable:
        ```
        app.add_route("/users/{id:int}", users, name="users.show")
        ```
        """
        if name is None:
            self._check_responders(uri_template, super().map_http_methods(resource, suffix=kwargs.get("suffix")))
            return super().add_route(uri_template, resource, **kwargs)

        cooked = _cook(super().map_http_methods(resource, suffix=kwargs.get("suffix")))
        route = self._register(name, uri_template, cooked)
        super().add_route(uri_template, resource, _cooked=dict(cooked), **kwargs)
        self._named[name] = route
        logger.debug("added route %s %s %s", name, uri_template, route.methods)

    def add(
        self,
        name: str,
        template: str,
        *,
        # most common methods here. other (webdav etc) are via kwargs
        GET: Responder[TReq, TResp] | None = None,
        POST: Responder[TReq, TResp] | None = None,
        PUT: Responder[TReq, TResp] | None = None,
        PATCH: Responder[TReq, TResp] | None = None,
        DELETE: Responder[TReq, TResp] | None = None,
        OPTIONS: Responder[TReq, TResp] | None = None,
        **responders: Responder[TReq, TResp] | None,
    ) -> NamedRoute:
        """Register named route with the provided responders.
        A GET responder also answers HEAD unless HEAD is given explicitly.
        """
        cooked = _cook(
            {
                "GET": GET,
                "POST": POST,
                "PUT": PUT,
                "PATCH": PATCH,
                "DELETE": DELETE,
                "OPTIONS": OPTIONS,
                **responders,
            }
        )
        route = self._register(name, template, cooked)

        # bound methods of a single resource keep it as the falcon resource
        owners = {id(getattr(r, "__self__", _catchall_resource)): r for r in cooked.values()}
        if len(owners) == 1:
            resource: object = getattr(next(iter(owners.values())), "__self__", _catchall_resource)
        else:
            resource = _catchall_resource

        super().add_route(template, resource, _cooked=dict(cooked))
        self._named[name] = route
        logger.debug("added route %s %s %s", name, template, route.methods)
        return route

    def map_http_methods(
        self,
        resource: object,
        *,
        # for direct registration
        _cooked: dict[str, Callable[..., None]] | None = None,
        **kwargs: Any,
    ):
        if _cooked:
            return _cooked
        return super().map_http_methods(resource, **kwargs)

    def compile(self):
        # trigger compile
        self.find("")

    def has_route(self, name: str) -> bool:
        return name in self._named

    def get_route(self, name: str) -> NamedRoute:
        try:
            return self._named[name]
        except KeyError:
            logger.debug("route not found: %s", name)
            raise RouteNotFound(name) from None

    def route_methods(self, route_name: str) -> tuple[str, ...]:
        return self.get_route(route_name).methods

    def url_for(
        self,
        route_name: str,
        parameters: Mapping[str, Any] | None = None,
        *,
        absolute: bool = True,
        base_url: str | None = None,
        root_path: str | None = None,
    ) -> str:
        """Render URL of the named route. Relative URLs are root-relative paths."""
        route = self.get_route(route_name)
        try:
            url = route.as_url(parameters or {})
        except MissingRouteParameter as e:
            logger.debug("cannot build url for %s: %s", route_name, e)
            raise

        url = url.with_root(self.root_path if root_path is None else root_path)
        if absolute:
            url = url.with_location(self.base_url if base_url is None else base_url)
        return url.as_str()

    def link(self, route_name: str, route_parameters: Mapping[str, Any] | None = None) -> Link:
        return Link(route_name, route_parameters, resolver=self)

    def bind(self, req: Request) -> "BoundResolver":
        """Resolver rendering URLs against the scheme, host and root path of the request."""
        return BoundResolver(self, f"{req.scheme}://{req.netloc}", req.root_path)


@dataclass(frozen=True, slots=True)
class BoundResolver:
    router: Router[Any, Any]
    base_url: str
    root_path: str

    def route_methods(self, route_name: str) -> tuple[str, ...]:
        return self.router.route_methods(route_name)

    def url_for(
        self,
        route_name: str,
        parameters: Mapping[str, Any] | None = None,
        *,
        absolute: bool = True,
    ) -> str:
        return self.router.url_for(
            route_name,
            parameters,
            absolute=absolute,
            base_url=self.base_url,
            root_path=self.root_path,
        )

    def link(self, route_name: str, route_parameters: Mapping[str, Any] | None = None) -> Link:
        return Link(route_name, route_parameters, resolver=self)
