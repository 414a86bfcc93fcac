from typing import Any

import pytest

from falcon_hateoas import InvalidArgument, Link, MissingRouteParameter, NoLinkableMethod, RouteNotFound


class FakeResolver:
    """Counts router queries. Routes are name -> (methods, str.format template)."""

    def __init__(self, **routes: tuple[tuple[str, ...], str]):
        self.routes = dict(routes)
        self.calls: list[tuple[Any, ...]] = []

    def route_methods(self, route_name: str):
        self.calls.append(("methods", route_name))
        try:
            return self.routes[route_name][0]
        except KeyError:
            raise RouteNotFound(route_name) from None

    def url_for(self, route_name: str, parameters=None, *, absolute: bool = True):
        self.calls.append(("url", route_name, absolute))
        try:
            _, template = self.routes[route_name]
        except KeyError:
            raise RouteNotFound(route_name) from None
        try:
            path = template.format(**(parameters or {}))
        except KeyError as e:
            raise MissingRouteParameter(route_name, e.args[0], template) from None
        return f"https://example.test{path}" if absolute else path


@pytest.fixture
def resolver():
    return FakeResolver(
        **{
            "users.show": (("GET", "HEAD"), "/users/{id}"),
            "users.store": (("POST",), "/users"),
            "users.update": (("HEAD", "PUT"), "/users/{id}"),
            "ping": (("HEAD",), "/ping"),
        }
    )


def test_default_name(resolver: FakeResolver):
    link = Link("users.show", resolver=resolver)
    assert link.name == "users.show"
    assert link.route_name == "users.show"
    assert dict(link.route_parameters) == {}
    assert resolver.calls == []


def test_make():
    resolver = FakeResolver()
    link = Link.make("users.show", {"id": 1}, resolver=resolver)
    assert isinstance(link, Link)
    assert link.route_name == "users.show"
    assert link.route_parameters == {"id": 1}


def test_rename_chains():
    link = Link("users.show", resolver=FakeResolver())
    assert link.as_("self") is link
    assert link.name == "self"
    assert link.as_("other").as_("last").name == "last"
    assert link.route_name == "users.show"


def test_empty_names_rejected():
    with pytest.raises(InvalidArgument):
        Link("", resolver=FakeResolver())

    with pytest.raises(ValueError, match="non-empty"):
        Link(None, resolver=FakeResolver())  # type: ignore

    link = Link("users.show", resolver=FakeResolver())
    with pytest.raises(InvalidArgument):
        link.as_("")
    assert link.name == "users.show"


def test_parameters_frozen(resolver: FakeResolver):
    params = {"id": 42}
    link = Link("users.show", params, resolver=resolver)
    params["id"] = 43
    assert link.route_parameters["id"] == 42
    with pytest.raises(TypeError):
        link.route_parameters["id"] = 44  # type: ignore
    assert link.path() == "/users/42"


def test_method_skips_head(resolver: FakeResolver):
    assert Link("users.show", resolver=resolver).method() == "GET"
    assert Link("users.store", resolver=resolver).method() == "POST"
    assert Link("users.update", {"id": 1}, resolver=resolver).method() == "PUT"


def test_method_head_only(resolver: FakeResolver):
    link = Link("ping", resolver=resolver)
    with pytest.raises(NoLinkableMethod, match="besides HEAD") as exc_info:
        link.method()
    assert exc_info.value.route_name == "ping"
    assert not isinstance(exc_info.value, RouteNotFound)

    # nothing cached, a later GET is picked up
    resolver.routes["ping"] = (("GET", "HEAD"), "/ping")
    assert link.method() == "GET"


def test_path_and_url(resolver: FakeResolver):
    link = Link("users.show", {"id": 42}, resolver=resolver)
    assert link.path() == "/users/42"
    assert link.url() == "https://example.test/users/42"
    assert resolver.calls == [("url", "users.show", False), ("url", "users.show", True)]


def test_memoized(resolver: FakeResolver):
    link = Link("users.show", {"id": 42}, resolver=resolver)
    for _ in range(3):
        assert link.method() == "GET"
        assert link.path() == "/users/42"
        assert link.url() == "https://example.test/users/42"

    assert resolver.calls == [
        ("methods", "users.show"),
        ("url", "users.show", False),
        ("url", "users.show", True),
    ]

    # changed router state does not invalidate
    resolver.routes["users.show"] = (("PATCH",), "/people/{id}")
    assert link.method() == "GET"
    assert link.path() == "/users/42"
    assert len(resolver.calls) == 3


def test_caches_per_instance(resolver: FakeResolver):
    a = Link("users.show", {"id": 1}, resolver=resolver)
    b = Link("users.show", {"id": 2}, resolver=resolver)
    assert a.path() == "/users/1"
    assert b.path() == "/users/2"
    assert len(resolver.calls) == 2


def test_rename_keeps_cache(resolver: FakeResolver):
    link = Link("users.show", {"id": 42}, resolver=resolver)
    path = link.path()
    link.as_("foo")
    assert link.name == "foo"
    assert link.path() == path
    assert len(resolver.calls) == 1


def test_not_found_not_cached(resolver: FakeResolver):
    link = Link("nonexistent.route", resolver=resolver)

    with pytest.raises(RouteNotFound) as exc_info:
        link.method()
    assert exc_info.value.route_name == "nonexistent.route"

    with pytest.raises(RouteNotFound):
        link.url()

    resolver.routes["nonexistent.route"] = (("GET", "HEAD"), "/now/exists")
    assert link.method() == "GET"
    assert link.url() == "https://example.test/now/exists"

    del resolver.routes["nonexistent.route"]
    assert link.method() == "GET"
    assert link.url() == "https://example.test/now/exists"


def test_missing_parameter_propagates(resolver: FakeResolver):
    link = Link("users.show", resolver=resolver)
    with pytest.raises(MissingRouteParameter) as exc_info:
        link.path()
    assert exc_info.value.parameter == "id"
    assert exc_info.value.route_name == "users.show"

    with pytest.raises(MissingRouteParameter):
        link.url()

    # method needs no parameters
    assert link.method() == "GET"


def test_repr():
    link = Link("users.show", {"id": 42}, resolver=FakeResolver()).as_("self")
    assert repr(link) == "Link('self', route='users.show', parameters={'id': 42})"
