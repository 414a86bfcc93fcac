from typing import Final, Iterable, Sequence
from urllib.parse import quote, urlencode


def tostr(v: object) -> str:
    """Render a scalar the way it appears in a path or query string."""
    if v is True:
        return "true"
    if v is False:
        return "false"
    return str(v)


def make_qs(args: Iterable[tuple[str, object]]):
    query: list[tuple[str, str]] = []

    for k, v in args:
        if v is None:
            continue

        if isinstance(v, (str, int, float)):
            query.append((k, tostr(v)))
        elif isinstance(v, Iterable):
            query.extend([(k, tostr(elt)) for elt in v if elt is not None])
        else:
            # uuids, decimals and the like
            query.append((k, tostr(v)))

    return query


class Url:
    """Immutable rendered URL: location, root prefix, path and query.

    The path is expected to be percent-encoded already (the router encodes
    each interpolated field on its own). The root prefix is quoted here;
    the location (schema, netloc and port) is NOT quoted.
    ```
    Url("/users/42", root="/api", location="https://example.test")
    ```
    """

    __slots__ = ("_loc", "_path", "_query", "_root")

    def __init__(
        self,
        path: str,
        *,
        root: str = "",
        location: str | None = None,
        query: Sequence[tuple[str, str]] | None = None,
    ):
        self._path: Final = path
        self._root: Final = root.rstrip("/")
        self._loc: Final = location.rstrip("/") if location else None
        self._query: Final = tuple(query) if query else ()

    def as_str(self):
        """Render as string"""
        url = quote(self._root) + self._path
        if self._loc:
            url = self._loc + url

        if self._query:
            qs = urlencode(self._query, doseq=True)
            if qs:
                url += f"?{qs}"
        return url

    def __hash__(self):
        return hash((self._loc, self._root, self._path, self._query))

    def __eq__(self, other: object):
        if not isinstance(other, Url):
            return NotImplemented
        if other is self:
            return True
        return self.as_str() == other.as_str()

    def __repr__(self):
        return f"Url({self.as_str()!r})"

    def with_location(self, location: str | None):
        """Make new URL with the location changed. None makes it root-relative."""
        return Url(self._path, root=self._root, location=location, query=self._query)

    def with_root(self, root: str):
        """Make new URL with the root prefix changed. Root prefix may contain slashes.
        This is intended for rebasing URL to the different subpath via WSGI SCRIPT_NAME.
        """
        return Url(self._path, root=root, location=self._loc, query=self._query)

    __str__ = as_str
