"""Tests for waypost.declaration — handler signatures to ParamSpec tables."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated

import pytest

from waypost.declaration import (
    Body,
    Context,
    Path,
    Query,
    RouteGroup,
    as_handler_ref,
    build_handler_ref,
)
from waypost.errors import ConfigurationError
from waypost.http.request import Request
from waypost.http.response import ResponseHandle
from waypost.routing.params import MISSING, Source
from waypost.routing.route import HandlerRef


@dataclass
class NewUser:
    name: str


class UserService:
    pass


def _specs(func, template: str = "/", **kwargs):
    return {spec.name: spec for spec in build_handler_ref(func, template, **kwargs).params}


class TestSourceResolution:
    def test_placeholder_is_path(self) -> None:
        def handler(user_id: int) -> None: ...

        spec = _specs(handler, "/users/{user_id}")["user_id"]
        assert spec.source is Source.PATH
        assert spec.target_type is int
        assert spec.required

    def test_other_scalars_are_query(self) -> None:
        def handler(page: int = 1, q: str | None = None) -> None: ...

        specs = _specs(handler)
        assert specs["page"].source is Source.QUERY
        assert specs["page"].default == 1
        assert not specs["page"].required
        assert specs["q"].source is Source.QUERY
        assert specs["q"].default is None

    def test_dataclass_is_body(self) -> None:
        def handler(payload: NewUser) -> None: ...

        spec = _specs(handler)["payload"]
        assert spec.source is Source.BODY
        assert spec.target_type is NewUser

    def test_dict_and_bytes_are_body(self) -> None:
        def handler(payload: dict[str, int]) -> None: ...

        def raw_handler(raw: bytes) -> None: ...

        assert _specs(handler)["payload"].source is Source.BODY
        assert _specs(raw_handler)["raw"].source is Source.BODY

    def test_context_types(self) -> None:
        def handler(req: Request, response: ResponseHandle) -> None: ...

        specs = _specs(handler)
        assert specs["req"].source is Source.CONTEXT
        assert specs["response"].source is Source.CONTEXT

    def test_bare_request_name_is_context(self) -> None:
        def handler(request) -> None: ...

        spec = _specs(handler)["request"]
        assert spec.source is Source.CONTEXT
        assert spec.target_type is Request

    def test_unannotated_is_string_query(self) -> None:
        def handler(q) -> None: ...

        spec = _specs(handler)["q"]
        assert spec.source is Source.QUERY
        assert spec.target_type is str
        assert spec.default is MISSING

    def test_provider_type_is_context(self) -> None:
        def handler(users: UserService) -> None: ...

        spec = _specs(handler, context_types=(UserService,))["users"]
        assert spec.source is Source.CONTEXT

    def test_optional_context_types(self) -> None:
        def handler(request: Request | None = None, users: UserService | None = None) -> None: ...

        specs = _specs(handler, context_types=(UserService,))
        assert specs["request"].source is Source.CONTEXT
        assert specs["users"].source is Source.CONTEXT


class TestMarkers:
    def test_query_key(self) -> None:
        def handler(page_size: Annotated[int, Query("pageSize")] = 20) -> None: ...

        spec = _specs(handler)["page_size"]
        assert spec.source is Source.QUERY
        assert spec.wire_name == "pageSize"
        assert spec.target_type is int

    def test_optional_annotated_keeps_marker(self) -> None:
        def handler(size: Annotated[int, Query("pageSize")] | None = None) -> None: ...

        spec = _specs(handler)["size"]
        assert spec.source is Source.QUERY
        assert spec.wire_name == "pageSize"
        assert spec.target_type == int | None
        assert spec.default is None

    def test_optional_annotated_body(self) -> None:
        def handler(payload: Annotated[NewUser, Body()] | None = None) -> None: ...

        assert _specs(handler)["payload"].source is Source.BODY

    def test_path_key(self) -> None:
        def handler(user_id: Annotated[int, Path("id")]) -> None: ...

        spec = _specs(handler, "/users/{id}")["user_id"]
        assert spec.source is Source.PATH
        assert spec.wire_name == "id"

    def test_marker_beats_placeholder_name(self) -> None:
        def handler(id: Annotated[str, Query()]) -> None: ...  # noqa: A002

        assert _specs(handler, "/users/{id}")["id"].source is Source.QUERY

    def test_body_marker_on_scalar(self) -> None:
        def handler(amount: Annotated[Decimal, Body()]) -> None: ...

        assert _specs(handler)["amount"].source is Source.BODY

    def test_context_marker(self) -> None:
        def handler(users: Annotated[UserService, Context()]) -> None: ...

        assert _specs(handler)["users"].source is Source.CONTEXT

    def test_conflicting_markers(self) -> None:
        def handler(x: Annotated[int, Query(), Body()]) -> None: ...

        with pytest.raises(ConfigurationError, match="Conflicting"):
            build_handler_ref(handler, "/")


class TestRejections:
    def test_var_args(self) -> None:
        def handler(*args) -> None: ...

        with pytest.raises(ConfigurationError, match="keyword"):
            build_handler_ref(handler, "/")

    def test_var_kwargs(self) -> None:
        def handler(**kwargs) -> None: ...

        with pytest.raises(ConfigurationError, match="keyword"):
            build_handler_ref(handler, "/")

    def test_two_bodies(self) -> None:
        def handler(a: NewUser, b: NewUser) -> None: ...

        with pytest.raises(ConfigurationError, match="body parameters"):
            build_handler_ref(handler, "/")


class TestAsHandlerRef:
    def test_passthrough(self) -> None:
        ref = HandlerRef(func=lambda: None)
        assert as_handler_ref(ref, "/") is ref

    def test_builds_with_name(self) -> None:
        def handler() -> None: ...

        ref = as_handler_ref(handler, "/", name="ping")
        assert ref.label == "ping"
        assert ref.params == ()


class TestRouteGroup:
    def test_prefix_applied(self) -> None:
        users = RouteGroup("/api/users")

        @users.get("/{user_id}")
        def get_user(user_id: int) -> None: ...

        @users.post("")
        def create_user(payload: NewUser) -> None: ...

        decls = users.declarations
        assert [(d.method, d.template) for d in decls] == [
            ("GET", "/api/users/{user_id}"),
            ("POST", "/api/users"),
        ]
        assert decls[0].handler is get_user

    def test_trailing_slash_stripped_from_prefix(self) -> None:
        group = RouteGroup("/api/")
        group.add("get", "/ping", lambda: None)
        assert group.declarations[0].template == "/api/ping"

    def test_empty_template_kept_until_included(self) -> None:
        group = RouteGroup()
        group.add("GET", "", lambda: None)
        assert group.declarations[0].template == ""

    def test_nested_empty_prefix_matches_direct_route(self) -> None:
        outer = RouteGroup("/api")
        inner = RouteGroup("")
        inner.add("GET", "", lambda: None)
        outer.include(inner)
        outer.add("POST", "", lambda: None)
        assert [d.template for d in outer.declarations] == ["/api", "/api"]

    def test_prefix_must_start_with_slash(self) -> None:
        with pytest.raises(ConfigurationError):
            RouteGroup("api")

    def test_route_with_methods(self) -> None:
        group = RouteGroup("/items")

        @group.route("/{id}", methods=["put", "patch"])
        def update(id: str) -> None: ...  # noqa: A002

        assert [d.method for d in group.declarations] == ["PUT", "PATCH"]

    def test_include_nests(self) -> None:
        api = RouteGroup("/api")
        orders = RouteGroup("/orders")
        orders.add("DELETE", "/{id}", lambda id: None)
        api.include(orders)
        assert api.declarations[0].template == "/api/orders/{id}"
        assert api.declarations[0].method == "DELETE"
