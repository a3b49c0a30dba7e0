"""Middleware tests."""

import logging

import pytest
from switchyard_core.errors import InvalidMiddlewareError
from switchyard_core.middleware.auth import AuthMiddleware, AuthStatus, UnauthorizedError
from switchyard_core.middleware.base import (
    CallableMiddleware,
    Middleware,
    MiddlewareChain,
    PassthroughMiddleware,
    normalize_middleware,
)
from switchyard_core.middleware.logging import LoggingConfig, LoggingMiddleware
from switchyard_core.routing.router import Router


class Trace(Middleware):
    """Records entry and exit around the rest of the chain."""

    def __init__(self, label, events):
        self.label = label
        self.events = events

    def handle(self, next_handler, params):
        self.events.append(f"{self.label}:in")
        result = next_handler(params)
        self.events.append(f"{self.label}:out")
        return result


class AddUser(Middleware):
    """Adds a user to the parameters."""

    def handle(self, next_handler, params):
        params = dict(params)
        params["user"] = "alice"
        return next_handler(params)


class Deny(Middleware):
    """Never calls the rest of the chain."""

    def handle(self, next_handler, params):
        return "denied"


class NotMiddleware:
    pass


def echo(params):
    return params


class TestMiddlewareChain:
    """Test chain composition."""

    def test_onion_order(self):
        """Test middleware wraps the handler outermost first."""
        events = []
        chain = MiddlewareChain([Trace("A", events), Trace("B", events)])

        def handler(params):
            events.append("handler")
            return "ok"

        assert chain.execute(handler, {}) == "ok"
        assert events == ["A:in", "B:in", "handler", "B:out", "A:out"]

    def test_params_mutation(self):
        """Test middleware can pass modified parameters inward."""
        chain = MiddlewareChain([AddUser()])
        assert chain.execute(echo, {"id": "1"}) == {"id": "1", "user": "alice"}

    def test_short_circuit(self):
        """Test middleware can return without calling the handler."""
        events = []
        chain = MiddlewareChain([Deny(), Trace("B", events)])
        assert chain.execute(echo, {}) == "denied"
        assert events == []

    def test_exceptions_propagate(self):
        """Test handler errors pass through middleware unchanged."""
        events = []
        chain = MiddlewareChain([Trace("A", events)])

        def failing(params):
            raise KeyError("missing")

        with pytest.raises(KeyError):
            chain.execute(failing, {})
        assert events == ["A:in"]

    def test_empty_chain(self):
        """Test an empty chain calls the handler directly."""
        assert MiddlewareChain().execute(echo, {"a": 1}) == {"a": 1}

    def test_add_remove(self):
        """Test adding and removing middleware."""
        chain = MiddlewareChain()
        mw = PassthroughMiddleware()
        chain.add(mw)
        assert len(chain) == 1
        assert chain.remove(mw) is True
        assert chain.remove(mw) is False
        assert len(chain) == 0


class TestNormalizeMiddleware:
    """Test middleware normalisation."""

    def test_instance(self):
        """Test instances pass through."""
        mw = PassthroughMiddleware()
        assert normalize_middleware(mw) == [mw]

    def test_class(self):
        """Test classes are instantiated."""
        [mw] = normalize_middleware([PassthroughMiddleware])
        assert isinstance(mw, PassthroughMiddleware)

    def test_reference(self):
        """Test "module:Class" references are imported."""
        [mw] = normalize_middleware("switchyard_core.middleware.base:PassthroughMiddleware")
        assert isinstance(mw, PassthroughMiddleware)

    def test_callable(self):
        """Test plain functions are wrapped."""
        def stamp(next_handler, params):
            return next_handler({**params, "stamped": True})

        [mw] = normalize_middleware(stamp)
        assert isinstance(mw, CallableMiddleware)
        assert MiddlewareChain([mw]).execute(echo, {}) == {"stamped": True}

    def test_none(self):
        """Test no middleware."""
        assert normalize_middleware(None) == []

    def test_wrong_class(self):
        """Test classes not implementing Middleware are rejected."""
        with pytest.raises(InvalidMiddlewareError):
            normalize_middleware(NotMiddleware)

    def test_unknown_reference(self):
        """Test unresolvable references are rejected."""
        with pytest.raises(InvalidMiddlewareError):
            normalize_middleware("switchyard_core.middleware.base:Nope")

    def test_not_callable(self):
        """Test arbitrary values are rejected."""
        with pytest.raises(InvalidMiddlewareError):
            normalize_middleware(42)

    def test_router_rejects_invalid(self):
        """Test the router validates middleware at registration."""
        router = Router()
        with pytest.raises(TypeError):
            router.get("/users", echo, middleware=[NotMiddleware])


class TestRouterMiddleware:
    """Test middleware running through the router."""

    def test_order_global_group_route(self):
        """Test execution order across all three levels."""
        events = []
        router = Router()
        router.use(Trace("global", events))
        with router.group(prefix="/api", middleware=[Trace("group", events)]):
            router.get("/users", lambda: events.append("handler"), middleware=[Trace("route", events)])

        router.dispatch("GET", "/api/users")
        assert events == [
            "global:in", "group:in", "route:in",
            "handler",
            "route:out", "group:out", "global:out",
        ]

    def test_mutated_params_reach_handler(self):
        """Test handlers see parameters changed by middleware."""
        router = Router()
        router.get("/users/{id}", lambda id, user: f"{user}:{id}", middleware=[AddUser])
        assert router.dispatch("GET", "/users/3") == "alice:3"

    def test_callable_middleware_short_circuit(self):
        """Test function middleware can stop the chain."""
        router = Router()
        router.use(lambda next_handler, params: "blocked")
        router.get("/users", lambda: "users")
        assert router.dispatch("GET", "/users") == "blocked"


class TestAuthMiddleware:
    """Test the token check middleware."""

    def test_valid_token(self):
        """Test a matching token lets the call through."""
        chain = MiddlewareChain([AuthMiddleware(token="secret", expected="secret")])
        assert chain.execute(echo, {"id": "1"}) == {"id": "1"}

    def test_missing_token(self):
        """Test a missing token is rejected."""
        chain = MiddlewareChain([AuthMiddleware(expected="secret")])
        with pytest.raises(UnauthorizedError) as exc_info:
            chain.execute(echo, {})
        assert exc_info.value.status == AuthStatus.MISSING

    def test_invalid_token(self):
        """Test a wrong token is rejected."""
        chain = MiddlewareChain([AuthMiddleware(token="wrong", expected="secret")])
        with pytest.raises(UnauthorizedError) as exc_info:
            chain.execute(echo, {})
        assert exc_info.value.status == AuthStatus.INVALID

    def test_token_from_route_parameter(self):
        """Test the token can come from a path parameter."""
        router = Router()
        router.get(
            "/hooks/{token}",
            lambda: "accepted",
            middleware=[AuthMiddleware(validator=lambda t: t.startswith("tk_"))],
        )
        assert router.dispatch("GET", "/hooks/tk_123") == "accepted"
        with pytest.raises(UnauthorizedError):
            router.dispatch("GET", "/hooks/nope")

    def test_identity_param(self):
        """Test the accepted token is exposed to the handler."""
        chain = MiddlewareChain([AuthMiddleware(token="abc", identity_param="identity")])
        assert chain.execute(echo, {}) == {"identity": "abc"}


class TestLoggingMiddleware:
    """Test the call logging middleware."""

    def test_logs_call(self, caplog):
        """Test calls are logged with redacted parameters."""
        caplog.set_level(logging.INFO, logger="switchyard_core.middleware.logging")
        chain = MiddlewareChain([LoggingMiddleware()])

        assert chain.execute(echo, {"id": "1", "password": "hunter2"}) == {
            "id": "1",
            "password": "hunter2",
        }
        assert "-->" in caplog.text
        assert "<--" in caplog.text
        assert "hunter2" not in caplog.text
        assert "***" in caplog.text

    def test_logs_and_reraises(self, caplog):
        """Test failures are logged and re-raised."""
        caplog.set_level(logging.INFO, logger="switchyard_core.middleware.logging")
        chain = MiddlewareChain([LoggingMiddleware(LoggingConfig(log_params=False))])

        def failing(params):
            raise ValueError("bad value")

        with pytest.raises(ValueError):
            chain.execute(failing, {})
        assert "ValueError: bad value" in caplog.text

    def test_log_result(self, caplog):
        """Test results are logged when enabled."""
        caplog.set_level(logging.INFO, logger="switchyard_core.middleware.logging")
        chain = MiddlewareChain([LoggingMiddleware(LoggingConfig(log_result=True))])
        chain.execute(lambda params: "done", {})
        assert "'done'" in caplog.text
