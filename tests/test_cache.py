"""Route cache tests."""

import json
import os
import time

import pytest
from sample_controllers import Stamp, UserController, admin_panel, audit, show_page, show_post
from switchyard_core.errors import RouteCacheError
from switchyard_core.middleware.auth import AuthMiddleware, UnauthorizedError
from switchyard_core.routing.cache import CACHE_FILE_PREFIX, RouteCache, dump_entry
from switchyard_core.routing.named import NamedRouteRegistry
from switchyard_core.routing.router import Router
from switchyard_core.utils.config import RouterConfig


def build_router(cache_dir):
    router = Router()
    router.enable_cache(str(cache_dir))
    router.register_class(UserController)
    router.named_group("pages", prefix="/pages")
    router.get("/posts/{id:\\d+}", show_post, name="posts.show", middleware=[audit])
    router.get("/{slug}", show_page, group="pages")
    return router


class TestRouteCache:
    """Test storing and restoring routes."""

    def test_save_and_load(self, tmp_path):
        """Test a fresh router restores routes from the cache."""
        assert build_router(tmp_path).save_cache() is True

        router = Router()
        router.enable_cache(str(tmp_path))
        assert router.load_cached_routes() is True

        assert router.dispatch("GET", "/users/4") == 4
        assert router.dispatch("POST", "/users/4") == 4
        assert router.dispatch("GET", "/users/4/edit") == 2
        assert router.dispatch("GET", "/posts/8") == {"post": 8}
        assert router.url("posts.show", id=8) == "/posts/8"
        assert router.url("users.index") == "/users"

    def test_named_groups_restored(self, tmp_path):
        """Test named groups survive the cache."""
        build_router(tmp_path).save_cache()

        router = Router()
        router.enable_cache(str(tmp_path))
        router.load_cached_routes()

        assert router.named_groups.get("users").prefix == "/users"
        match = router.match("GET", "/pages/about")
        assert match.via_group == "pages"
        assert router.execute(match) == {"slug": "about"}

    def test_middleware_kinds_restored(self, tmp_path):
        """Test class and function middleware are both restored."""
        build_router(tmp_path).save_cache()

        router = Router()
        router.enable_cache(str(tmp_path))
        router.load_cached_routes()

        [mw] = router.match("GET", "/posts/1").middleware
        assert mw.func is audit

    def test_cache_file_is_json(self, tmp_path):
        """Test the cache holds data only."""
        build_router(tmp_path).save_cache()

        [path] = list(tmp_path.glob(f"{CACHE_FILE_PREFIX}*.json"))
        data = json.loads(path.read_text())
        handlers = {record["handler"] for record in data["routes"]}
        assert "sample_controllers:show_post" in handlers
        assert "sample_controllers:UserController.show" in handlers

    def test_lambda_handler_not_cacheable(self, tmp_path):
        """Test anonymous handlers cannot be cached."""
        router = Router()
        router.enable_cache(str(tmp_path))
        router.get("/users", lambda: "users")
        with pytest.raises(RouteCacheError):
            router.save_cache()

    def test_closure_middleware_not_cacheable(self, tmp_path):
        """Test locally defined middleware cannot be cached."""
        def local(next_handler, params):
            return next_handler(params)

        router = Router()
        router.enable_cache(str(tmp_path))
        router.get("/posts/{id}", show_post, middleware=[local])
        with pytest.raises(RouteCacheError):
            router.save_cache()

    def test_not_loaded_into_populated_router(self, tmp_path):
        """Test the cache only loads into an empty router."""
        build_router(tmp_path).save_cache()

        router = Router()
        router.enable_cache(str(tmp_path))
        router.get("/other", show_page)
        assert router.load_cached_routes() is False
        assert len(router) == 1

    def test_stale_cache_ignored(self, tmp_path):
        """Test route files newer than the cache invalidate it."""
        build_router(tmp_path).save_cache()

        routes_file = tmp_path / "routes.py"
        routes_file.write_text("# routes\n")
        future = time.time() + 60
        os.utime(routes_file, (future, future))

        router = Router()
        router.enable_cache(str(tmp_path))
        router.add_route_file(str(routes_file))
        assert router.load_cached_routes() is False

    def test_missing_route_file_ignored(self, tmp_path):
        """Test route files that do not exist do not invalidate the cache."""
        build_router(tmp_path).save_cache()

        router = Router()
        router.enable_cache(str(tmp_path))
        router.add_route_file(str(tmp_path / "gone.py"))
        assert router.load_cached_routes() is True

    def test_clear_cache(self, tmp_path):
        """Test clearing removes the cache file."""
        router = build_router(tmp_path)
        router.save_cache()
        assert router.clear_cache() is True
        assert list(tmp_path.glob(f"{CACHE_FILE_PREFIX}*.json")) == []

        fresh = Router()
        fresh.enable_cache(str(tmp_path))
        assert fresh.load_cached_routes() is False

    def test_disabled_cache(self):
        """Test cache operations are no-ops when disabled."""
        router = Router()
        assert router.save_cache() is False
        assert router.load_cached_routes() is False
        assert router.clear_cache() is False

    def test_enabled_from_config(self, tmp_path):
        """Test the cache can be enabled through configuration."""
        build_router(tmp_path).save_cache()
        router = Router(config=RouterConfig(cache_enabled=True, cache_dir=str(tmp_path)))
        assert router.load_cached_routes() is True

    def test_unreadable_cache(self, tmp_path, caplog):
        """Test a corrupt cache file is ignored with a warning."""
        cache = RouteCache()
        cache.cache_file(str(tmp_path)).write_text("{not json")
        assert cache.load(str(tmp_path)) is None
        assert "Ignoring unreadable route cache" in caplog.text

    def test_dump_entry(self):
        """Test the data-only form of an entry."""
        router = Router()
        router.get("/posts/{id:\\d+}", show_post, name="posts.show")
        record = dump_entry(router.routes()[0])
        assert record["method"] == "GET"
        assert record["name"] == "posts.show"
        assert record["pattern"]["template"] == "/posts/{id:\\d+}"
        assert record["middleware"] == []


class TestCachedMiddlewareState:
    """Test configured middleware surviving the cache."""

    def test_configured_auth_restored(self, tmp_path):
        """Test an expected token is still enforced after a reload."""
        router = Router()
        router.enable_cache(str(tmp_path))
        router.get("/admin/{token}", admin_panel, middleware=[AuthMiddleware(expected="s3cret")])
        with pytest.raises(UnauthorizedError):
            router.dispatch("GET", "/admin/guess")
        router.save_cache()

        fresh = Router()
        fresh.enable_cache(str(tmp_path))
        assert fresh.load_cached_routes() is True
        with pytest.raises(UnauthorizedError):
            fresh.dispatch("GET", "/admin/guess")
        assert fresh.dispatch("GET", "/admin/s3cret") == "secret"

        [mw] = fresh.match("GET", "/admin/x").middleware
        assert mw.expected == "s3cret"

    def test_default_middleware_stored_without_state(self):
        """Test middleware equal to its default form is stored as a reference."""
        router = Router()
        router.get("/posts/{id}", show_post, middleware=[Stamp()])
        [record] = dump_entry(router.routes()[0])["middleware"]
        assert record == {"kind": "class", "ref": "sample_controllers:Stamp"}

    def test_unserializable_state_rejected(self, tmp_path):
        """Test middleware holding callables cannot be cached."""
        router = Router()
        router.enable_cache(str(tmp_path))
        router.get("/admin", admin_panel, middleware=[AuthMiddleware(validator=lambda t: True)])
        with pytest.raises(RouteCacheError):
            router.save_cache()


class TestCacheLoadFailure:
    """Test that a failed cache load leaves the router untouched."""

    def _corrupt_second_handler(self, tmp_path):
        [path] = list(tmp_path.glob(f"{CACHE_FILE_PREFIX}*.json"))
        data = json.loads(path.read_text())
        data["routes"][-1]["handler"] = "sample_controllers:missing"
        path.write_text(json.dumps(data))
        return path

    def test_bad_record_loads_nothing(self, tmp_path):
        """Test an unresolvable record rolls back the whole load."""
        build_router(tmp_path).save_cache()
        self._corrupt_second_handler(tmp_path)

        router = Router()
        router.enable_cache(str(tmp_path))
        with pytest.raises(RouteCacheError):
            router.load_cached_routes()
        assert router.routes() == []
        assert len(router.named_groups) == 0
        assert len(router.named_routes) == 0

    def test_retry_after_failure(self, tmp_path):
        """Test the load can be retried once the cache is rebuilt."""
        build_router(tmp_path).save_cache()
        self._corrupt_second_handler(tmp_path)

        router = Router()
        router.enable_cache(str(tmp_path))
        with pytest.raises(RouteCacheError):
            router.load_cached_routes()

        build_router(tmp_path).save_cache()
        assert router.load_cached_routes() is True
        assert router.dispatch("GET", "/posts/8") == {"post": 8}

    def test_name_conflict_rolls_back(self, tmp_path):
        """Test a name clash while adding routes undoes earlier additions."""
        build_router(tmp_path).save_cache()

        registry = NamedRouteRegistry()
        Router(named_routes=registry).get("/elsewhere", show_page, name="posts.show")

        router = Router(named_routes=registry)
        router.enable_cache(str(tmp_path))
        with pytest.raises(RouteCacheError):
            router.load_cached_routes()
        assert len(router) == 0
        assert len(router.named_groups) == 0
        assert registry.names() == ["posts.show"]
        assert registry.get_by_name("posts.show").path == "/elsewhere"
