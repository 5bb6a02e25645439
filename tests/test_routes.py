"""Tests for RouteMediator pattern bookkeeping."""
import asyncio

from browser_kit.browser.routes import RouteMediator

from fakes import FakeContext


def test_add_is_deduplicated():
    routes = RouteMediator()
    assert routes.add_blocked_pattern("**/*.png") is True
    assert routes.add_blocked_pattern("**/*.png") is False
    assert routes.blocked_patterns == ["**/*.png"]


def test_blocked_patterns_returns_copy():
    routes = RouteMediator()
    routes.add_blocked_pattern("*ads*")
    routes.blocked_patterns.append("other")
    assert routes.blocked_patterns == ["*ads*"]


def test_repeated_apply_never_stacks_rules():
    routes = RouteMediator()
    context = FakeContext()
    routes.add_blocked_pattern("**/*.png")
    routes.add_blocked_pattern("*tracker*")
    assert asyncio.run(routes.apply_route_blocking(context)) == 2
    assert asyncio.run(routes.apply_route_blocking(context)) == 2
    assert context.route.await_count == 4
    assert context.unroute.await_count == 2
    unrouted = [c.args[0] for c in context.unroute.await_args_list]
    assert unrouted == ["**/*.png", "*tracker*"]


def test_clear_then_apply_removes_everything():
    routes = RouteMediator()
    context = FakeContext()
    routes.add_blocked_pattern("*ads*")
    asyncio.run(routes.apply_route_blocking(context))
    routes.clear_blocked_patterns()
    assert asyncio.run(routes.apply_route_blocking(context)) == 0
    context.unroute.assert_awaited_once()
    assert context.route.await_count == 1


def test_new_context_starts_clean():
    routes = RouteMediator()
    routes.add_blocked_pattern("*ads*")
    old, new = FakeContext(), FakeContext()
    asyncio.run(routes.apply_route_blocking(old))
    asyncio.run(routes.apply_route_blocking(new))
    new.unroute.assert_not_awaited()
    new.route.assert_awaited_once()


def test_routed_handler_aborts():
    routes = RouteMediator()
    context = FakeContext()
    routes.add_blocked_pattern("*ads*")
    asyncio.run(routes.apply_route_blocking(context))
    handler = context.route.await_args.args[1]

    class Route:
        aborted = False

        async def abort(self):
            self.aborted = True

    route = Route()
    asyncio.run(handler(route))
    assert route.aborted


def test_set_extra_http_headers_forwards_copy():
    context = FakeContext()
    headers = {"X-Trace": "1"}
    asyncio.run(RouteMediator.set_extra_http_headers(context, headers))
    context.set_extra_http_headers.assert_awaited_once_with({"X-Trace": "1"})
