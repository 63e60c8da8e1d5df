"""Shared fixtures: an in-memory routing API and a fake clock."""

import ipaddress
from dataclasses import replace

import pytest

from route_reconciler.config import ReconcilerSettings
from route_reconciler.errors import RouteNotFoundError
from route_reconciler.locator import cidr_blocks_equal
from route_reconciler.models import DescribeResult, RemoteRoute, RoutePayload, RoutingClient
from route_reconciler.reconciler import RouteReconciler


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRoutingClient(RoutingClient):
    """Route tables kept in a dict.

    ``errors[op]`` is a list of exceptions raised by successive calls to
    ``op`` before it starts succeeding. ``hidden_reads`` makes the next N
    describe calls leave out newly created routes.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[RemoteRoute]] = {}
        self.calls: list[tuple[str, RoutePayload | str]] = []
        self.errors: dict[str, list[Exception]] = {}
        self.hidden_reads = 0
        # Store IPv6 destinations the way the remote reports them, compressed.
        self.canonical_ipv6 = False
        self._pending: list[tuple[str, RemoteRoute]] = []

    def add_table(self, table_id: str, *routes: RemoteRoute) -> None:
        self.tables[table_id] = list(routes)

    def _maybe_fail(self, op: str) -> None:
        queue = self.errors.get(op)
        if queue:
            raise queue.pop(0)

    def describe_routes(self, route_table_id: str) -> DescribeResult:
        self.calls.append(("describe", route_table_id))
        self._maybe_fail("describe")
        if self.hidden_reads > 0:
            self.hidden_reads -= 1
        else:
            for table_id, route in self._pending:
                self.tables[table_id].append(route)
            self._pending.clear()
        if route_table_id not in self.tables:
            return DescribeResult(found=False)
        return DescribeResult(found=True, routes=tuple(self.tables[route_table_id]))

    def create_route(self, payload: RoutePayload) -> None:
        self.calls.append(("create", payload))
        self._maybe_fail("create")
        route = RemoteRoute(
            destination_cidr_block=payload.destination_cidr_block or None,
            destination_ipv6_cidr_block=self._ipv6(payload.destination_ipv6_cidr_block),
            origin="CreateRoute",
            state="active",
            **{payload.target.kind.field_name: payload.target.value},
        )
        self._pending.append((payload.route_table_id, route))

    def _ipv6(self, block: str) -> str | None:
        if not block:
            return None
        if self.canonical_ipv6:
            return str(ipaddress.ip_network(block))
        return block

    def replace_route(self, payload: RoutePayload) -> None:
        self.calls.append(("replace", payload))
        self._maybe_fail("replace")
        routes = self.tables[payload.route_table_id]
        for i, route in enumerate(routes):
            if _matches(route, payload):
                cleared = {name: None for name in _TARGET_ATTRS}
                cleared[payload.target.kind.field_name] = payload.target.value
                routes[i] = replace(route, **cleared)
                return
        raise RouteNotFoundError("no route", route_table_id=payload.route_table_id)

    def delete_route(self, payload: RoutePayload) -> None:
        self.calls.append(("delete", payload))
        self._maybe_fail("delete")
        routes = self.tables.get(payload.route_table_id, [])
        for route in list(routes):
            if _matches(route, payload):
                routes.remove(route)
                return
        raise RouteNotFoundError("no route", route_table_id=payload.route_table_id, code="InvalidRoute.NotFound")

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    def payloads(self, op: str) -> list[RoutePayload]:
        return [p for name, p in self.calls if name == op]


def _matches(route: RemoteRoute, payload: RoutePayload) -> bool:
    if payload.destination_cidr_block:
        return route.destination_cidr_block == payload.destination_cidr_block
    return cidr_blocks_equal(route.destination_ipv6_cidr_block or "", payload.destination_ipv6_cidr_block)


_TARGET_ATTRS = (
    "gateway_id",
    "egress_only_gateway_id",
    "nat_gateway_id",
    "local_gateway_id",
    "instance_id",
    "network_interface_id",
    "transit_gateway_id",
    "vpc_peering_connection_id",
)


@pytest.fixture
def client() -> FakeRoutingClient:
    return FakeRoutingClient()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ReconcilerSettings:
    return ReconcilerSettings(create_timeout=10.0, delete_timeout=30.0, retry_min_delay=1.0, retry_max_delay=4.0)


@pytest.fixture
def reconciler(client, settings, clock) -> RouteReconciler:
    return RouteReconciler(client, settings, sleep=clock.sleep, clock=clock)
