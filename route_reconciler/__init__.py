"""route-reconciler: declarative single-route reconciliation with bounded retry."""

from route_reconciler.models import (
    DesiredRoute,
    ObservedRoute,
    RemoteRoute,
    RoutePayload,
    RouteState,
    RouteTarget,
    RoutingClient,
    TargetKind,
)
from route_reconciler.identity import parse_import_id, route_identity
from route_reconciler.locator import RouteLocator
from route_reconciler.reconciler import RouteReconciler
from route_reconciler.targets import Operation, select_target

__all__ = [
    "DesiredRoute",
    "ObservedRoute",
    "RemoteRoute",
    "RoutePayload",
    "RouteState",
    "RouteTarget",
    "RoutingClient",
    "TargetKind",
    "parse_import_id",
    "route_identity",
    "RouteLocator",
    "RouteReconciler",
    "Operation",
    "select_target",
]
