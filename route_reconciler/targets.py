"""Target selection: the single translation point from flat fields to RouteTarget."""

from enum import Enum

from route_reconciler.errors import AmbiguousTargetError, MissingTargetError
from route_reconciler.models import DesiredRoute, RouteTarget, TargetKind


class Operation(Enum):
    CREATE = "create"
    UPDATE = "update"


# Field order is significant only for error messages.
CREATE_TARGET_FIELDS: tuple[str, ...] = (
    "egress_only_gateway_id",
    "gateway_id",
    "nat_gateway_id",
    "local_gateway_id",
    "instance_id",
    "network_interface_id",
    "transit_gateway_id",
    "vpc_peering_connection_id",
)

UPDATE_TARGET_FIELDS: tuple[str, ...] = (
    "egress_only_gateway_id",
    "gateway_id",
    "nat_gateway_id",
    "local_gateway_id",
    "network_interface_id",
    "instance_id",
    "transit_gateway_id",
    "vpc_peering_connection_id",
)

# The remote system fills in network_interface_id for routes created via an
# instance, so an update may legitimately carry both.
_INSTANCE_PAIR = frozenset({"instance_id", "network_interface_id"})


def select_target(route: DesiredRoute, operation: Operation) -> RouteTarget:
    """Return the one configured target of ``route``.

    Raises:
        AmbiguousTargetError: More than one target field is set.
        MissingTargetError: No target field is set.
    """
    allowed = CREATE_TARGET_FIELDS if operation is Operation.CREATE else UPDATE_TARGET_FIELDS
    set_fields = [name for name in allowed if getattr(route, name)]

    if operation is Operation.UPDATE and frozenset(set_fields) == _INSTANCE_PAIR:
        set_fields = ["instance_id"]

    if len(set_fields) > 1:
        raise AmbiguousTargetError(
            f"More than 1 target specified ({', '.join(set_fields)}). "
            f"Only 1 of {', '.join(allowed)} is allowed",
            route_table_id=route.route_table_id,
            destination=route.destination,
            field=set_fields[-1],
        )
    if not set_fields:
        raise MissingTargetError(
            allowed, route_table_id=route.route_table_id, destination=route.destination,
        )

    name = set_fields[0]
    return RouteTarget(TargetKind.from_field(name), getattr(route, name))
