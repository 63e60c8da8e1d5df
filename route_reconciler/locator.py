"""Route lookup against the remote table's current route list."""

import ipaddress

from loguru import logger

from route_reconciler.errors import TableNotFoundError
from route_reconciler.models import RemoteRoute, RoutingClient


def cidr_blocks_equal(a: str, b: str) -> bool:
    """Compare two CIDR blocks by value, tolerating zero-padding and expansion."""
    if not a or not b:
        return False
    try:
        return ipaddress.ip_network(a, strict=False) == ipaddress.ip_network(b, strict=False)
    except ValueError:
        return False


class RouteLocator:
    """Finds the route for a destination with one describe call."""

    def __init__(self, client: RoutingClient):
        self._client = client

    def find(
        self,
        route_table_id: str,
        ipv4_destination: str = "",
        ipv6_destination: str = "",
    ) -> RemoteRoute | None:
        """Return the route matching the destination, or None if there is none.

        IPv4 destinations match by string equality, IPv6 by network value.
        When both are given the IPv4 destination is used.

        Raises:
            TableNotFoundError: The table itself does not exist.
        """
        result = self._client.describe_routes(route_table_id)
        if not result.found:
            raise TableNotFoundError(
                "Route table not found", route_table_id=route_table_id, code="InvalidRouteTableID.NotFound",
            )
        logger.debug(f"Route table {route_table_id}: {len(result.routes)} routes")

        if ipv4_destination:
            for route in result.routes:
                if route.destination_cidr_block == ipv4_destination:
                    return route
            return None

        if ipv6_destination:
            for route in result.routes:
                if cidr_blocks_equal(route.destination_ipv6_cidr_block or "", ipv6_destination):
                    return route
            return None

        return None
