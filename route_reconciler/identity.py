"""Route identity: deterministic ids and import-id parsing.

The id of a route is ``r-<route_table_id><hash>``, where ``<hash>`` is the
unsigned CRC-32 (IEEE 802.3, as computed by ``zlib.crc32``) of the UTF-8
bytes of the destination, written in decimal. The IPv6 destination is
preferred when both are present. Targets never take part, so retargeting
a route keeps its id.
"""

import zlib

from route_reconciler.errors import ImportIdError, NoDestinationError
from route_reconciler.models import DesiredRoute

IMPORT_SEPARATOR = "_"


def destination_hash(destination: str) -> int:
    """Unsigned 32-bit CRC of ``destination``."""
    return zlib.crc32(destination.encode("utf-8")) & 0xFFFFFFFF


def route_identity(route_table_id: str, ipv4_destination: str = "", ipv6_destination: str = "") -> str:
    destination = ipv6_destination or ipv4_destination
    if not destination:
        raise NoDestinationError(
            "Cannot compute a route id without a destination",
            route_table_id=route_table_id,
        )
    return f"r-{route_table_id}{destination_hash(destination)}"


def parse_import_id(import_id: str) -> DesiredRoute:
    """Split ``<route_table_id>_<destination>`` into a target-less DesiredRoute."""
    parts = import_id.split(IMPORT_SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ImportIdError(
            f"Unexpected format of ID ({import_id!r}), expected ROUTETABLEID_DESTINATION"
        )
    route_table_id, destination = parts
    if ":" in destination:
        return DesiredRoute(route_table_id=route_table_id, destination_ipv6_cidr_block=destination)
    return DesiredRoute(route_table_id=route_table_id, destination_cidr_block=destination)
