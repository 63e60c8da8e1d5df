"""Core data models for route-reconciler."""

import ipaddress
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Mapping

from route_reconciler.errors import ConfigurationError, InvalidDestinationError


class TargetKind(Enum):
    """Next-hop target kinds: (flat field name, remote API parameter)."""

    GATEWAY = ("gateway_id", "GatewayId")
    EGRESS_ONLY_GATEWAY = ("egress_only_gateway_id", "EgressOnlyInternetGatewayId")
    NAT_GATEWAY = ("nat_gateway_id", "NatGatewayId")
    LOCAL_GATEWAY = ("local_gateway_id", "LocalGatewayId")
    INSTANCE = ("instance_id", "InstanceId")
    NETWORK_INTERFACE = ("network_interface_id", "NetworkInterfaceId")
    TRANSIT_GATEWAY = ("transit_gateway_id", "TransitGatewayId")
    VPC_PEERING_CONNECTION = ("vpc_peering_connection_id", "VpcPeeringConnectionId")

    @property
    def field_name(self) -> str:
        return self.value[0]

    @property
    def api_name(self) -> str:
        return self.value[1]

    @classmethod
    def from_field(cls, name: str) -> "TargetKind":
        for kind in cls:
            if kind.field_name == name:
                return kind
        raise KeyError(name)


TARGET_FIELDS: tuple[str, ...] = tuple(kind.field_name for kind in TargetKind)


@dataclass(frozen=True)
class RouteTarget:
    """The single active next hop of a route."""

    kind: TargetKind
    value: str

    def __str__(self) -> str:
        return f"{self.kind.field_name}={self.value}"


def _normalize(s: str) -> str:
    """Strip hyphens, underscores, spaces and lowercase."""
    return s.lower().replace("-", "").replace("_", "").replace(" ", "")


@dataclass(frozen=True)
class DesiredRoute:
    """Declarative input for one route. Empty string means unset."""

    route_table_id: str
    destination_cidr_block: str = ""
    destination_ipv6_cidr_block: str = ""
    gateway_id: str = ""
    egress_only_gateway_id: str = ""
    nat_gateway_id: str = ""
    local_gateway_id: str = ""
    instance_id: str = ""
    network_interface_id: str = ""
    transit_gateway_id: str = ""
    vpc_peering_connection_id: str = ""

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "DesiredRoute":
        """Build a route from the config layer's flat field-bag.

        Keys match field names loosely: ``nat-gateway``, ``nat_gateway_id``
        and ``NatGatewayId`` all name ``nat_gateway_id``.
        """
        lookup = _field_lookup()
        kwargs: dict[str, str] = {}
        for key, value in values.items():
            name = lookup.get(_normalize(key))
            if name is None:
                raise ConfigurationError(f"Unknown route field {key!r}", field=key)
            kwargs[name] = "" if value is None else str(value)
        if not kwargs.get("route_table_id"):
            raise ConfigurationError("route_table_id is required", field="route_table_id")
        return cls(**kwargs)

    @property
    def destination(self) -> str:
        """The identity destination: IPv6 if set, else IPv4."""
        return self.destination_ipv6_cidr_block or self.destination_cidr_block

    def target_values(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in TARGET_FIELDS}

    def validate_destinations(self) -> None:
        """Reject destinations that are not CIDR network addresses of their family."""
        _check_cidr(self.route_table_id, "destination_cidr_block", self.destination_cidr_block, 4)
        _check_cidr(self.route_table_id, "destination_ipv6_cidr_block", self.destination_ipv6_cidr_block, 6)


def _field_lookup() -> dict[str, str]:
    lookup: dict[str, str] = {}
    for f in fields(DesiredRoute):
        lookup[_normalize(f.name)] = f.name
        if f.name.endswith("_id") and f.name != "route_table_id":
            lookup[_normalize(f.name[:-3])] = f.name
    for kind in TargetKind:
        lookup[_normalize(kind.api_name)] = kind.field_name
    lookup[_normalize("DestinationCidrBlock")] = "destination_cidr_block"
    lookup[_normalize("DestinationIpv6CidrBlock")] = "destination_ipv6_cidr_block"
    return lookup


def _check_cidr(table_id: str, name: str, value: str, version: int) -> None:
    if not value:
        return
    try:
        if "/" not in value:
            raise ValueError("missing prefix length")
        network = ipaddress.ip_network(value, strict=True)
    except ValueError as e:
        raise InvalidDestinationError(
            f"{value!r} is not a CIDR network address: {e}",
            route_table_id=table_id, destination=value, field=name,
        ) from e
    if network.version != version:
        raise InvalidDestinationError(
            f"{value!r} is not an IPv{version} CIDR block",
            route_table_id=table_id, destination=value, field=name,
        )


@dataclass(frozen=True)
class RemoteRoute:
    """One route as reported by the remote describe call."""

    destination_cidr_block: str | None = None
    destination_ipv6_cidr_block: str | None = None
    destination_prefix_list_id: str | None = None
    gateway_id: str | None = None
    egress_only_gateway_id: str | None = None
    nat_gateway_id: str | None = None
    local_gateway_id: str | None = None
    instance_id: str | None = None
    instance_owner_id: str | None = None
    network_interface_id: str | None = None
    transit_gateway_id: str | None = None
    vpc_peering_connection_id: str | None = None
    origin: str | None = None
    state: str | None = None


@dataclass(frozen=True)
class ObservedRoute:
    """Route state as last read from the remote table."""

    route_table_id: str
    destination_cidr_block: str = ""
    destination_ipv6_cidr_block: str = ""
    gateway_id: str = ""
    egress_only_gateway_id: str = ""
    nat_gateway_id: str = ""
    local_gateway_id: str = ""
    instance_id: str = ""
    network_interface_id: str = ""
    transit_gateway_id: str = ""
    vpc_peering_connection_id: str = ""
    # Read-only, populated only from the remote system
    destination_prefix_list_id: str = ""
    instance_owner_id: str = ""
    origin: str = ""
    state: str = ""

    @classmethod
    def from_remote(cls, route_table_id: str, route: RemoteRoute) -> "ObservedRoute":
        values = {
            f.name: getattr(route, f.name) or ""
            for f in fields(cls)
            if f.name != "route_table_id"
        }
        return cls(route_table_id=route_table_id, **values)

    @property
    def target(self) -> RouteTarget | None:
        """The active target; instance wins over its auto-populated interface."""
        if self.instance_id:
            return RouteTarget(TargetKind.INSTANCE, self.instance_id)
        for kind in TargetKind:
            value = getattr(self, kind.field_name)
            if value:
                return RouteTarget(kind, value)
        return None


@dataclass
class RouteState:
    """Result of a create or import: the identity and what was read back."""

    route_id: str
    observed: ObservedRoute | None = None

    @property
    def exists(self) -> bool:
        return self.observed is not None


@dataclass(frozen=True)
class RoutePayload:
    """Arguments of a create, replace or delete call."""

    route_table_id: str
    destination_cidr_block: str = ""
    destination_ipv6_cidr_block: str = ""
    target: RouteTarget | None = None

    def to_params(self) -> dict[str, str]:
        """Render the remote API parameters."""
        params = {"RouteTableId": self.route_table_id}
        if self.destination_cidr_block:
            params["DestinationCidrBlock"] = self.destination_cidr_block
        if self.destination_ipv6_cidr_block:
            params["DestinationIpv6CidrBlock"] = self.destination_ipv6_cidr_block
        if self.target is not None:
            params[self.target.kind.api_name] = self.target.value
        return params

    @property
    def destination(self) -> str:
        return self.destination_ipv6_cidr_block or self.destination_cidr_block


@dataclass(frozen=True)
class DescribeResult:
    """Outcome of describing one route table."""

    found: bool
    routes: tuple[RemoteRoute, ...] = field(default_factory=tuple)


class RoutingClient(ABC):
    """Abstract remote routing API.

    Implementations raise ``ParameterPropagatingError``,
    ``ResourceNotVisibleError``, ``RouteNotFoundError`` or
    ``RemoteFatalError`` for rejected calls.
    """

    @abstractmethod
    def describe_routes(self, route_table_id: str) -> DescribeResult:
        """Return the table's routes, or ``found=False`` if it does not exist."""
        ...

    @abstractmethod
    def create_route(self, payload: RoutePayload) -> None:
        ...

    @abstractmethod
    def replace_route(self, payload: RoutePayload) -> None:
        ...

    @abstractmethod
    def delete_route(self, payload: RoutePayload) -> None:
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__
