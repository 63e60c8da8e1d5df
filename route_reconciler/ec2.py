"""Ec2RoutingClient: the routing API backed by a boto3 EC2 client."""

from typing import Any

import boto3
from botocore.exceptions import ClientError
from loguru import logger

from route_reconciler.config import ReconcilerSettings
from route_reconciler.errors import (
    ParameterPropagatingError,
    RemoteFatalError,
    ResourceNotVisibleError,
    RouteNotFoundError,
    TableNotFoundError,
)
from route_reconciler.models import DescribeResult, RemoteRoute, RoutePayload, RoutingClient

# EC2 error code → exception raised for it.
_ERROR_CODES: dict[str, type] = {
    "InvalidParameterException": ParameterPropagatingError,
    "InvalidTransitGatewayID.NotFound": ResourceNotVisibleError,
    "InvalidRoute.NotFound": RouteNotFoundError,
    "InvalidRouteTableID.NotFound": TableNotFoundError,
}

# RemoteRoute field → key in an EC2 Route structure.
_ROUTE_KEYS: dict[str, str] = {
    "destination_cidr_block": "DestinationCidrBlock",
    "destination_ipv6_cidr_block": "DestinationIpv6CidrBlock",
    "destination_prefix_list_id": "DestinationPrefixListId",
    "gateway_id": "GatewayId",
    "egress_only_gateway_id": "EgressOnlyInternetGatewayId",
    "nat_gateway_id": "NatGatewayId",
    "local_gateway_id": "LocalGatewayId",
    "instance_id": "InstanceId",
    "instance_owner_id": "InstanceOwnerId",
    "network_interface_id": "NetworkInterfaceId",
    "transit_gateway_id": "TransitGatewayId",
    "vpc_peering_connection_id": "VpcPeeringConnectionId",
    "origin": "Origin",
    "state": "State",
}


def _translate(err: ClientError, payload: RoutePayload):
    code = err.response.get("Error", {}).get("Code", "")
    message = err.response.get("Error", {}).get("Message", "") or str(err)
    exc_type = _ERROR_CODES.get(code, RemoteFatalError)
    return exc_type(
        f"{code}: {message}",
        code=code,
        route_table_id=payload.route_table_id,
        destination=payload.destination,
    )


def route_from_api(data: dict[str, Any]) -> RemoteRoute:
    return RemoteRoute(**{name: data.get(key) for name, key in _ROUTE_KEYS.items()})


class Ec2RoutingClient(RoutingClient):
    """Routing API over ``DescribeRouteTables``, ``CreateRoute``,
    ``ReplaceRoute`` and ``DeleteRoute``."""

    def __init__(self, ec2_client: Any):
        self._ec2 = ec2_client

    @classmethod
    def from_settings(cls, settings: ReconcilerSettings) -> "Ec2RoutingClient":
        session = boto3.Session(profile_name=settings.aws_profile, region_name=settings.aws_region)
        return cls(session.client("ec2"))

    def describe_routes(self, route_table_id: str) -> DescribeResult:
        try:
            resp = self._ec2.describe_route_tables(RouteTableIds=[route_table_id])
        except ClientError as e:
            err = _translate(e, RoutePayload(route_table_id))
            if isinstance(err, TableNotFoundError):
                return DescribeResult(found=False)
            raise err from e

        tables = resp.get("RouteTables") or []
        if not tables or tables[0] is None:
            return DescribeResult(found=False)
        routes = tuple(route_from_api(r) for r in tables[0].get("Routes", []))
        return DescribeResult(found=True, routes=routes)

    def create_route(self, payload: RoutePayload) -> None:
        self._call("create_route", payload)

    def replace_route(self, payload: RoutePayload) -> None:
        self._call("replace_route", payload)

    def delete_route(self, payload: RoutePayload) -> None:
        self._call("delete_route", payload)

    def _call(self, operation: str, payload: RoutePayload) -> None:
        params = payload.to_params()
        try:
            getattr(self._ec2, operation)(**params)
        except ClientError as e:
            err = _translate(e, payload)
            logger.debug(f"EC2 {operation} rejected: {err.code}")
            raise err from e
