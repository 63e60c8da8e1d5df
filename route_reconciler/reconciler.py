"""RouteReconciler: create, read, update, delete and import of a single route."""

import time
from typing import Callable

from loguru import logger

from route_reconciler.config import ReconcilerSettings, get_settings
from route_reconciler.convergence import RetryableError, RetryTimeoutError, converge
from route_reconciler.errors import (
    ConfirmationTimeoutError,
    DeleteTimeoutError,
    ParameterPropagatingError,
    RemoteError,
    RemoteFatalError,
    RemoteTransientError,
    ReplaceError,
    RouteNotFoundError,
    TableNotFoundError,
)
from route_reconciler.identity import parse_import_id, route_identity
from route_reconciler.locator import RouteLocator
from route_reconciler.models import (
    DesiredRoute,
    ObservedRoute,
    RemoteRoute,
    RoutePayload,
    RouteState,
    RoutingClient,
)
from route_reconciler.targets import Operation, select_target


class RouteReconciler:
    """Converges one route of a remote table towards a DesiredRoute.

    Lifecycle per route: absent → creating → present → updating → present
    → deleting → absent. Callers serialize operations on the same route;
    nothing here locks.

    Create and delete run under ``converge`` (bounded retry plus one final
    attempt). Update is a single replace call.
    """

    def __init__(
        self,
        client: RoutingClient,
        settings: ReconcilerSettings | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._settings = settings or get_settings()
        self._locator = RouteLocator(client)
        self._policy = self._settings.backoff_policy()
        self._sleep = sleep
        self._clock = clock

    def _converge(self, timeout: float, attempt):
        return converge(timeout, attempt, policy=self._policy, sleep=self._sleep, clock=self._clock)

    # --- Create ---

    def create(self, desired: DesiredRoute) -> RouteState:
        """Create the route, wait until it is visible, then read it back.

        Raises:
            AmbiguousTargetError, MissingTargetError, InvalidDestinationError,
            NoDestinationError: Before any remote call.
            RemoteFatalError: The create call was rejected.
            ConfirmationTimeoutError: The route never became visible.
        """
        desired.validate_destinations()
        target = select_target(desired, Operation.CREATE)
        table_id = desired.route_table_id
        # Hashed from the declared text so update and import reproduce the same id.
        route_id = route_identity(table_id, desired.destination_cidr_block, desired.destination_ipv6_cidr_block)

        payload = RoutePayload(
            route_table_id=table_id,
            destination_cidr_block=desired.destination_cidr_block,
            destination_ipv6_cidr_block=desired.destination_ipv6_cidr_block,
            target=target,
        )
        logger.debug(f"Route create config: {payload.to_params()}")

        def attempt() -> None:
            try:
                self._client.create_route(payload)
            except RemoteTransientError as e:
                raise RetryableError(e) from e

        try:
            self._converge(self._settings.create_timeout, attempt)
        except RetryTimeoutError as e:
            raise RemoteFatalError(
                f"Error creating route: {e.last_error}",
                route_table_id=table_id, destination=payload.destination, field=target.kind.field_name,
            ) from e.last_error
        except RemoteFatalError:
            raise
        except RemoteError as e:
            raise RemoteFatalError(
                f"Error creating route: {e.message}",
                code=e.code, route_table_id=table_id, destination=payload.destination,
                field=target.kind.field_name,
            ) from e
        logger.info(f"Route create accepted: {table_id} {payload.destination} → {target}")

        if desired.destination_cidr_block:
            self._confirm(table_id, ipv4=desired.destination_cidr_block)
        if desired.destination_ipv6_cidr_block:
            self._confirm(table_id, ipv6=desired.destination_ipv6_cidr_block)
        logger.info(f"Route {route_id} created")

        return RouteState(route_id=route_id, observed=self.read(desired))

    def _confirm(self, table_id: str, *, ipv4: str = "", ipv6: str = "") -> RemoteRoute:
        """Wait until the route for one destination shows up in the table."""
        destination = ipv4 or ipv6

        def attempt() -> RemoteRoute:
            try:
                route = self._locator.find(table_id, ipv4, ipv6)
            except RemoteError as e:
                raise RetryableError(e) from e
            if route is None:
                raise RetryableError(
                    RouteNotFoundError("Route not found", route_table_id=table_id, destination=destination)
                )
            return route

        try:
            return self._converge(self._settings.create_timeout, attempt)
        except RetryTimeoutError as e:
            kind = "destination IPv6 CIDR block" if ipv6 else "destination CIDR block"
            raise ConfirmationTimeoutError(
                f"Unable to find matching route by {kind} after creating it: {e.last_error}",
                route_table_id=table_id, destination=destination,
            ) from e.last_error

    # --- Read ---

    def read(self, route: DesiredRoute | ObservedRoute) -> ObservedRoute | None:
        """Return the route as it is now, or None if it (or its table) is gone."""
        table_id = route.route_table_id
        try:
            remote = self._locator.find(
                table_id, route.destination_cidr_block, route.destination_ipv6_cidr_block,
            )
        except TableNotFoundError:
            logger.warning(f"Route Table ({table_id}) not found, removing from state")
            return None

        if remote is None:
            logger.warning(
                f"Matching route for {table_id} {route.destination_cidr_block or route.destination_ipv6_cidr_block}"
                " not found, removing from state"
            )
            return None

        return ObservedRoute.from_remote(table_id, remote)

    # --- Update ---

    def update(self, desired: DesiredRoute) -> str:
        """Replace the route's target; returns its (unchanged) id.

        Raises:
            AmbiguousTargetError, MissingTargetError: Before any remote call.
            ReplaceError: The replace call failed.
        """
        desired.validate_destinations()
        target = select_target(desired, Operation.UPDATE)
        table_id = desired.route_table_id

        if desired.destination_cidr_block:
            payload = RoutePayload(table_id, destination_cidr_block=desired.destination_cidr_block, target=target)
        else:
            payload = RoutePayload(
                table_id, destination_ipv6_cidr_block=desired.destination_ipv6_cidr_block, target=target,
            )
        route_id = route_identity(table_id, desired.destination_cidr_block, desired.destination_ipv6_cidr_block)
        logger.debug(f"Route replace config: {payload.to_params()}")

        try:
            self._client.replace_route(payload)
        except RemoteError as e:
            raise ReplaceError(
                f"Error replacing route: {e.message}",
                route_table_id=table_id, destination=payload.destination, field=target.kind.field_name,
            ) from e
        logger.info(f"Route {route_id} now targets {target}")
        return route_id

    # --- Delete ---

    def delete(self, route: DesiredRoute | ObservedRoute) -> None:
        """Delete the route. A route that is already gone counts as deleted.

        Raises:
            DeleteTimeoutError: Still rejected as propagating after the final attempt.
            RemoteFatalError: Any other rejection.
        """
        table_id = route.route_table_id
        payload = RoutePayload(
            route_table_id=table_id,
            destination_cidr_block=route.destination_cidr_block,
            destination_ipv6_cidr_block=route.destination_ipv6_cidr_block,
        )
        logger.debug(f"Route delete opts: {payload.to_params()}")

        def attempt() -> None:
            logger.debug(f"Trying to delete route with opts {payload.to_params()}")
            try:
                self._client.delete_route(payload)
            except RouteNotFoundError:
                logger.info(f"Route {table_id} {payload.destination} already absent")
            except ParameterPropagatingError as e:
                raise RetryableError(e) from e

        try:
            self._converge(self._settings.delete_timeout, attempt)
        except RetryTimeoutError as e:
            raise DeleteTimeoutError(
                f"Error deleting route: {e}",
                route_table_id=table_id, destination=payload.destination,
            ) from e.last_error
        except RemoteFatalError:
            raise
        except RemoteError as e:
            raise RemoteFatalError(
                f"Error deleting route: {e.message}",
                code=e.code, route_table_id=table_id, destination=payload.destination,
            ) from e
        logger.info(f"Route {table_id} {payload.destination} deleted")

    # --- Import ---

    def import_route(self, import_id: str) -> RouteState:
        """Adopt an existing route by ``<route_table_id>_<destination>``."""
        desired = parse_import_id(import_id)
        route_id = route_identity(
            desired.route_table_id, desired.destination_cidr_block, desired.destination_ipv6_cidr_block,
        )
        logger.info(f"Importing {import_id} as {route_id}")
        return RouteState(route_id=route_id, observed=self.read(desired))
