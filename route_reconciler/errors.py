"""Exception hierarchy for route-reconciler.

Every module raises and catches these types. Errors carry the route
table id and, where known, the destination and target field, and render
them in ``str()`` so a failing declaration can be located from the
message alone.
"""


class RouteError(Exception):
    """Base for all route-reconciler errors."""

    def __init__(
        self,
        message: str,
        *,
        route_table_id: str = "",
        destination: str = "",
        field: str = "",
    ):
        super().__init__(message)
        self.message = message
        self.route_table_id = route_table_id
        self.destination = destination
        self.field = field

    def __str__(self) -> str:
        context = []
        if self.route_table_id:
            context.append(f"route table {self.route_table_id}")
        if self.destination:
            context.append(f"destination {self.destination}")
        if self.field:
            context.append(f"field {self.field}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class ConfigurationError(RouteError):
    """Raised when a field-bag or settings value cannot be understood."""


# --- Validation (raised before any remote call) ---


class AmbiguousTargetError(RouteError):
    """More than one target field is set."""


class MissingTargetError(RouteError):
    """No target field is set."""

    def __init__(self, allowed: tuple[str, ...], *, route_table_id: str = "", destination: str = ""):
        super().__init__(
            f"A valid target is missing. Specify one of: {', '.join(allowed)}",
            route_table_id=route_table_id,
            destination=destination,
        )
        self.allowed = allowed


class NoDestinationError(RouteError):
    """Neither an IPv4 nor an IPv6 destination is set."""


class InvalidDestinationError(RouteError):
    """A destination is not a CIDR network address of the expected family."""


class ImportIdError(RouteError):
    """An import id is not of the form ``<route_table_id>_<destination>``."""


# --- Remote API ---


class RemoteError(RouteError):
    """A rejection reported by the remote routing API."""

    def __init__(self, message: str, *, code: str = "", **context: str):
        super().__init__(message, **context)
        self.code = code


class RemoteTransientError(RemoteError):
    """Retryable rejection; absorbed by the convergence loop, never surfaced."""


class ParameterPropagatingError(RemoteTransientError):
    """A parameter of the call has not propagated yet."""


class ResourceNotVisibleError(RemoteTransientError):
    """A referenced resource (e.g. a new transit gateway) is not visible yet."""


class RouteNotFoundError(RemoteError):
    """The route does not exist in the table."""


class TableNotFoundError(RemoteError):
    """The route table does not exist."""


class RemoteFatalError(RemoteError):
    """Any remote rejection not classified as transient."""


# --- Lifecycle ---


class ConfirmationTimeoutError(RouteError):
    """A created route never became visible within the create timeout."""


class DeleteTimeoutError(RouteError):
    """A route could not be deleted within the delete timeout."""


class ReplaceError(RouteError):
    """The replace call for an update failed."""
