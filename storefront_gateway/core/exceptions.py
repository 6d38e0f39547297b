"""Tagged failures raised where they happen and recovered by the component that sees them."""


class GatewayError(Exception):
    """Base exception for all gateway errors."""


class UpstreamUnreachable(GatewayError):
    """The upstream could not be reached (DNS, refused connection, timeout).

    Attributes:
        target_url: URL the forwarder tried to reach
        message: Transport error description
    """

    def __init__(self, target_url: str, message: str) -> None:
        super().__init__(message)
        self.target_url = target_url
        self.message = message


class SessionProviderUnavailable(GatewayError):
    """The federated session lookup failed or is not configured."""


class MalformedCredential(GatewayError):
    """The local credential cannot be decoded into claims."""


class ProbeFailure(GatewayError):
    """A health probe could not get an answer from the upstream."""


class ProbeTimeout(ProbeFailure):
    """A health probe was aborted by its timeout."""
