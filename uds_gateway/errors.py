# uds_gateway/errors.py


class GatewayError(Exception):
    """Fatal failure of one proxied exchange.

    ``step`` names where the exchange broke (``preflight``, ``read_body``,
    ``transfer``, ...) so the error log points at the failing stage.
    """

    def __init__(self, step: str, detail: str = "") -> None:
        super().__init__(detail or step)
        self.step = step
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.step}: {self.detail}"
        return self.step


class ConfigurationError(GatewayError):
    """The hosting environment is set up in a way streaming cannot work with."""


class ResourceError(GatewayError):
    """An inbound stream, outbound stream or client handle could not be opened."""


class BodyReadError(GatewayError):
    """Reading the inbound body failed (distinct from a zero-length read)."""


class OptionError(GatewayError):
    """The outbound request could not be built from the inbound one."""


class TransportError(GatewayError):
    """The transfer to or from the backend socket failed."""


class UploadLengthError(GatewayError):
    """The inbound body ended before its declared Content-Length."""


class ResponseWriteError(GatewayError):
    """Writing the response back to the caller failed (client went away)."""


class UpstreamProtocolError(GatewayError):
    """The backend response cannot be relayed as received."""
