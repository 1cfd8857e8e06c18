"""
Error taxonomy for the proxy gateway.

Every error carries the HTTP status the ingress layer should surface. The
message is what ends up after ``Failed to <operation>:`` in the response.
"""

from typing import List, Optional


class GatewayError(Exception):
    """Base class for errors raised while serving a proxied operation."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(GatewayError):
    """A required credential or setting is absent."""

    pass


class InvalidRequestError(GatewayError):
    """The caller's request is malformed or missing required fields."""

    status_code = 400


class MethodNotAllowedError(GatewayError):
    """The entry point was called with the wrong HTTP verb."""

    status_code = 405

    def __init__(self, message: str = "Method Not Allowed"):
        super().__init__(message)


class UpstreamError(GatewayError):
    """The remote call completed but returned a non-success status."""

    def __init__(self, upstream: str, upstream_status: int, reason: str, raw_body: str):
        super().__init__(f"{upstream} API error: {upstream_status} {reason} - {raw_body}")
        self.upstream = upstream
        self.upstream_status = upstream_status
        self.reason = reason
        self.raw_body = raw_body


class TransportError(GatewayError):
    """The network call failed or the response could not be parsed."""

    pass


class PartialBatchError(GatewayError):
    """A multi-chunk write failed after some chunks were committed."""

    def __init__(
        self,
        committed_ids: List[str],
        failed_chunk: int,
        total_chunks: int,
        cause: Exception,
    ):
        super().__init__(
            f"batch chunk {failed_chunk + 1}/{total_chunks} failed after "
            f"{len(committed_ids)} records were committed "
            f"[{', '.join(map(str, committed_ids))}]: {cause}"
        )
        self.committed_ids = list(committed_ids)
        self.failed_chunk = failed_chunk
        self.total_chunks = total_chunks
        self.cause = cause
