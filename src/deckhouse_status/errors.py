"""Errors raised by the cluster, registry and GitHub layers."""

from __future__ import annotations

from datetime import timedelta


class DeckhouseStatusError(RuntimeError):
    """Base class for every error this package raises on purpose."""

    def prefixed(self, context: str) -> DeckhouseStatusError:
        """Prepend ``context`` to the message, keeping type and attributes."""
        message = self.args[0] if self.args else ""
        self.args = (f"{context}: {message}",) + self.args[1:]
        return self


class TransportError(DeckhouseStatusError):
    """Raised when a request never got an HTTP response (DNS, TCP, TLS, timeout)."""

    @classmethod
    def wrap(cls, what: str, exc: Exception) -> TransportError:
        return cls(f"{what}: {exc}")


class ProtocolError(DeckhouseStatusError):
    """Raised when a server answers, but not the way we expect."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_status(cls, status_code: int) -> ProtocolError:
        return cls(f"HTTP {status_code}", status_code=status_code)

    @classmethod
    def missing_header(cls, header: str) -> ProtocolError:
        return cls(f"no {header} header")


class RegistryAuthError(ProtocolError):
    """Raised when the registry token exchange fails."""


class NotFoundError(ProtocolError):
    """Raised when a manifest reference does not exist in the registry."""

    @classmethod
    def reference(cls, reference: str) -> NotFoundError:
        return cls(f"manifest {reference} not found", status_code=404)


class RateLimitError(ProtocolError):
    """Raised on HTTP 403 from the GitHub API.

    ``reset_in`` is informational only; nothing in this package sleeps on it.
    """

    def __init__(self, message: str, *, reset_in: timedelta | None = None) -> None:
        self.reset_in = reset_in
        super().__init__(message, status_code=403)

    @classmethod
    def with_reset(cls, reset_in: timedelta | None) -> RateLimitError:
        if reset_in is None or reset_in.total_seconds() < 1:
            return cls("rate limited (HTTP 403)")
        return cls(f"rate limited (resets in {format_wait(reset_in)})", reset_in=reset_in)


class DecodeError(DeckhouseStatusError):
    """Raised when a response body is not the JSON we asked for."""


class InputError(DeckhouseStatusError):
    """Raised for bad local input: incomplete image reference, non-PR tag."""

    @classmethod
    def incomplete_image(cls, image: str) -> InputError:
        return cls(f"incomplete image reference {image!r}")

    @classmethod
    def not_a_pr_tag(cls, tag: str) -> InputError:
        return cls(f"image tag {tag!r} is not a PR tag")


class ClusterError(DeckhouseStatusError):
    """Raised when the Kubernetes API cannot give us the Deckhouse pod."""


class OperationCancelled(DeckhouseStatusError):
    """Raised when an operation is cancelled (interrupt, sibling failure)."""


class DeadlineExceeded(OperationCancelled):
    """Raised when an operation runs past its deadline."""


def format_wait(delta: timedelta) -> str:
    """Render a wait as ``1h2m3s`` with whole seconds."""
    seconds = int(delta.total_seconds())
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    out = ""
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + f"{seconds}s"
