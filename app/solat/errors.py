from __future__ import annotations

from .error_codes import ErrorCode


class FetchError(Exception):
    """A single backend fetch failed; absorbed by the retry wrapper."""

    def __init__(self, error_code: str, message: str, *, http_status: int | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.http_status = http_status


class StateNotFoundError(LookupError):
    def __init__(self, state: str) -> None:
        super().__init__(f"State '{state}' not found")
        self.state = state


def describe_exception(exc: BaseException) -> tuple[str, str]:
    """Return ``(error_code, message)`` for any exception raised by a backend."""

    if isinstance(exc, FetchError):
        return exc.error_code, str(exc)
    return ErrorCode.INTERNAL, f"{type(exc).__name__}: {exc}"


__all__ = ["FetchError", "StateNotFoundError", "describe_exception"]
