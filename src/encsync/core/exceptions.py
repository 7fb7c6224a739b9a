"""
Exceptions for encsync
Everything raised on purpose derives from EncsyncError so callers have one catcher
"""

from typing import Optional


class EncsyncError(Exception):
    # general container for errors, with optional operation/path/chunk context

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        chunk_index: Optional[int] = None,
    ):
        self.message = message
        self.operation = operation
        self.path = str(path) if path is not None else None
        self.chunk_index = chunk_index
        super().__init__(self._render())

    def with_context(self, *, operation: Optional[str] = None, path: Optional[str] = None) -> "EncsyncError":
        """Return a copy of this error with operation/path filled in where missing."""
        return type(self)(
            self.message,
            operation=self.operation or operation,
            path=self.path or path,
            chunk_index=self.chunk_index,
        )

    def _render(self) -> str:
        context = []
        if self.operation:
            context.append(self.operation)
        if self.path:
            context.append(f"path={self.path}")
        if self.chunk_index is not None:
            context.append(f"chunk={self.chunk_index}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class EncsyncIOError(EncsyncError):
    # raised when opening, reading or writing a file fails
    pass


class CipherError(EncsyncError):
    # raised when the AEAD primitive fails while encrypting (not retryable)
    pass


class CounterOverflowError(CipherError):
    # raised when the chunk counter would wrap
    pass


class AuthenticationFailed(EncsyncError):
    # raised on tag mismatch, truncation or trailing data; never retry
    pass


class OperationCancelled(EncsyncError):
    # raised when the cancel hook asks to stop between chunks
    pass


class ConfigError(EncsyncError):
    # raised when a config file exists but cannot be parsed
    pass
