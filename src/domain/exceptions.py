"""Repository error taxonomy.

Validation errors (ConfigurationError, InvalidPropertyPath, IdentityUnresolved)
are raised before any store call is attempted.  StoreError wraps whatever the
backend raised and keeps it as __cause__; it is never retried or swallowed.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base class for all errors raised by the repository engine."""


class ConfigurationError(RepositoryError):
    """Invalid identity override or class-map setup."""


class InvalidPropertyPath(RepositoryError):
    """A property name or dotted path does not exist on the entity shape."""

    def __init__(self, path: str, type_name: str) -> None:
        self.path = path
        self.type_name = type_name
        super().__init__(f"'{path}' is not a public property of '{type_name}'.")


class IdentityUnresolved(RepositoryError):
    """The operation needs an identity property and none could be resolved."""

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(
            f"No identity property configured for '{type_name}'; "
            f"expected 'Id' or '{type_name}Id', or call set_identity()."
        )


class StoreError(RepositoryError):
    """Failure surfaced by the storage backend."""


class OperationCancelled(RepositoryError):
    """The caller's cancellation token fired before the store call ran."""
