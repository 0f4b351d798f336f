"""
This submodule contains the exception types reported by Flagger.

None of these are raised out of :class:`flagger.client.Flagger` methods; the facade returns them
inside a failed :class:`flagger.Result`. Storage adapters do raise them directly.
"""


class FlaggerError(Exception):
    """Base class for all errors defined by Flagger."""


class ConfigurationError(FlaggerError):
    """The client configuration could not be used: an unknown adapter name, or a missing store
    configuration. This is reported through the one-shot error signal and is fatal to that client
    instance.
    """


class ArgumentError(FlaggerError):
    """A required argument was not supplied. The call made no changes and may be retried with the
    correct arguments.
    """

    def __init__(self, message: str = 'Missing argument'):
        super().__init__(message)


class InvalidIdentityError(FlaggerError):
    """A user identity did not have the required ``id`` field."""

    def __init__(self, message: str = 'User passed has no id property'):
        super().__init__(message)


class StorageFault(FlaggerError):
    """The storage adapter could not complete an operation, for instance because stored data was
    malformed or the adapter was already disconnected. Transport errors from the Redis client are
    not wrapped; they reach the caller unchanged.
    """
