"""
The flagger module contains the most common top-level entry points for Flagger.
"""

import threading

from flagger.impl.util import Result, log
from flagger.version import VERSION

from .client import *
from .errors import *

__version__ = VERSION

"""Settings."""
start_wait = 5

__client = None
__config = None
__lock = threading.Lock()


def set_config(config: Config):
    """Sets the configuration for the shared Flagger instance.

    If this is called prior to :func:`flagger.get()`, it stores the configuration that will be used when the
    client is created. If it is called after the client has already been created, the old client is
    disconnected and the next call to :func:`flagger.get()` returns a new client with the new configuration.

    :param config: the client configuration
    """
    global __config
    global __client
    with __lock:
        old_client = __client
        __client = None
        __config = config
    if old_client:
        log.info("Reinitializing Flagger " + VERSION + " with new config")
        old_client.disconnect()


def get() -> Flagger:
    """Returns the shared Flagger instance, using the current global configuration.

    To use Flagger as a singleton, first call :func:`flagger.set_config()` at startup time. Then ``get()``
    returns the same shared :class:`flagger.client.Flagger` instance each time. If you need several
    instances with different adapters, call the :class:`flagger.client.Flagger` constructor directly.
    """
    global __config
    global __client
    with __lock:
        if not __client:
            if __config is None:
                raise Exception("set_config was not called")
            log.info("Initializing Flagger " + VERSION)
            __client = Flagger(config=__config, start_wait=start_wait)
        return __client


# for testing only
def _reset_client():
    global __client
    with __lock:
        c = __client
        __client = None
    if c:
        c.disconnect()


__all__ = ['ArgumentError', 'Config', 'ConfigurationError', 'Flagger', 'FlaggerError', 'InvalidIdentityError', 'Result', 'StorageFault', 'client', 'config', 'errors', 'integrations', 'interfaces']
