"""
This submodule contains the client class that provides most of the Flagger functionality.
"""

import threading
from typing import Any, Callable, List, Mapping, Optional

from flagger.config import Config
from flagger.errors import (ArgumentError, ConfigurationError, FlaggerError,
                            InvalidIdentityError)
from flagger.impl.keys import group_key, user_key
from flagger.impl.model import Feature
from flagger.impl.signals import OneShotSignal
from flagger.impl.util import Result, log
from flagger.integrations import new_adapter
from flagger.interfaces import StorageAdapter

# Marks an argument the caller did not supply, so that a missing argument is reported through the
# returned Result instead of a TypeError.
_MISSING = object()

_PERCENTAGE_OPTIONS = ('percentage_user', 'percentage_time')


def _require(*values: Any):
    for value in values:
        if value is _MISSING or value is None:
            raise ArgumentError()


class Flagger:
    """The Flagger client object: the entry point that application code uses to manage features and
    check whether they are enabled.

    Construction never raises. If the configured adapter cannot be created or cannot connect, the
    client reports that through :func:`on_error()` and :attr:`initialization_error`, and every
    operation returns a failed :class:`flagger.Result`.

    Every operation returns a :class:`flagger.Result`. Missing arguments, identities without an
    ``id``, and errors raised by the storage adapter all produce a failed result rather than an
    exception; a failed evaluation means the state is unknown, not that the feature is off. Each
    operation also accepts an optional keyword-only ``callback`` that is called with the same
    result; an exception raised by the callback is logged, not propagated.

    Client instances are thread-safe as long as their adapter is.
    """

    def __init__(self, config: Optional[Config] = None, start_wait: float = 5):
        """Constructs a new Flagger instance.

        :param config: optional custom configuration; the default uses the in-memory adapter
        :param start_wait: the number of seconds to wait for the adapter to become ready
        """
        self._config = config or Config()
        self._adapter = None  # type: Optional[StorageAdapter]
        self.__ready = OneShotSignal('ready')
        self.__error = OneShotSignal('error')
        self.__settled = threading.Event()

        try:
            self._config._validate()
            self._adapter = new_adapter(self._config)
        except Exception as e:
            if not isinstance(e, ConfigurationError):
                wrapped = ConfigurationError(str(e))
                wrapped.__cause__ = e
                e = wrapped
            log.error("Could not create Flagger storage adapter: %s" % e)
            self.__on_error(e)
            return

        log.info("Starting Flagger with %s adapter" % self._adapter.describe_configuration())
        self._adapter.start(self.__on_ready, self.__on_error)

        if start_wait > 0 and not self.__settled.is_set():
            log.info("Waiting up to " + str(start_wait) + " seconds for Flagger to initialize...")
            self.__settled.wait(start_wait)

        if self.is_initialized():
            log.info("Started Flagger: OK")
        elif self.__error.fired:
            log.warning("Flagger failed to initialize: %s" % self.__error.value)
        else:
            log.warning("Initialization timeout exceeded for Flagger. Features may not yet be available.")

    def __on_ready(self):
        self.__ready.fire()
        self.__settled.set()

    def __on_error(self, error: Exception):
        self.__error.fire(error)
        self.__settled.set()

    @property
    def adapter(self) -> Optional[StorageAdapter]:
        """The storage adapter this client delegates to, or None if it could not be created."""
        return self._adapter

    def is_initialized(self) -> bool:
        """Returns true if the storage adapter is ready to serve requests."""
        return self.__ready.fired

    def wait_for_initialization(self, timeout: Optional[float] = None) -> bool:
        """Blocks until the adapter is ready, fails, or the timeout elapses. Returns
        :func:`is_initialized()`.
        """
        self.__settled.wait(timeout)
        return self.is_initialized()

    @property
    def initialization_error(self) -> Optional[Exception]:
        """The error that prevented this client from starting, if any."""
        return self.__error.value

    def on_ready(self, listener: Callable[[Any], None]):
        """Registers a listener that is called once, when the adapter becomes ready. If it is
        already ready, the listener is called immediately.
        """
        self.__ready.add(listener)

    def on_error(self, listener: Callable[[Exception], None]):
        """Registers a listener that is called once, with the error, if the adapter cannot be
        created or connected. If that has already happened, the listener is called immediately.
        """
        self.__error.add(listener)

    def disconnect(self, *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        """Releases the storage adapter. Do not use the client after calling this method."""
        log.info("Closing Flagger client..")
        return self.__call('disconnect', lambda a: a.disconnect(), callback)

    # These magic methods allow a client object to be automatically cleaned up by the "with" scope operator
    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        self.disconnect()

    # Features

    def features(self, *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        """Lists the names of all features. The result value is a list of strings."""
        return self.__call('features', lambda a: a.features(), callback)

    def add(self, name: str = _MISSING, *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        """Adds a globally enabled feature. Adding a feature that already exists changes nothing."""
        def op(adapter: StorageAdapter):
            _require(name)
            adapter.add(name)
        return self.__call('add', op, callback)

    def remove(self, name: str = _MISSING, *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        """Removes a feature and all of its gates. Removing an unknown feature is not an error."""
        def op(adapter: StorageAdapter):
            _require(name)
            adapter.remove(name)
        return self.__call('remove', op, callback)

    def get(self, name: str = _MISSING, *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        """Looks up a feature. The result value is a :class:`flagger.impl.model.Feature`, or None if
        there is no such feature.
        """
        def op(adapter: StorageAdapter) -> Optional[Feature]:
            _require(name)
            return adapter.get(name)
        return self.__call('get', op, callback)

    # Boolean gate

    def enable(self, name: str = _MISSING, *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        def op(adapter: StorageAdapter):
            _require(name)
            adapter.enable(name)
        return self.__call('enable', op, callback)

    def disable(self, name: str = _MISSING, *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        def op(adapter: StorageAdapter):
            _require(name)
            adapter.disable(name)
        return self.__call('disable', op, callback)

    def is_enabled(self, name: str = _MISSING, options: Optional[Mapping[str, Any]] = None,
                   *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        """Checks whether a feature is enabled in some context. The result value is a bool.

        At most one kind of context is honored, checked in this order:

        * ``group`` (with ``group_member``): the group gate named ``group`` is evaluated for the
          member, as in :func:`is_enabled_for_group()`
        * ``user``: the user gate for that identity is evaluated, as in :func:`is_enabled_for_user()`
        * otherwise the feature's global gate is returned

        :param name: the feature name
        :param options: the evaluation context; may be omitted
        """
        def op(adapter: StorageAdapter) -> bool:
            _require(name)
            opts = options or {}
            if opts.get('group'):
                if 'group_member' not in opts:
                    raise ArgumentError()
                return adapter.is_enabled_for_group(name, group_key(opts['group']), opts['group_member'])
            if opts.get('user'):
                return adapter.is_enabled_for_user(name, user_key(opts['user']))
            for option in _PERCENTAGE_OPTIONS:
                if opts.get(option):
                    raise NotImplementedError('%s gates are not supported yet' % option)
            return adapter.is_enabled_globally(name)
        return self.__call('is_enabled', op, callback)

    # Group gates

    def register_group(self, feature: str = _MISSING, group_name: str = _MISSING, prop: str = _MISSING,
                       value: Any = _MISSING, *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        """Attaches an enabled group to a feature, creating the feature if needed. A member belongs to
        the group when its ``prop`` property equals ``value``. Registering the same group again
        replaces it.
        """
        def op(adapter: StorageAdapter):
            _require(feature, group_name, prop)
            if value is _MISSING:
                raise ArgumentError()
            adapter.register_group(feature, group_key(group_name), prop, value)
        return self.__call('register_group', op, callback)

    def enable_group(self, feature: str = _MISSING, group_name: str = _MISSING,
                     *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        """Turns a group gate on. The result value is False if the feature or group does not exist."""
        def op(adapter: StorageAdapter) -> bool:
            _require(feature, group_name)
            return adapter.enable_group(feature, group_key(group_name))
        return self.__call('enable_group', op, callback)

    def disable_group(self, feature: str = _MISSING, group_name: str = _MISSING,
                      *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        """Turns a group gate off. The result value is False if the feature or group does not exist."""
        def op(adapter: StorageAdapter) -> bool:
            _require(feature, group_name)
            return adapter.disable_group(feature, group_key(group_name))
        return self.__call('disable_group', op, callback)

    def is_enabled_for_group(self, feature: str = _MISSING, group_name: str = _MISSING, member: Any = _MISSING,
                             *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        def op(adapter: StorageAdapter) -> bool:
            _require(feature, group_name, member)
            return adapter.is_enabled_for_group(feature, group_key(group_name), member)
        return self.__call('is_enabled_for_group', op, callback)

    # User gates

    def register_user(self, feature: str = _MISSING, user: Any = _MISSING,
                      *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        """Registers a user against a feature, creating the feature if needed. ``user`` is a dict or
        object with an ``id``; only the id is stored.
        """
        def op(adapter: StorageAdapter) -> bool:
            _require(feature, user)
            return adapter.register_user(feature, user_key(user))
        return self.__call('register_user', op, callback)

    def enable_user(self, feature: str = _MISSING, user: Any = _MISSING,
                    *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        def op(adapter: StorageAdapter) -> bool:
            _require(feature, user)
            return adapter.enable_user(feature, user_key(user))
        return self.__call('enable_user', op, callback)

    def disable_user(self, feature: str = _MISSING, user: Any = _MISSING,
                     *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        def op(adapter: StorageAdapter) -> bool:
            _require(feature, user)
            return adapter.disable_user(feature, user_key(user))
        return self.__call('disable_user', op, callback)

    def is_enabled_for_user(self, feature: str = _MISSING, user: Any = _MISSING,
                            *, callback: Optional[Callable[[Result], Any]] = None) -> Result:
        def op(adapter: StorageAdapter) -> bool:
            _require(feature, user)
            return adapter.is_enabled_for_user(feature, user_key(user))
        return self.__call('is_enabled_for_user', op, callback)

    def __call(self, operation: str, fn: Callable[[StorageAdapter], Any],
               callback: Optional[Callable[[Result], Any]]) -> Result:
        adapter = self._adapter
        if adapter is None:
            result = Result.fail('Flagger has no storage adapter', self.initialization_error)
        else:
            try:
                result = Result.success(fn(adapter))
            except (ArgumentError, InvalidIdentityError) as e:
                log.warning("Invalid arguments for %s: %s" % (operation, e))
                result = Result.from_exception(e)
            except Exception as e:
                log.warning("Flagger %s failed: %s" % (operation, e))
                log.debug(e, exc_info=True)
                result = Result.from_exception(e)
        if callback is not None:
            try:
                callback(result)
            except Exception as e:
                log.exception("Unexpected error in %s callback: %s" % (operation, e))
        return result


__all__ = ['Config', 'Flagger', 'FlaggerError']
