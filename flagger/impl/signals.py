from threading import Event, RLock
from typing import Any, Callable, List, Optional

from flagger.impl.util import log


class OneShotSignal:
    """
    A notification that fires at most once. Listeners added before it fires are called when it
    fires; listeners added afterward are called immediately with the same value. Callbacks are done
    synchronously on the thread that fires the signal (or adds the listener).
    """

    def __init__(self, name: str):
        self.__name = name
        self.__listeners = []  # type: List[Callable[[Any], None]]
        self.__lock = RLock()
        self.__fired = Event()
        self.__value = None  # type: Any

    @property
    def fired(self) -> bool:
        return self.__fired.is_set()

    @property
    def value(self) -> Optional[Any]:
        return self.__value

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.__fired.wait(timeout)

    def add(self, listener: Callable[[Any], None]):
        with self.__lock:
            if not self.__fired.is_set():
                self.__listeners.append(listener)
                return
            value = self.__value
        self.__call(listener, value)

    def fire(self, value: Any = None) -> bool:
        """Fires the signal. Returns False, without notifying anyone, if it had already fired."""
        with self.__lock:
            if self.__fired.is_set():
                return False
            self.__value = value
            self.__fired.set()
            listeners = self.__listeners
            self.__listeners = []
        for listener in listeners:
            self.__call(listener, value)
        return True

    def __call(self, listener: Callable[[Any], None], value: Any):
        try:
            listener(value)
        except Exception as e:
            log.exception("Unexpected error in %s listener: %s" % (self.__name, e))
