"""
This submodule contains interfaces for the pluggable components of Flagger.

They may be useful in writing new storage adapters, or for testing.
"""

from abc import ABCMeta, abstractmethod
from typing import Any, Callable, List, Optional

from flagger.impl.model import Feature


class StorageAdapter(metaclass=ABCMeta):
    """
    Interface for the component that persists features and their gates and evaluates them.

    Every implementation must provide the same semantics regardless of where the data lives:

    * A feature is identified by its unique name. Adding a name that already exists changes nothing.
    * A feature's global ``enabled`` flag dominates its gates: when it is False, every gate
      evaluation for that feature is False.
    * Removing a feature removes all of its gates.
    * Read-only operations never create records.

    Gate operations take keys that were already derived by :mod:`flagger.impl.keys`; adapters do not
    know how identities are shaped.

    Each method either returns its result or raises. Errors from the underlying store are raised
    unchanged; decoding problems are raised as :class:`flagger.errors.StorageFault`.
    """

    #: The name under which this adapter is registered, e.g. ``"memory"``.
    name = None  # type: Optional[str]

    def start(self, ready: Callable[[], None], on_error: Callable[[Exception], None]):
        """
        Begins making the adapter usable. Implementations call ``ready`` once, when the adapter
        can serve requests, or ``on_error`` once if it never will. The default implementation is
        ready immediately.

        :param ready: called with no arguments when the adapter is usable
        :param on_error: called with the exception if the adapter cannot be used
        """
        ready()

    @abstractmethod
    def features(self) -> List[str]:
        """
        Returns the names of all features, or an empty list if there are none.
        """

    @abstractmethod
    def add(self, feature: str):
        """
        Creates a feature that is globally enabled. Does nothing if the feature already exists.

        :param feature: the feature name
        """

    @abstractmethod
    def remove(self, feature: str):
        """
        Deletes a feature together with all of its gates. Does nothing if the feature does not exist.

        :param feature: the feature name
        """

    @abstractmethod
    def get(self, feature: str) -> Optional[Feature]:
        """
        Returns the feature with the given name, or None if there is no such feature.

        :param feature: the feature name
        """

    @abstractmethod
    def enable(self, feature: str):
        """
        Turns the feature's global gate on. Does nothing if the feature does not exist.
        """

    @abstractmethod
    def disable(self, feature: str):
        """
        Turns the feature's global gate off. Does nothing if the feature does not exist.
        """

    @abstractmethod
    def is_enabled_globally(self, feature: str) -> bool:
        """
        Returns the feature's global gate, or False if the feature does not exist.
        """

    @abstractmethod
    def register_group(self, feature: str, group_key: str, match_property: str, match_value: Any):
        """
        Creates or replaces an enabled group gate on the feature, creating the feature if necessary.

        :param feature: the feature name
        :param group_key: the derived group key
        :param match_property: the member property that is compared
        :param match_value: the value the property must equal for the member to be in the group
        """

    @abstractmethod
    def enable_group(self, feature: str, group_key: str) -> bool:
        """
        Turns a group gate on. Returns False if the feature or the group gate does not exist.
        """

    @abstractmethod
    def disable_group(self, feature: str, group_key: str) -> bool:
        """
        Turns a group gate off. Returns False if the feature or the group gate does not exist.
        """

    @abstractmethod
    def is_enabled_for_group(self, feature: str, group_key: str, member: Any) -> bool:
        """
        Evaluates a group gate for a member. The result is False when the feature does not exist or
        is globally disabled, when the group gate does not exist or is disabled, or when the member
        does not have the match property at all. Otherwise the result is whether the member's value
        for that property equals the gate's value.

        :param feature: the feature name
        :param group_key: the derived group key
        :param member: a mapping or object whose match property is examined
        """

    @abstractmethod
    def register_user(self, feature: str, user_key: str) -> bool:
        """
        Creates or replaces an enabled user gate on the feature, creating the feature if necessary.
        Returns True.
        """

    @abstractmethod
    def enable_user(self, feature: str, user_key: str) -> bool:
        """
        Turns a user gate on. Returns False if the feature or the user gate does not exist.
        """

    @abstractmethod
    def disable_user(self, feature: str, user_key: str) -> bool:
        """
        Turns a user gate off. Returns False if the feature or the user gate does not exist.
        """

    @abstractmethod
    def is_enabled_for_user(self, feature: str, user_key: str) -> bool:
        """
        Returns True only if the feature exists and is globally enabled and the user gate exists and
        is enabled.
        """

    @abstractmethod
    def disconnect(self):
        """
        Releases the adapter's resources. The adapter must not be used afterward.
        """

    def describe_configuration(self) -> str:
        """
        Returns a short description of the adapter, used in log messages.
        """
        return self.name or self.__class__.__name__
