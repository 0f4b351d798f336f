"""
This submodule contains the default storage adapter, which keeps all features in memory.
"""

from threading import RLock
from typing import Any, Dict, List, Mapping, Optional

from flagger.errors import StorageFault
from flagger.impl.model import Feature, GroupGate, UserGate, normalize_match_value
from flagger.impl.util import log
from flagger.interfaces import StorageAdapter


class InMemoryAdapter(StorageAdapter):
    """The default storage adapter implementation, which holds all data in a lock-guarded dict in
    memory. Its contents are lost when the process exits or the adapter is disconnected.

    All operations on one instance are serialized by an internal lock, so an instance may be shared
    between threads.
    """

    name = 'memory'

    def __init__(self, source: Optional[Mapping[str, dict]] = None):
        """Constructs an instance of InMemoryAdapter.

        :param source: optional initial data, as a dict of feature names to the flat JSON form
          produced by :func:`flagger.impl.model.Feature.to_json_dict()`
        """
        self._lock = RLock()
        self._closed = False
        self._features = {}  # type: Dict[str, Feature]
        if source:
            for name, data in source.items():
                self._features[name] = Feature.from_json(name, data)
            log.debug("Initialized memory adapter with %d features", len(self._features))

    def _items(self) -> Dict[str, Feature]:
        if self._closed:
            raise StorageFault('memory adapter has been disconnected')
        return self._features

    def features(self) -> List[str]:
        with self._lock:
            return list(self._items().keys())

    def add(self, feature: str):
        with self._lock:
            items = self._items()
            if feature not in items:
                items[feature] = Feature(feature)

    def remove(self, feature: str):
        with self._lock:
            self._items().pop(feature, None)

    def get(self, feature: str) -> Optional[Feature]:
        with self._lock:
            item = self._items().get(feature)
            if item is None:
                log.debug("Attempted to get missing feature %s, returning None", feature)
                return None
            return item.copy()

    def enable(self, feature: str):
        self._set_enabled(feature, True)

    def disable(self, feature: str):
        self._set_enabled(feature, False)

    def _set_enabled(self, feature: str, enabled: bool):
        with self._lock:
            item = self._items().get(feature)
            if item is not None:
                item.enabled = enabled

    def is_enabled_globally(self, feature: str) -> bool:
        with self._lock:
            item = self._items().get(feature)
            return item is not None and item.enabled

    def register_group(self, feature: str, group_key: str, match_property: str, match_value: Any):
        gate = GroupGate(True, match_property, normalize_match_value(match_value))
        with self._lock:
            self._get_or_create(feature).set_gate(group_key, gate)

    def enable_group(self, feature: str, group_key: str) -> bool:
        return self._set_group_enabled(feature, group_key, True)

    def disable_group(self, feature: str, group_key: str) -> bool:
        return self._set_group_enabled(feature, group_key, False)

    def _set_group_enabled(self, feature: str, group_key: str, enabled: bool) -> bool:
        with self._lock:
            item = self._items().get(feature)
            group = item.group(group_key) if item is not None else None
            if group is None:
                return False
            item.set_gate(group_key, group.with_enabled(enabled))
            return True

    def is_enabled_for_group(self, feature: str, group_key: str, member: Any) -> bool:
        with self._lock:
            item = self._items().get(feature)
            if item is None or not item.enabled:
                return False
            group = item.group(group_key)
        if group is None:
            return False
        # the member may run arbitrary code, so match outside the lock
        return group.matches(member)

    def register_user(self, feature: str, user_key: str) -> bool:
        with self._lock:
            self._get_or_create(feature).set_gate(user_key, UserGate(True))
        return True

    def enable_user(self, feature: str, user_key: str) -> bool:
        return self._set_user_enabled(feature, user_key, True)

    def disable_user(self, feature: str, user_key: str) -> bool:
        return self._set_user_enabled(feature, user_key, False)

    def _set_user_enabled(self, feature: str, user_key: str, enabled: bool) -> bool:
        with self._lock:
            item = self._items().get(feature)
            user = item.user(user_key) if item is not None else None
            if user is None:
                return False
            item.set_gate(user_key, user.with_enabled(enabled))
            return True

    def is_enabled_for_user(self, feature: str, user_key: str) -> bool:
        with self._lock:
            item = self._items().get(feature)
            if item is None or not item.enabled:
                return False
            user = item.user(user_key)
            return user is not None and user.enabled

    def disconnect(self):
        with self._lock:
            self._features = {}
            self._closed = True

    def _get_or_create(self, feature: str) -> Feature:
        items = self._items()
        item = items.get(feature)
        if item is None:
            item = Feature(feature)
            items[feature] = item
        return item
