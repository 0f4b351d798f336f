from __future__ import annotations

import json
from typing import Any, Union

from flagger.errors import ArgumentError
from flagger.impl.member import MISSING, resolve_member_value
from flagger.impl.model.entity import opt_type, req_dict, req_str


def _opt_enabled(data: dict) -> bool:
    # a record is only disabled when it says so explicitly
    return opt_type(data, 'enabled', bool) is not False


def normalize_match_value(value: Any) -> Any:
    """Returns a group match value as it reads back from storage, so that a tuple becomes a list.

    :raises ArgumentError: if the value cannot be stored as JSON
    """
    try:
        return json.loads(json.dumps(value))
    except (TypeError, ValueError) as e:
        raise ArgumentError('gate value cannot be stored as JSON: %s' % e) from e


class GroupGate:
    """A named group attached to a feature. A member belongs to the group when the member's ``key``
    property resolves to a value equal to ``value``. Booleans only equal booleans.
    """

    __slots__ = ['_enabled', '_key', '_value']

    def __init__(self, enabled: bool, key: str, value: Any):
        self._enabled = enabled
        self._key = key
        self._value = value

    @staticmethod
    def from_json(data: Any) -> GroupGate:
        data = req_dict(data, 'group gate')
        return GroupGate(_opt_enabled(data), req_str(data, 'key'), data.get('value'))

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def key(self) -> str:
        return self._key

    @property
    def value(self) -> Any:
        return self._value

    def with_enabled(self, enabled: bool) -> GroupGate:
        return GroupGate(enabled, self._key, self._value)

    def matches(self, member: Any) -> bool:
        """Returns True if the gate is enabled and the member's match property equals the gate's
        value. A member that lacks the property never matches.
        """
        if not self._enabled:
            return False
        member_value = resolve_member_value(member, self._key)
        if member_value is MISSING:
            return False
        # True and 1 are different JSON values
        if isinstance(member_value, bool) != isinstance(self._value, bool):
            return False
        return member_value == self._value

    def to_json_dict(self) -> dict:
        return {'enabled': self._enabled, 'key': self._key, 'value': self._value}

    def __eq__(self, other) -> bool:
        return isinstance(other, GroupGate) and self.to_json_dict() == other.to_json_dict()

    def __repr__(self) -> str:
        return 'GroupGate(%s)' % self.to_json_dict()


class UserGate:
    """Marks one user as explicitly registered against a feature."""

    __slots__ = ['_enabled']

    def __init__(self, enabled: bool = True):
        self._enabled = enabled

    @staticmethod
    def from_json(data: Any) -> UserGate:
        return UserGate(_opt_enabled(req_dict(data, 'user gate')))

    @property
    def enabled(self) -> bool:
        return self._enabled

    def with_enabled(self, enabled: bool) -> UserGate:
        return UserGate(enabled)

    def to_json_dict(self) -> dict:
        return {'enabled': self._enabled}

    def __eq__(self, other) -> bool:
        return isinstance(other, UserGate) and self._enabled == other._enabled

    def __repr__(self) -> str:
        return 'UserGate(%s)' % self.to_json_dict()


Gate = Union[GroupGate, UserGate]


def decode_gate(key: str, data: Any) -> Gate:
    """Builds the gate record stored under ``key``. Group records are the ones carrying a match
    property; derived keys always agree with that, but keys supplied directly to an adapter may not.
    """
    data = req_dict(data, 'gate "%s"' % key)
    if 'key' in data:
        return GroupGate.from_json(data)
    return UserGate.from_json(data)
