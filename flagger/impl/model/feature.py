from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from flagger.impl.model.entity import opt_type, req_dict
from flagger.impl.model.gates import Gate, GroupGate, UserGate, decode_gate

ENABLED_KEY = 'enabled'
NAME_KEY = 'name'


class Feature:
    """A named feature, its global on/off switch, and the gates attached to it.

    The JSON representation is flat: ``enabled`` and ``name`` sit next to one entry per gate, keyed
    by the gate's derived key. This is the same shape the Redis adapter keeps in its per-feature hash.
    """

    __slots__ = ['_name', '_enabled', '_gates']

    def __init__(self, name: str, enabled: bool = True, gates: Optional[Mapping[str, Gate]] = None):
        self._name = name
        self._enabled = enabled
        self._gates = dict(gates or {})  # type: Dict[str, Gate]

    @staticmethod
    def from_json(name: str, data: Any) -> Feature:
        data = req_dict(data, 'feature "%s"' % name)
        # a hash without an "enabled" field was created by a gate registration, which enables it
        enabled = opt_type(data, ENABLED_KEY, bool) is not False
        gates = {}
        for key, value in data.items():
            if key in (ENABLED_KEY, NAME_KEY):
                continue
            gates[key] = decode_gate(key, value)
        return Feature(name, enabled, gates)

    @property
    def name(self) -> str:
        return self._name

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool):
        self._enabled = value

    @property
    def gates(self) -> Dict[str, Gate]:
        return dict(self._gates)

    def gate(self, key: str) -> Optional[Gate]:
        return self._gates.get(key)

    def group(self, key: str) -> Optional[GroupGate]:
        gate = self._gates.get(key)
        return gate if isinstance(gate, GroupGate) else None

    def user(self, key: str) -> Optional[UserGate]:
        gate = self._gates.get(key)
        return gate if isinstance(gate, UserGate) else None

    def set_gate(self, key: str, gate: Gate):
        self._gates[key] = gate

    def copy(self) -> Feature:
        return Feature(self._name, self._enabled, self._gates)

    def to_json_dict(self) -> dict:
        ret = {NAME_KEY: self._name, ENABLED_KEY: self._enabled}  # type: Dict[str, Any]
        for key, gate in self._gates.items():
            ret[key] = gate.to_json_dict()
        return ret

    def __eq__(self, other) -> bool:
        return isinstance(other, Feature) and self.to_json_dict() == other.to_json_dict()

    def __repr__(self) -> str:
        return 'Feature(%s)' % self.to_json_dict()
