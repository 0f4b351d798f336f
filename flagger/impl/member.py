from collections.abc import Mapping
from typing import Any

# Resolution of a group gate's match property against a group member.
#
# A member can be a mapping or an arbitrary object. The match property is looked up first as a
# literal name; if that fails and the name contains dots, it is treated as a path through nested
# mappings/objects. Whatever is found, if it is callable, is invoked with no arguments and its
# return value is used instead.

MISSING = object()


def _lookup(container: Any, name: str) -> Any:
    if isinstance(container, Mapping):
        return container[name] if name in container else MISSING
    return getattr(container, name, MISSING)


def resolve_member_value(member: Any, prop: str) -> Any:
    """Returns the member's comparison value for ``prop``, or :data:`MISSING` if the member does not
    have that property at all.
    """
    if member is None or prop is None:
        return MISSING
    value = _lookup(member, prop)
    if value is MISSING and '.' in prop:
        value = member
        for component in prop.split('.'):
            value = _lookup(value, component)
            if value is MISSING:
                break
    if value is MISSING:
        return MISSING
    if callable(value):
        return value()
    return value
