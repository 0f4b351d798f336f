from typing import Any

from flagger.errors import StorageFault

# Helpers for decoding stored records.
#
# Gate records and features are decoded from the dicts that correspond to their JSON representation.
# All model classes should use the opt_ and req_ functions so that stored values of the wrong type
# cause immediate rejection with a StorageFault, rather than letting them reach the evaluation
# logic where they would cause errors that are harder to diagnose.

def opt_type(data: dict, name: str, desired_type) -> Any:
    value = data.get(name)
    if value is not None and not isinstance(value, desired_type):
        raise StorageFault('error in stored feature data: property "%s" should be type %s but was %s' % (name, desired_type, value.__class__))
    return value

def req_type(data: dict, name: str, desired_type) -> Any:
    value = opt_type(data, name, desired_type)
    if value is None:
        raise StorageFault('error in stored feature data: required property "%s" is missing' % name)
    return value

def req_str(data: dict, name: str) -> str:
    return req_type(data, name, str)

def req_dict(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise StorageFault('error in stored feature data: %s should be an object but was %s' % (what, data.__class__))
    return data
