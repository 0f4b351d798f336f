from collections.abc import Mapping
from typing import Any

from flagger.errors import InvalidIdentityError

GROUP_KEY_PREFIX = 'group-'
USER_KEY_PREFIX = 'user-'


def group_key(group_name: Any) -> str:
    return GROUP_KEY_PREFIX + str(group_name)


def user_key_for_id(user_id: Any) -> str:
    return USER_KEY_PREFIX + str(user_id)


def user_key(user: Any) -> str:
    """Derives the storage key for a user identity.

    The identity may be a mapping with an ``id`` entry or any object with an ``id`` attribute. Only
    the id contributes to the key, so two identities with the same id share one user gate.

    :raises InvalidIdentityError: if the identity has no usable id
    """
    user_id = identity_id(user)
    if user_id is None or user_id == '':
        raise InvalidIdentityError()
    return user_key_for_id(user_id)


def identity_id(user: Any) -> Any:
    if user is None:
        return None
    if isinstance(user, Mapping):
        return user.get('id')
    return getattr(user, 'id', None)
