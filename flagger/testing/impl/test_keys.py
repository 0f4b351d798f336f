import pytest

from flagger.errors import InvalidIdentityError
from flagger.impl.keys import group_key, user_key, user_key_for_id


class User:
    def __init__(self, id):
        self.id = id


def test_group_key():
    assert group_key('admins') == 'group-admins'


def test_group_key_is_deterministic():
    assert group_key('admins') == group_key(''.join(['ad', 'mins']))


def test_user_key_from_dict():
    assert user_key({'id': 1}) == 'user-1'


def test_user_key_from_object():
    assert user_key(User('abc')) == 'user-abc'


def test_user_key_uses_only_the_id():
    assert user_key({'id': 5, 'name': 'a'}) == user_key({'id': 5, 'name': 'b'})


def test_zero_is_a_valid_id():
    assert user_key({'id': 0}) == 'user-0'


def test_user_key_for_id():
    assert user_key_for_id(42) == 'user-42'


@pytest.mark.parametrize('user', [{'other_id': 12}, {'id': None}, {'id': ''}, User(None), object(), None])
def test_identity_without_id_is_invalid(user):
    with pytest.raises(InvalidIdentityError):
        user_key(user)
