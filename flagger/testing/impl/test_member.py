from flagger.impl.member import MISSING, resolve_member_value


class Account:
    plan = 'pro'

    def is_admin(self):
        return True

    @property
    def region(self):
        return 'eu'


def test_mapping_property():
    assert resolve_member_value({'admin': False}, 'admin') is False


def test_missing_property():
    assert resolve_member_value({}, 'admin') is MISSING
    assert resolve_member_value(Account(), 'nope') is MISSING


def test_none_value_is_not_missing():
    assert resolve_member_value({'admin': None}, 'admin') is None


def test_object_attribute_and_property():
    assert resolve_member_value(Account(), 'plan') == 'pro'
    assert resolve_member_value(Account(), 'region') == 'eu'


def test_callable_is_invoked():
    assert resolve_member_value(Account(), 'is_admin') is True
    assert resolve_member_value({'admin': lambda: 'yes'}, 'admin') == 'yes'


def test_dotted_path():
    member = {'account': Account(), 'profile': {'country': 'NZ'}}
    assert resolve_member_value(member, 'profile.country') == 'NZ'
    assert resolve_member_value(member, 'account.plan') == 'pro'
    assert resolve_member_value(member, 'account.is_admin') is True
    assert resolve_member_value(member, 'profile.city') is MISSING
    assert resolve_member_value(member, 'nothing.here') is MISSING


def test_literal_name_with_dot_wins():
    assert resolve_member_value({'a.b': 1, 'a': {'b': 2}}, 'a.b') == 1


def test_no_member():
    assert resolve_member_value(None, 'admin') is MISSING
