import json
import os
import threading

import pytest

from flagger.config import RedisConfig
from flagger.errors import StorageFault
from flagger.impl.integrations.redis.redis_adapter import FEATURES_KEY
from flagger.impl.keys import group_key, user_key_for_id
from flagger.impl.model import GroupGate
from flagger.integrations import Redis
from flagger.interfaces import StorageAdapter
from flagger.testing.adapter_test_base import AdapterTestBase, AdapterTester
from flagger.testing.test_util import skip_database_tests

have_redis = False
try:
    import fakeredis
    import redis

    have_redis = True
except ImportError:
    pass

pytestmark = pytest.mark.skipif(not have_redis, reason="skipping Redis tests because redis or fakeredis module is not installed")

# When FLAGGER_REDIS_URL is set, the suite also runs against that server. Its data for the features
# used by the tests is deleted before each test.
live_redis_url = os.environ.get('FLAGGER_REDIS_URL')

ADMINS = group_key('admins')


class RedisTestHelper:
    @staticmethod
    def clear_data(client):
        for name in client.smembers(FEATURES_KEY):
            client.delete(name)
        client.delete(FEATURES_KEY, 'uploader', 'search', 'uploader-fake')


class FakeRedisAdapterTester(AdapterTester):
    def __init__(self):
        self.server = fakeredis.FakeServer()

    def make_client(self):
        return fakeredis.FakeRedis(server=self.server)

    def create_adapter(self) -> StorageAdapter:
        return Redis.new_adapter(RedisConfig(), client=self.make_client())


class LiveRedisAdapterTester(AdapterTester):
    def make_client(self):
        config = RedisConfig.from_url(live_redis_url)
        return redis.Redis(host=config.host, port=config.port, db=config.db, **config.client_options)

    def create_adapter(self) -> StorageAdapter:
        return Redis.new_adapter(live_redis_url)


def _tester_params():
    params = ['fake']
    if live_redis_url and not skip_database_tests:
        params.append('live')
    return params


@pytest.fixture(params=_tester_params())
def tester(request):
    instance = FakeRedisAdapterTester() if request.param == 'fake' else LiveRedisAdapterTester()
    RedisTestHelper.clear_data(instance.make_client())
    return instance


class TestRedisAdapter(AdapterTestBase):
    def test_key_layout(self, tester):
        other_client = tester.make_client()
        with self.adapter(tester) as adapter:
            adapter.add('uploader')
            adapter.register_group('uploader', ADMINS, 'admin', True)
            adapter.register_user('uploader', user_key_for_id(1))

            assert other_client.smembers(FEATURES_KEY) == {b'uploader'}
            assert other_client.hget('uploader', 'enabled') == b'true'
            assert json.loads(other_client.hget('uploader', 'group-admins')) == {'enabled': True, 'key': 'admin', 'value': True}
            assert json.loads(other_client.hget('uploader', 'user-1')) == {'enabled': True}

            adapter.disable('uploader')
            assert other_client.hget('uploader', 'enabled') == b'false'

    def test_reads_data_written_by_another_client(self, tester):
        other_client = tester.make_client()
        other_client.sadd(FEATURES_KEY, 'search')
        other_client.hset('search', 'enabled', 'true')
        other_client.hset('search', 'group-beta', json.dumps({'enabled': True, 'key': 'beta', 'value': 'yes'}))
        other_client.hset('search', 'user-7', json.dumps({'enabled': False}))
        with self.adapter(tester) as adapter:
            assert adapter.features() == ['search']
            assert adapter.is_enabled_for_group('search', group_key('beta'), {'beta': 'yes'}) is True
            assert adapter.is_enabled_for_user('search', user_key_for_id(7)) is False
            assert adapter.get('search').group(group_key('beta')) == GroupGate(True, 'beta', 'yes')

    def test_hash_missing_from_feature_list_is_ignored(self, tester):
        other_client = tester.make_client()
        other_client.hset('uploader', 'enabled', 'true')
        with self.adapter(tester) as adapter:
            assert adapter.get('uploader') is None
            assert adapter.is_enabled_globally('uploader') is False
            adapter.enable('uploader')
            assert adapter.features() == []

    def test_malformed_json_is_a_storage_fault(self, tester):
        other_client = tester.make_client()
        with self.adapter(tester) as adapter:
            adapter.add('uploader')
            other_client.hset('uploader', 'group-admins', '{not json')
            with pytest.raises(StorageFault):
                adapter.is_enabled_for_group('uploader', ADMINS, {'admin': True})
            with pytest.raises(StorageFault):
                adapter.get('uploader')

    def test_enable_group_retries_after_concurrent_modification(self, tester):
        other_client = tester.make_client()
        with self.adapter(tester) as adapter:
            adapter.register_group('uploader', ADMINS, 'admin', True)
            adapter.disable_group('uploader', ADMINS)
            calls = []

            def hook(feature, field):
                if not calls:
                    other_client.hset(feature, field, json.dumps({'enabled': False, 'key': 'role', 'value': 'admin'}))
                calls.append(field)

            adapter.test_update_hook = hook
            assert adapter.enable_group('uploader', ADMINS) is True
            assert len(calls) == 2
            assert adapter.get('uploader').group(ADMINS) == GroupGate(True, 'role', 'admin')

    def test_enable_user_sees_concurrent_removal(self, tester):
        other_client = tester.make_client()
        with self.adapter(tester) as adapter:
            adapter.register_user('uploader', user_key_for_id(1))

            def hook(feature, field):
                other_client.srem(FEATURES_KEY, feature)
                other_client.delete(feature)

            adapter.test_update_hook = hook
            assert adapter.enable_user('uploader', user_key_for_id(1)) is False
            adapter.test_update_hook = None
            assert adapter.features() == []

    def test_start_reports_ready(self, tester):
        with self.adapter(tester) as adapter:
            ready = threading.Event()
            adapter.start(ready.set, lambda e: None)
            assert ready.wait(5) is True

    def test_name(self, tester):
        with self.adapter(tester) as adapter:
            assert adapter.name == 'redis'
            assert adapter.describe_configuration() == 'Redis'


def test_transport_errors_reach_the_caller_unchanged():
    server = fakeredis.FakeServer()
    adapter = Redis.new_adapter(RedisConfig(), client=fakeredis.FakeRedis(server=server))
    server.connected = False
    with pytest.raises(redis.exceptions.ConnectionError):
        adapter.is_enabled_globally('uploader')
    with pytest.raises(redis.exceptions.ConnectionError):
        adapter.add('uploader')


def test_start_reports_connection_failure():
    server = fakeredis.FakeServer()
    server.connected = False
    adapter = Redis.new_adapter('redis://localhost:6379?db=0', client=fakeredis.FakeRedis(server=server))
    errors = []
    done = threading.Event()

    def on_error(e):
        errors.append(e)
        done.set()

    adapter.start(lambda: done.set(), on_error)
    assert done.wait(5) is True
    assert len(errors) == 1
    assert isinstance(errors[0], redis.exceptions.ConnectionError)


def test_new_adapter_accepts_connection_settings_dict():
    adapter = Redis.new_adapter({'host': 'cache', 'port': 6380, 'db': 3}, client=fakeredis.FakeRedis())
    adapter.add('uploader')
    assert adapter.features() == ['uploader']
    adapter.disconnect()
