import json
import threading
from typing import Any, Callable, List, Optional

have_redis = False
try:
    import redis
    from redis.backoff import ExponentialBackoff
    from redis.retry import Retry

    have_redis = True
except ImportError:
    pass

from flagger.config import RedisConfig
from flagger.errors import ArgumentError, StorageFault
from flagger.impl.model import (ENABLED_KEY, Feature, GroupGate, UserGate,
                                 decode_gate, normalize_match_value)
from flagger.impl.util import log, redact_password
from flagger.interfaces import StorageAdapter

# Key layout, shared with every other client of the same Redis database:
#
# - the set FEATURES_KEY holds the names of all features
# - each feature has a hash named after the feature, holding
#     "enabled"      -> "true" / "false"
#     "group-<name>" -> JSON {"enabled": bool, "key": str, "value": any}
#     "user-<id>"    -> JSON {"enabled": bool}

FEATURES_KEY = 'flagger_features'

_TRUE = 'true'
_FALSE = 'false'


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode('utf-8')  # replies are bytes unless decode_responses was set
    return value


def _parse(value: Any, what: str) -> Any:
    text = _text(value)
    if text is None or text == '':
        return None
    try:
        return json.loads(text)
    except ValueError as e:
        raise StorageFault('malformed JSON in %s: %s' % (what, e)) from e


def _dumps(data: dict) -> str:
    try:
        return json.dumps(data)
    except (TypeError, ValueError) as e:
        raise ArgumentError('gate value cannot be stored as JSON: %s' % e) from e


class _RedisAdapter(StorageAdapter):
    name = 'redis'

    def __init__(self, config: RedisConfig, client: Optional['redis.Redis'] = None):
        if not have_redis:
            raise NotImplementedError("Cannot use Redis adapter because redis package is not installed")
        self._config = config
        self._closed = False
        if client is None:
            # retry_max_delay is in milliseconds
            retry = Retry(ExponentialBackoff(cap=config.retry_max_delay / 1000.0), config.retry_attempts)
            client = redis.Redis(host=config.host,
                                 port=config.port,
                                 db=config.db,
                                 retry=retry,
                                 retry_on_error=[redis.exceptions.ConnectionError, redis.exceptions.TimeoutError],
                                 **config.client_options)
        self._redis = client
        self.test_update_hook = None  # type: Optional[Callable[[str, str], None]]  # exposed for testing
        log.info("Started RedisAdapter connected to URL: " + redact_password(config.url))

    def start(self, ready, on_error):
        def check():
            try:
                self._client().ping()
            except Exception as e:
                log.error("Error connecting to %s - %s", redact_password(self._config.url), e)
                on_error(e)
                return
            ready()

        thread = threading.Thread(target=check, name="flagger.redis.start", daemon=True)
        thread.start()

    def _client(self) -> 'redis.Redis':
        if self._closed:
            raise StorageFault('redis adapter has been disconnected')
        return self._redis

    def features(self) -> List[str]:
        members = self._client().smembers(FEATURES_KEY)
        return sorted(_text(m) for m in members or [])

    def add(self, feature: str):
        pipe = self._client().pipeline()
        pipe.sadd(FEATURES_KEY, feature)
        pipe.hsetnx(feature, ENABLED_KEY, _TRUE)
        pipe.execute()

    def remove(self, feature: str):
        pipe = self._client().pipeline()
        pipe.srem(FEATURES_KEY, feature)
        pipe.delete(feature)
        pipe.execute()

    def get(self, feature: str) -> Optional[Feature]:
        pipe = self._client().pipeline()
        pipe.sismember(FEATURES_KEY, feature)
        pipe.hgetall(feature)
        is_member, fields = pipe.execute()
        # a hash that is missing from the feature list is treated as absent
        if not is_member or not fields:
            log.debug("RedisAdapter: feature %s not found. Returning None.", feature)
            return None
        data = {}
        for key, value in fields.items():
            key = _text(key)
            data[key] = _parse(value, 'field "%s" of feature "%s"' % (key, feature))
        return Feature.from_json(feature, data)

    def enable(self, feature: str):
        self._update_field(feature, ENABLED_KEY, lambda old: _TRUE)

    def disable(self, feature: str):
        self._update_field(feature, ENABLED_KEY, lambda old: _FALSE)

    def is_enabled_globally(self, feature: str) -> bool:
        is_member, enabled, _ = self._read(feature, None)
        return bool(is_member and enabled)

    def register_group(self, feature: str, group_key: str, match_property: str, match_value: Any):
        gate = GroupGate(True, match_property, normalize_match_value(match_value))
        self._register(feature, group_key, gate.to_json_dict())

    def enable_group(self, feature: str, group_key: str) -> bool:
        return self._set_gate_enabled(feature, group_key, True, GroupGate)

    def disable_group(self, feature: str, group_key: str) -> bool:
        return self._set_gate_enabled(feature, group_key, False, GroupGate)

    def is_enabled_for_group(self, feature: str, group_key: str, member: Any) -> bool:
        is_member, enabled, gate = self._read(feature, group_key)
        if not is_member or not enabled or not isinstance(gate, GroupGate):
            return False
        return gate.matches(member)

    def register_user(self, feature: str, user_key: str) -> bool:
        self._register(feature, user_key, UserGate(True).to_json_dict())
        return True

    def enable_user(self, feature: str, user_key: str) -> bool:
        return self._set_gate_enabled(feature, user_key, True, UserGate)

    def disable_user(self, feature: str, user_key: str) -> bool:
        return self._set_gate_enabled(feature, user_key, False, UserGate)

    def is_enabled_for_user(self, feature: str, user_key: str) -> bool:
        is_member, enabled, gate = self._read(feature, user_key)
        if not is_member or not enabled or not isinstance(gate, UserGate):
            return False
        return gate.enabled

    def disconnect(self):
        if self._closed:
            return
        self._closed = True
        self._redis.close()
        self._redis.connection_pool.disconnect()
        log.info("Closed RedisAdapter connection to %s", redact_password(self._config.url))

    def describe_configuration(self) -> str:
        return 'Redis'

    def _read(self, feature: str, gate_key: Optional[str]):
        """Reads set membership, the global flag, and optionally one gate, in a single transaction."""
        pipe = self._client().pipeline()
        pipe.sismember(FEATURES_KEY, feature)
        fields = [ENABLED_KEY] if gate_key is None else [ENABLED_KEY, gate_key]
        pipe.hmget(feature, fields)
        is_member, values = pipe.execute()
        enabled = _parse(values[0], 'enabled flag of feature "%s"' % feature)
        if enabled is not None and not isinstance(enabled, bool):
            raise StorageFault('enabled flag of feature "%s" should be true or false' % feature)
        gate = None
        if gate_key is not None:
            data = _parse(values[1], 'field "%s" of feature "%s"' % (gate_key, feature))
            if data is not None:
                gate = decode_gate(gate_key, data)
        return bool(is_member), enabled is True, gate

    def _register(self, feature: str, gate_key: str, gate: dict):
        gate_json = _dumps(gate)
        pipe = self._client().pipeline()
        pipe.sadd(FEATURES_KEY, feature)
        pipe.hsetnx(feature, ENABLED_KEY, _TRUE)
        pipe.hset(feature, gate_key, gate_json)
        pipe.execute()

    def _set_gate_enabled(self, feature: str, gate_key: str, enabled: bool, gate_type) -> bool:
        def update(old):
            data = _parse(old, 'field "%s" of feature "%s"' % (gate_key, feature))
            if data is None:
                return None
            gate = decode_gate(gate_key, data)
            if not isinstance(gate, gate_type):
                return None
            return _dumps(gate.with_enabled(enabled).to_json_dict())

        return self._update_field(feature, gate_key, update)

    def _update_field(self, feature: str, field: str, update: Callable[[Optional[bytes]], Optional[str]]) -> bool:
        """Replaces one field of an existing feature's hash with ``update(old_value)``, unless the
        feature is not listed or ``update`` returns None. Retries if another client modifies the
        feature concurrently. Returns whether the field was written.
        """
        r = self._client()
        while True:
            pipeline = r.pipeline()
            try:
                pipeline.watch(FEATURES_KEY, feature)
                if not pipeline.sismember(FEATURES_KEY, feature):
                    pipeline.unwatch()
                    return False
                old = pipeline.hget(feature, field)
                if self.test_update_hook is not None:
                    self.test_update_hook(feature, field)
                new = update(old)
                if new is None:
                    pipeline.unwatch()
                    return False
                pipeline.multi()
                pipeline.hset(feature, field, new)
                try:
                    pipeline.execute()
                    # in redis-py a failed WATCH produces an exception rather than a null result from execute()
                except redis.exceptions.WatchError:
                    log.debug("RedisAdapter: concurrent modification of %s detected, retrying", feature)
                    continue
                return True
            finally:
                pipeline.reset()
