"""
This submodule contains factory methods for the storage adapters, and the registry that maps a
configured adapter name to one of them.
"""

from typing import Any, Callable, Dict, Mapping, Optional, Union

from flagger.config import Config, RedisConfig
from flagger.errors import ConfigurationError
from flagger.impl.integrations.redis.redis_adapter import _RedisAdapter
from flagger.in_memory_store import InMemoryAdapter
from flagger.interfaces import StorageAdapter


class Memory:
    """Provides factory methods for the in-memory storage adapter.
    """

    @staticmethod
    def new_adapter(source: Optional[Mapping[str, dict]] = None) -> StorageAdapter:
        """Creates an adapter that keeps all features in memory.

        :param source: optional initial data, as a dict of feature names to stored feature dicts
        """
        return InMemoryAdapter(source)


class Redis:
    """Provides factory methods for integrations between Flagger and Redis.
    """

    DEFAULT_URL = 'redis://localhost:6379?db=0'

    @staticmethod
    def new_adapter(config: Union[RedisConfig, Mapping[str, Any], str] = DEFAULT_URL, client: Any = None) -> StorageAdapter:
        """Creates a Redis-backed implementation of :class:`flagger.interfaces.StorageAdapter`.

        To use this method, you must first install the ``redis`` package (``pip install flagger[redis]``).

        :param config: a :class:`flagger.config.RedisConfig`, a ``redis://host[:port]?db=N``
          connection string, or a dict of connection settings; defaults to ``DEFAULT_URL``
        :param client: an existing ``redis.Redis`` client to use instead of opening a new
          connection; the adapter takes ownership of it and closes it on ``disconnect()``
        """
        return _RedisAdapter(RedisConfig.from_value(config), client)


def _memory_from_config(config: Config) -> StorageAdapter:
    return Memory.new_adapter(config.source)


def _redis_from_config(config: Config) -> StorageAdapter:
    redis_config = config.redis
    if redis_config is None:
        raise ConfigurationError('Config not provided for the redis adapter')
    return Redis.new_adapter(redis_config)


#: Adapter names accepted by :class:`flagger.config.Config`, mapped to the function that builds them.
ADAPTERS = {
    'memory': _memory_from_config,
    'redis': _redis_from_config,
}  # type: Dict[str, Callable[[Config], StorageAdapter]]


def new_adapter(config: Config) -> StorageAdapter:
    """Builds the storage adapter that a configuration asks for.

    :raises ConfigurationError: if the adapter name is not one of :data:`ADAPTERS`, or the adapter's
      settings are missing
    """
    if config.storage_adapter is not None:
        return config.storage_adapter
    factory = ADAPTERS.get(config.adapter)
    if factory is None:
        raise ConfigurationError('Could not find adapter ' + str(config.adapter))
    return factory(config)
