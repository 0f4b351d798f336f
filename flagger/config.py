"""
This submodule contains the :class:`Config` class for custom configuration of the Flagger client.

Note that the same class can also be imported from the ``flagger.client`` submodule.
"""

from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import parse_qs, urlparse

from flagger.errors import ConfigurationError
from flagger.interfaces import StorageAdapter

DEFAULT_REDIS_HOST = 'localhost'
DEFAULT_REDIS_PORT = 6379
DEFAULT_REDIS_DB = 0


class RedisConfig:
    """Connection settings for the Redis storage adapter.

    Settings can be given field by field, or as a connection string of the form
    ``redis://host[:port]?db=N`` through :func:`from_url()`.

    ::

            from flagger.config import Config, RedisConfig
            config = Config(adapter='redis', redis=RedisConfig.from_url('redis://cache:6380?db=2'))
    """

    #: The upper bound, in milliseconds, on the delay between reconnection attempts.
    DEFAULT_RETRY_MAX_DELAY = 10000
    #: How many times a command is retried after a connection error before the error is reported.
    DEFAULT_RETRY_ATTEMPTS = 3

    def __init__(self,
                 host: Optional[str] = None,
                 port: Optional[int] = None,
                 db: Optional[int] = None,
                 options: Optional[Mapping[str, Any]] = None,
                 url: Optional[str] = None):
        """
        :param host: the Redis host; defaults to ``localhost``
        :param port: the Redis port; defaults to 6379
        :param db: the Redis database number; defaults to 0
        :param options: extra keyword arguments for the ``redis.Redis`` client, such as ``password``
          or ``socket_timeout``. Two options are consumed by Flagger itself: ``retry_max_delay``
          (milliseconds, the backoff ceiling) and ``retry_attempts``.
        :param url: the connection string this configuration was parsed from, if any; used only for
          log messages
        """
        self.__host = host or DEFAULT_REDIS_HOST
        self.__port = port or DEFAULT_REDIS_PORT
        self.__db = db or DEFAULT_REDIS_DB
        self.__options = dict(options or {})
        self.__options.setdefault('retry_max_delay', self.DEFAULT_RETRY_MAX_DELAY)
        self.__options.setdefault('retry_attempts', self.DEFAULT_RETRY_ATTEMPTS)
        self.__url = url

    @staticmethod
    def from_url(url: str, options: Optional[Mapping[str, Any]] = None) -> 'RedisConfig':
        """Parses a ``redis://host[:port]?db=N`` connection string.

        :raises ConfigurationError: if the string is not a ``redis://`` or ``rediss://`` URL
        """
        parts = urlparse(url)
        if parts.scheme not in ('redis', 'rediss') or not parts.hostname:
            raise ConfigurationError('Invalid Redis connection string: %s' % url)
        opts = dict(options or {})
        if parts.password is not None:
            opts.setdefault('password', parts.password)
        if parts.username:
            opts.setdefault('username', parts.username)
        if parts.scheme == 'rediss':
            opts.setdefault('ssl', True)
        db_values = parse_qs(parts.query).get('db')
        try:
            port = parts.port
            db = int(db_values[0]) if db_values else None
        except ValueError:
            raise ConfigurationError('Invalid Redis connection string: %s' % url)
        return RedisConfig(host=parts.hostname, port=port, db=db, options=opts, url=url)

    @staticmethod
    def from_value(value: Union['RedisConfig', Mapping[str, Any], str]) -> 'RedisConfig':
        """Accepts a :class:`RedisConfig`, a connection string, or a dict with either a ``url`` entry
        or ``host``/``port``/``db``/``options`` entries.
        """
        if isinstance(value, RedisConfig):
            return value
        if isinstance(value, str):
            return RedisConfig.from_url(value)
        if isinstance(value, Mapping):
            if value.get('url'):
                return RedisConfig.from_url(value['url'], value.get('options'))
            return RedisConfig(value.get('host'), value.get('port'), value.get('db'), value.get('options'))
        raise ConfigurationError('Unsupported Redis configuration: %r' % (value,))

    @property
    def host(self) -> str:
        return self.__host

    @property
    def port(self) -> int:
        return self.__port

    @property
    def db(self) -> int:
        return self.__db

    @property
    def options(self) -> Dict[str, Any]:
        return dict(self.__options)

    @property
    def retry_max_delay(self) -> int:
        return self.__options['retry_max_delay']

    @property
    def retry_attempts(self) -> int:
        return self.__options['retry_attempts']

    @property
    def client_options(self) -> Dict[str, Any]:
        """The options to pass on to the ``redis.Redis`` constructor."""
        return dict((k, v) for k, v in self.__options.items() if k not in ('retry_max_delay', 'retry_attempts'))

    @property
    def url(self) -> str:
        if self.__url:
            return self.__url
        return 'redis://%s:%d?db=%d' % (self.__host, self.__port, self.__db)


class Config:
    """Advanced configuration options for the Flagger client.

    By default a client uses the in-memory adapter, so ``Config()`` is a complete configuration.
    """

    def __init__(self,
                 adapter: str = 'memory',
                 redis: Optional[Union[RedisConfig, Mapping[str, Any], str]] = None,
                 source: Optional[Mapping[str, dict]] = None,
                 storage_adapter: Optional[StorageAdapter] = None):
        """
        :param adapter: the name of the storage adapter to use, ``"memory"`` or ``"redis"``
        :param redis: connection settings for the ``redis`` adapter; a :class:`RedisConfig`, a
          ``redis://`` connection string, or a dict
        :param source: initial data for the ``memory`` adapter, as a dict of feature names to
          stored feature dicts
        :param storage_adapter: an already constructed adapter; when set, ``adapter`` is ignored
        """
        self.__adapter = adapter
        self.__redis = redis
        self.__source = source
        self.__storage_adapter = storage_adapter

    @property
    def adapter(self) -> str:
        return self.__adapter

    @property
    def redis(self) -> Optional[RedisConfig]:
        """The Redis settings, normalized to a :class:`RedisConfig`, or None if none were given.

        :raises ConfigurationError: if the settings cannot be understood
        """
        if self.__redis is None:
            return None
        return RedisConfig.from_value(self.__redis)

    @property
    def source(self) -> Optional[Mapping[str, dict]]:
        return self.__source

    @property
    def storage_adapter(self) -> Optional[StorageAdapter]:
        return self.__storage_adapter

    def _validate(self):
        if self.__storage_adapter is not None:
            return
        if not self.__adapter:
            raise ConfigurationError('No adapter name configured')
        if self.__adapter == 'redis' and self.__redis is None:
            raise ConfigurationError('Config not provided for the redis adapter')
        if self.__redis is not None:
            RedisConfig.from_value(self.__redis)
