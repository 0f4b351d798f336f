import logging
from typing import Any, Optional
from urllib.parse import urlparse, urlunparse

log = logging.getLogger('flagger.util')  # package-wide logger name


def redact_password(url: str) -> str:
    """
    Replace any embedded password in the provided URL with 'xxxx'. This is
    useful for ensuring sensitive information included in a URL isn't logged.
    """
    parts = urlparse(url)
    if parts.password is None:
        return url

    updated = parts.netloc.replace(parts.password, "xxxx")
    parts = parts._replace(netloc=updated)

    return urlunparse(parts)


class Result:
    """
    A Result is used to reflect the outcome of any operation.

    Results can either be considered a success or a failure.

    In the event of success, the Result will contain an optional, nullable value
    to hold any success value back to the calling function.

    If the operation fails, the Result will contain an error describing the
    failure, and usually the exception that caused it.
    """

    def __init__(self, value: Optional[Any], error: Optional[str], exception: Optional[Exception]):
        """
        This constructor should be considered private. Consumers of this class
        should use one of the two factory methods provided.

        :param value: A result value when the operation was a success
        :param error: An error describing the cause of the failure
        :param exception: An optional exception if the failure resulted from an
            exception being raised
        """
        self.__value = value
        self.__error = error
        self.__exception = exception

    @staticmethod
    def success(value: Any = None) -> 'Result':
        """
        Construct a successful result containing the provided value.

        :param value: A result value when the operation was a success
        :return: The successful result instance
        """
        return Result(value, None, None)

    @staticmethod
    def fail(error: str, exception: Optional[Exception] = None) -> 'Result':
        """
        Construct a failed result containing an error description and optional
        exception.

        :param error: An error describing the cause of the failure
        :param exception: An optional exception if the failure resulted from an
            exception being raised
        :return: The failed result instance
        """
        return Result(None, error, exception)

    @staticmethod
    def from_exception(exception: Exception) -> 'Result':
        return Result.fail(str(exception) or exception.__class__.__name__, exception)

    def is_success(self) -> bool:
        """
        Determine whether this result represents success or failure by checking
        for the presence of an error.
        """
        return self.__error is None

    @property
    def value(self) -> Optional[Any]:
        """
        Retrieve the value from this result, if it exists. If this result
        represents failure, this will be None.
        """
        return self.__value

    @property
    def error(self) -> Optional[str]:
        """
        Retrieve the error from this result, if it exists. If this result
        represents success, this will be None.
        """
        return self.__error

    @property
    def exception(self) -> Optional[Exception]:
        """
        Retrieve the exception from this result, if it exists. If this result
        represents success, this will be None.
        """
        return self.__exception

    def __repr__(self):
        if self.is_success():
            return "Result.success(%r)" % (self.__value,)
        return "Result.fail(%r)" % (self.__error,)
