"""
The closed set of failures a `NetworkManager` call can end in.

Every failure is classified where it is detected and reaches the caller unchanged, either raised or wrapped in a
`Failure`.
"""

from typing import Optional


class NetworkError(Exception):
    """
    Base class of every failure surfaced by this package.
    """

    def __eq__(self, other):
        return type(self) is type(other) and self.args == other.args

    def __hash__(self):
        return hash((type(self), self.args))


class BadURL(NetworkError):
    """
    The request's URL is missing or is not an absolute URL.
    """

    def __init__(self, url: Optional[str] = None) -> None:
        super().__init__(url)
        self.__url = url

    @property
    def url(self) -> Optional[str]:
        return self.__url


class RequestFailed(NetworkError):
    """
    The transport could not complete the call (connectivity, timeout, etc.).
    """

    def __init__(self, cause: Exception) -> None:
        super().__init__(cause)
        self.__cause = cause

    @property
    def cause(self) -> Exception:
        return self.__cause


class InvalidResponse(NetworkError):
    """
    The transport gave back no response, or one without an HTTP status code.
    """


class DataNotFound(NetworkError):
    """
    Payload bytes that were expected are absent.
    """

    def __init__(self, key: Optional[str] = None) -> None:
        super().__init__(key)
        self.__key = key

    @property
    def key(self) -> Optional[str]:
        return self.__key


class DecodingFailed(NetworkError):
    def __init__(self, cause: Exception) -> None:
        super().__init__(cause)
        self.__cause = cause

    @property
    def cause(self) -> Exception:
        return self.__cause


class EncodingFailed(NetworkError):
    def __init__(self, cause: Exception) -> None:
        super().__init__(cause)
        self.__cause = cause

    @property
    def cause(self) -> Exception:
        return self.__cause


class NotFound(NetworkError):
    """
    HTTP 404.
    """


class InternalServerError(NetworkError):
    """
    HTTP 500.
    """


class UnknownError(NetworkError):
    """
    Any other status code outside of 2xx.
    """

    def __init__(self, status_code: int) -> None:
        super().__init__(status_code)
        self.__status_code = status_code

    @property
    def status_code(self) -> int:
        return self.__status_code
