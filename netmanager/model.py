"""
Defines the types used to describe a request and to report its outcome.

These types are as simple as possible so that callers can conveniently build
requests and inspect results.
"""

from dataclasses import dataclass, field
from enum import Enum
import json
from types import MappingProxyType
from typing import Any, Generic, Mapping, Optional, TypeVar, Union
from urllib.parse import parse_qsl, urlsplit, urlunsplit

import requests

from .errors import BadURL, EncodingFailed, NetworkError
from .util import DataclassJSONEncoder, encode


T = TypeVar('T')


class HTTPMethod(Enum):
    GET = 'GET'
    POST = 'POST'
    PUT = 'PUT'
    DELETE = 'DELETE'


class ContentType(Enum):
    JSON = 'application/json'
    XML = 'application/xml'
    FORM_URL_ENCODED = 'application/x-www-form-urlencoded'


@dataclass(frozen=True, eq=False)
class HTTPHeader:
    """
    Identifies a request header.

    A header is either one of the well-known headers (`HTTPHeader.CONTENT_TYPE`, `HTTPHeader.AUTHORIZATION`) or a
    custom one. Headers compare case-insensitively but keep their display casing for the wire.
    """

    name: str
    """
    The name as it is sent on the wire. E.g., "Content-Type".
    """

    custom: bool = True

    @classmethod
    def of(cls, name: Union['HTTPHeader', str]) -> 'HTTPHeader':
        if isinstance(name, HTTPHeader):
            return name
        return _WELL_KNOWN_HEADERS.get(name.lower()) or cls(name)

    @property
    def key(self) -> str:
        return self.name.lower()

    def __eq__(self, other):
        if not isinstance(other, HTTPHeader):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def __str__(self):
        return self.name


HTTPHeader.CONTENT_TYPE = HTTPHeader('Content-Type', custom=False)
HTTPHeader.AUTHORIZATION = HTTPHeader('Authorization', custom=False)

_WELL_KNOWN_HEADERS = {
    header.key: header for header in (HTTPHeader.CONTENT_TYPE, HTTPHeader.AUTHORIZATION)
}


@dataclass(frozen=True)
class Request:
    """
    Describes one logical HTTP call.

    A request is immutable. Turning it into something the transport can send is done by `prepare()`, which depends on
    nothing but the fields below.
    """

    url: Optional[str]
    """
    The absolute URL of the endpoint. E.g., "https://api.example.com/data".
    """

    method: HTTPMethod = HTTPMethod.GET

    headers: Mapping[HTTPHeader, str] = field(default_factory=dict)
    """
    Headers to send. Plain string keys are accepted and converted to `HTTPHeader`s.
    """

    parameters: Any = None
    """
    A JSON-serializable payload, such as a mapping or a dataclass. Sent as query items for GET and as a JSON body for
    every other method.
    """

    def __post_init__(self):
        headers = {HTTPHeader.of(name): value for name, value in self.headers.items()}
        object.__setattr__(self, 'headers', MappingProxyType(headers))

    def __hash__(self):
        # `parameters` may be unhashable; equal requests still hash alike.
        return hash((self.url, self.method, frozenset(self.headers.items())))

    def prepare(self) -> requests.PreparedRequest:
        """
        Build the request the transport will send.

        @return
          A fresh prepared request.
        @throws BadURL
          If `url` is missing or is not an absolute URL.
        @throws EncodingFailed
          If `parameters` cannot be serialized, or a header value cannot be sent. For GET, the parameters must also
          serialize to a flat JSON object.
        """
        self._check_url()

        headers = {header.name: value for header, value in self.headers.items()}
        url = self.url
        params = None
        data = None
        if self.parameters is not None:
            if self.method is HTTPMethod.GET:
                url, params = self._with_query_items()
            else:
                try:
                    data = encode(self.parameters)
                except (TypeError, ValueError) as e:
                    raise EncodingFailed(e) from e

        try:
            return requests.Request(method=self.method.value,
                                    url=url,
                                    headers=headers,
                                    params=params,
                                    data=data).prepare()
        except (requests.exceptions.MissingSchema,
                requests.exceptions.InvalidSchema,
                requests.exceptions.InvalidURL) as e:
            raise BadURL(self.url) from e
        except requests.exceptions.InvalidHeader as e:
            raise EncodingFailed(e) from e

    def _check_url(self) -> None:
        if not self.url:
            raise BadURL(self.url)
        try:
            parts = urlsplit(self.url)
        except ValueError as e:
            raise BadURL(self.url) from e
        if not parts.scheme or not parts.netloc:
            raise BadURL(self.url)

    def _with_query_items(self):
        try:
            flattened = json.loads(json.dumps(self.parameters, cls=DataclassJSONEncoder))
        except (TypeError, ValueError) as e:
            raise EncodingFailed(e) from e
        if not isinstance(flattened, dict):
            raise EncodingFailed(TypeError(
                'GET parameters must serialize to a JSON object, not {}'.format(type(flattened).__name__)))

        # Strings are sent verbatim, anything else as its JSON text.
        items = [(key, value if isinstance(value, str) else json.dumps(value))
                 for key, value in flattened.items()]

        # A parameter replaces any item of the same name already in the URL.
        parts = urlsplit(self.url)
        kept = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True)
                if key not in flattened]
        return urlunsplit(parts._replace(query='')), kept + items


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def is_success(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    error: NetworkError

    @property
    def is_success(self) -> bool:
        return False

    def unwrap(self):
        raise self.error


Result = Union[Success[T], Failure]
