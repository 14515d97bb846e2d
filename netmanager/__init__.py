from .cache import Cache, FileCache, MemoryCache
from .errors import (BadURL, DataNotFound, DecodingFailed, EncodingFailed, InternalServerError, InvalidResponse,
                     NetworkError, NotFound, RequestFailed, UnknownError)
from .manager import DEFAULT_CACHE_LIMIT, NetworkManager, classify, create
from .model import ContentType, Failure, HTTPHeader, HTTPMethod, Request, Result, Success
from .transport import Transport
