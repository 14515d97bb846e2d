from io import BytesIO
import logging
from pathlib import Path
from typing import Optional, Type, TypeVar

from PIL import Image, UnidentifiedImageError
import requests

from .cache import Cache, FileCache
from .errors import (DataNotFound, DecodingFailed, InternalServerError, InvalidResponse, NetworkError, NotFound,
                     RequestFailed, UnknownError)
from .model import Failure, Request, Result, Success
from .transport import Transport
from . import util


logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_CACHE_LIMIT = 100 * 1024 * 1024

# Failures raised by the transport itself, as opposed to a response it classified.
TRANSPORT_ERRORS = (requests.RequestException, OSError)


def classify(response) -> None:
    """
    Check the status of a transport response.

    @throws InvalidResponse
      If there is no response, or it has no HTTP status code.
    @throws NotFound
    @throws InternalServerError
    @throws UnknownError
      For any status outside of 2xx other than 404 and 500.
    """
    status = getattr(response, 'status_code', None)
    if not isinstance(status, int) or isinstance(status, bool):
        raise InvalidResponse()
    if 200 <= status <= 299:
        return
    if status == 404:
        raise NotFound()
    if status == 500:
        raise InternalServerError()
    raise UnknownError(status)


def decode_image(data: bytes) -> Image.Image:
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodingFailed(e) from e
    return image


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


class NetworkManager:
    """
    Executes `Request`s and maps every outcome into a `Result`.

    Each operation comes in two flavours over the same pipeline: one returns a `Success` or `Failure`, the `_or_raise`
    one returns the bare value or raises the `NetworkError`. A manager keeps no per-call state and may be shared.
    """

    def __init__(self, transport: Transport, cache: Optional[Cache] = None,
                 cache_limit: int = DEFAULT_CACHE_LIMIT) -> None:
        self.transport = transport
        self.cache = cache
        self.cache_limit = cache_limit

    def perform(self, request: Request, decode_to: Type[T]) -> Result[T]:
        return self._execute(request, decode_to)

    def perform_or_raise(self, request: Request, decode_to: Type[T]) -> T:
        return self._execute(request, decode_to).unwrap()

    def send(self, request: Request) -> Result[None]:
        return self._execute(request, None)

    def send_or_raise(self, request: Request) -> None:
        self._execute(request, None).unwrap()

    def download_file(self, url: str) -> Result[Path]:
        try:
            return Success(self._download(url))
        except NetworkError as e:
            return Failure(e)

    def download_file_or_raise(self, url: str) -> Path:
        return self.download_file(url).unwrap()

    def fetch_image(self, url: str, cache_enabled: bool = True) -> Result[Image.Image]:
        """
        Fetch the image at `url`, answering from the cache when possible.

        A cached entry that does not decode is a failure; it does not trigger a download. When the cache is used, a
        freshly downloaded image is stored and the whole cache is cleared if that pushes it over `cache_limit`.
        """
        use_cache = cache_enabled and self.cache is not None
        try:
            if use_cache:
                try:
                    return Success(self._cached_image(url))
                except DataNotFound:
                    logger.info('No cached image for {}. Falling through to the network.'.format(url))

            path = self._download(url)
            data = self._read_download(path)
            image = decode_image(data)

            if use_cache:
                self._cache_image(url, data)
            return Success(image)
        except NetworkError as e:
            logger.warning('Fetching image {} failed: {!r}'.format(url, e))
            return Failure(e)

    def fetch_image_or_raise(self, url: str, cache_enabled: bool = True) -> Image.Image:
        return self.fetch_image(url, cache_enabled).unwrap()

    def close(self):
        self.transport.close()
        if self.cache is not None:
            self.cache.close()

    def _execute(self, request: Request, decode_to: Optional[Type[T]]) -> Result[T]:
        try:
            prepared = request.prepare()
            try:
                response = self.transport.send(prepared)
            except TRANSPORT_ERRORS as e:
                raise RequestFailed(e) from e
            classify(response)

            if decode_to is None:
                return Success(None)
            try:
                return Success(util.decode(response.content, decode_to))
            except (ValueError, TypeError) as e:
                raise DecodingFailed(e) from e
        except NetworkError as e:
            logger.warning('{} {} failed: {!r}'.format(request.method.value, request.url, e))
            return Failure(e)

    def _download(self, url: str) -> Path:
        try:
            path, response = self.transport.download(url)
        except TRANSPORT_ERRORS as e:
            raise RequestFailed(e) from e
        try:
            classify(response)
        except NetworkError:
            _discard(path)
            raise
        return path

    def _read_download(self, path: Path) -> bytes:
        try:
            with open(path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise DataNotFound(str(path)) from e
        finally:
            _discard(path)

    def _cached_image(self, url: str) -> Image.Image:
        """
        @throws DataNotFound
          If the cache holds nothing for `url`, or could not be read.
        @throws DecodingFailed
          If the cached bytes are not an image.
        """
        try:
            data = self.cache.get(url)
        except OSError as e:
            logger.warning('Could not read the cache entry for {}: {!r}'.format(url, e))
            raise DataNotFound(url) from e
        if data is None:
            raise DataNotFound(url)
        logger.info('Serving {} from the cache.'.format(url))
        return decode_image(data)

    def _cache_image(self, url: str, data: bytes) -> None:
        # Storing is best effort; the downloaded image is returned either way.
        try:
            self.cache.put(url, data)
            size = self.cache.total_size()
            if size > self.cache_limit:
                logger.info('Cache size {} exceeds the limit of {}. Clearing the cache.'.format(size, self.cache_limit))
                self.cache.clear()
        except OSError:
            logger.exception('Could not store {} in the cache'.format(url))


def create(directory: Path, cache_limit: int = DEFAULT_CACHE_LIMIT, cache_directory_levels: int = 5) -> NetworkManager:
    return NetworkManager(Transport(), FileCache(directory, cache_directory_levels), cache_limit)
