from abc import ABC, abstractmethod
from dataclasses import dataclass
import hashlib
import json
import logging
import os
from pathlib import Path
import shutil
import tempfile
import threading
from typing import Dict, Optional
from .util import clamp


logger = logging.getLogger(__name__)


class Cache(ABC):
    """
    An abstraction of a response cache.

    A response cache has a relatively narrow scope: to remember the body downloaded for a URL such that it can be
    recalled later. It is an opaque key/value store, so eviction policy is left to whoever uses it; the only tools it
    offers for that are `total_size()` and `clear()`.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """
        Retrieve the cached body stored under `key`.

        @param key
          The URL the body was downloaded from.
        @return
          The cached bytes, or `None` if there is no valid entry.
        """

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """
        Store `data` under `key`, replacing any existing entry.
        """

    @abstractmethod
    def total_size(self) -> int:
        """
        @return
          The number of bytes of cached bodies currently held.
        """

    @abstractmethod
    def clear(self) -> None:
        """
        Remove every entry from the cache.
        """

    def close(self):
        """
        Close any resources associated with the cache.
        """


class MemoryCache(Cache):
    def __init__(self) -> None:
        self.__entries: Dict[str, bytes] = {}
        self.__lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self.__lock:
            return self.__entries.get(key)

    def put(self, key: str, data: bytes) -> None:
        with self.__lock:
            self.__entries[key] = bytes(data)

    def total_size(self) -> int:
        with self.__lock:
            return sum(len(data) for data in self.__entries.values())

    def clear(self) -> None:
        with self.__lock:
            self.__entries.clear()

    def __len__(self) -> int:
        with self.__lock:
            return len(self.__entries)


@dataclass
class FileCacheEntryModel:
    entry_path: Path
    uri: str
    status: int
    body_path: Path


class CorruptEntry(Exception):
    def __init__(self, entry_path: Path):
        super().__init__()
        self.__entry_path = entry_path

    @property
    def entry_path(self) -> Path:
        return self.__entry_path


class FileCache(Cache):
    """
    Keeps cached bodies on the file system.

    Each entry is a small JSON file under `entries/` pointing at a body file under `bodies/`. Entry paths are derived
    from a hash of the URL; body paths are randomized so that a new body never collides with one still being read.
    """

    # Entries only ever come from successful downloads.
    STATUS = 200

    def __init__(self, directory: Path, cache_directory_levels: int) -> None:
        """
        Initialize the file cache.

        @param directory
          The path to the root directory of the cache.
        @param cache_directory_levels
          The number of subdirectory levels to use in the cache directory. This
          will be clamped to be between 0 and 20, respectively.
        """
        self.__directory = Path(directory)
        self.__entry_directory = self.__directory / 'entries'
        self.__body_directory = self.__directory / 'bodies'
        self.__cache_directory_levels = clamp(cache_directory_levels, 0, 20)

    def _get_path(self, uri: str) -> Path:
        hashed = hashlib.sha256(uri.encode('utf-8')).hexdigest()
        return self._split_path(hashed)

    def _split_path(self, path: str) -> Path:
        subdirectories = (list(path[:self.__cache_directory_levels])
                          + [path[self.__cache_directory_levels:]])
        subdirectory = Path(*subdirectories)
        return subdirectory

    def _load_entry(self, uri: str) -> FileCacheEntryModel:
        """
        Read a cache entry from a file.

        @param uri
            The URL for which a matching cache entry is desired. The path to the cache entry will be deduced from it.
        @return
            The decoded contents of the entry file.
        @throws FileNotFoundError
            If there is no entry file for `uri`.
        @throws CorruptEntry
            If the entry file could not be parsed, or belongs to another URL.
        """
        entry_path = self.__entry_directory / self._get_path(uri)
        try:
            with open(entry_path, 'r') as f:
                entry = json.load(f)
            model = FileCacheEntryModel(entry_path=entry_path,
                                        uri=entry['uri'],
                                        status=entry['status'],
                                        body_path=self.__body_directory / Path(entry['body']))
        except (KeyError, TypeError, json.JSONDecodeError):
            raise CorruptEntry(entry_path)
        if model.uri != uri or model.status != self.STATUS:
            raise CorruptEntry(entry_path)
        return model

    def get(self, key: str) -> Optional[bytes]:
        try:
            logger.info('Looking at the file system for a cache entry matching {}'.format(key))
            entry_model = self._load_entry(key)
        except CorruptEntry as e:
            logger.warning('Found a corrupt cache entry. Deleting the entry file.')
            self._unlink(e.entry_path)
            return None
        except FileNotFoundError:
            logger.info('No matching cache entry found.')
            return None

        try:
            with open(entry_model.body_path, 'rb') as f:
                data = f.read()
        except FileNotFoundError:
            logger.warning('The cache entry points to a missing body file. Deleting the entry file.')
            self._unlink(entry_model.entry_path)
            return None

        logger.info('Loaded entry file and body. Returning the cached body')
        return data

    def put(self, key: str, data: bytes) -> None:
        logger.info('Building path to the entry file.')
        entry_path = self.__entry_directory / self._get_path(key)

        try:
            previous_body_path = self._load_entry(key).body_path
        except (CorruptEntry, FileNotFoundError):
            previous_body_path = None

        logger.info('Building randomized path to the body file.')
        body_path = self.__body_directory / self._split_path(os.urandom(32).hex())

        serialized = {
            'uri': key,
            'status': self.STATUS,
            'body': str(body_path.relative_to(self.__body_directory)),
        }

        # The body is written to a temporary file first so that a reader never sees a partial body.
        with tempfile.NamedTemporaryFile(mode='wb', delete=False) as temp_body_file:
            temp_body_file.write(data)

        logger.info('Moving temporary body file into permanent location')
        body_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(temp_body_file.name, str(body_path))

        logger.info('Creating entry file that points to the permanent body file')
        entry_path.parent.mkdir(parents=True, exist_ok=True)
        # Written beside the entry and swapped in, so a reader sees either the old entry or the new one.
        with tempfile.NamedTemporaryFile(mode='w', dir=str(entry_path.parent), prefix='.', delete=False) as f:
            temp_entry_path = Path(f.name)
            try:
                json.dump(serialized, f)
            except Exception:
                f.close()
                self._unlink(temp_entry_path)
                raise
        os.replace(str(temp_entry_path), str(entry_path))

        if previous_body_path is not None and previous_body_path != body_path:
            logger.info('Deleting the body file of the replaced entry.')
            self._unlink(previous_body_path)

    def total_size(self) -> int:
        if not self.__body_directory.exists():
            return 0
        return sum(self._size(path) for path in self.__body_directory.rglob('*'))

    def _size(self, path: Path) -> int:
        try:
            return path.stat().st_size if path.is_file() else 0
        except FileNotFoundError:
            # Removed by a concurrent clear() or put().
            return 0

    def clear(self) -> None:
        logger.info('Clearing every entry from {}'.format(self.__directory))
        for directory in (self.__entry_directory, self.__body_directory):
            shutil.rmtree(directory, ignore_errors=True)

    def _unlink(self, path: Path) -> None:
        try:
            logger.info('Deleting {}'.format(path))
            path.unlink()
        except FileNotFoundError:
            pass
        except Exception:
            logger.exception('Unexpected error occurred while deleting {}'.format(path))
