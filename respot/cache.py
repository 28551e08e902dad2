"""On-disk cache for credentials, volume and audio files with an LRU size limit."""

from __future__ import annotations

import heapq
import itertools
import logging
import os
import threading
import time
from pathlib import Path
from typing import BinaryIO, Optional, Union

from respot.authentication import Credentials
from respot.spotify_id import FileId

log = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

_COPY_CHUNK = 64 * 1024


class RemoveFileError(Exception):
    """Raised when a cached file cannot be removed."""


class SizeLimiter:
    """Tracks file sizes and access times, yielding the oldest files once over a limit."""

    def __init__(self, limit: int) -> None:
        self.size_limit = limit
        self.in_use = 0
        self._sizes: dict[Path, int] = {}
        self._entries: dict[Path, tuple[float, int]] = {}
        self._heap: list[tuple[float, int, Path]] = []
        self._counter = itertools.count()

    def _push(self, path: Path, accessed: float) -> None:
        entry = (accessed, next(self._counter))
        self._entries[path] = entry
        heapq.heappush(self._heap, (entry[0], entry[1], path))
        if len(self._heap) > 2 * len(self._entries) + 16:
            self._heap = [(t, c, p) for p, (t, c) in self._entries.items()]
            heapq.heapify(self._heap)

    def add(self, file: PathLike, size: int, accessed: float) -> None:
        """Add a file, or update its size and access time if already tracked."""
        path = Path(file)
        self.in_use += size
        self._push(path, accessed)
        old_size = self._sizes.get(path)
        self._sizes[path] = size
        if old_size is not None:
            self.in_use -= old_size

    def exceeds_limit(self) -> bool:
        return self.in_use > self.size_limit

    def pop(self) -> Optional[Path]:
        """Remove and return the least recently accessed file while over the limit."""
        if not self.exceeds_limit():
            return None
        while self._heap:
            accessed, counter, path = heapq.heappop(self._heap)
            if self._entries.get(path) == (accessed, counter):
                del self._entries[path]
                self.in_use -= self._sizes.pop(path)
                return path
        raise RuntimeError("size in use is over the limit but no files are tracked")

    def update(self, file: PathLike, access_time: float) -> bool:
        """Update the access time of a tracked file; return whether it was tracked."""
        path = Path(file)
        if path not in self._entries:
            return False
        self._push(path, access_time)
        return True

    def remove(self, file: PathLike) -> bool:
        """Stop tracking a file; return whether it was tracked."""
        path = Path(file)
        if self._entries.pop(path, None) is None:
            return False
        self.in_use -= self._sizes.pop(path)
        return True


def _access_time(stat: os.stat_result) -> float:
    for attr in ("st_atime", "st_mtime", "st_ctime"):
        value = getattr(stat, attr, None)
        if value:
            return value
    return time.time()


class FsSizeLimiter:
    """A thread-safe size limiter over a directory tree that deletes pruned files."""

    def __init__(self, path: PathLike, limit: int) -> None:
        self._lock = threading.Lock()
        self._limiter = SizeLimiter(limit)
        self._scan(Path(path))
        self._prune_with(self._limiter.pop)

    def _scan(self, path: Path) -> None:
        try:
            entries = list(os.scandir(path))
        except OSError as exc:
            log.warning("Could not read directory %s in cache dir: %s", path, exc)
            return

        for entry in entries:
            entry_path = Path(entry.path)
            try:
                if entry.is_symlink() or entry.is_dir(follow_symlinks=False):
                    self._scan(entry_path)
                elif entry.is_file(follow_symlinks=False):
                    try:
                        stat = entry_path.stat()
                    except OSError as exc:
                        log.warning("Could not read file %s in cache dir: %s", entry_path, exc)
                        continue
                    self._limiter.add(entry_path, stat.st_size, _access_time(stat))
                else:
                    log.warning("File %s in cache dir has unsupported type", entry_path)
            except OSError as exc:
                log.warning("Could not get type of file %s in cache dir: %s", entry_path, exc)

    @staticmethod
    def _prune_with(pop) -> None:
        count = 0
        first = True
        while (file := pop()) is not None:
            if first:
                log.debug("Cache dir exceeds limit, removing least recently used files.")
                first = False
            try:
                os.remove(file)
            except OSError as exc:
                log.warning("Could not remove file %s from cache dir: %s", file, exc)
            else:
                count += 1
        if count:
            log.info("Removed %d cache files.", count)

    def add(self, file: PathLike, size: int) -> None:
        with self._lock:
            self._limiter.add(file, size, time.time())

    def touch(self, file: PathLike) -> bool:
        with self._lock:
            return self._limiter.update(file, time.time())

    def remove(self, file: PathLike) -> None:
        with self._lock:
            self._limiter.remove(file)

    def prune(self) -> None:
        def pop() -> Optional[Path]:
            with self._lock:
                return self._limiter.pop()

        self._prune_with(pop)

    @property
    def in_use(self) -> int:
        with self._lock:
            return self._limiter.in_use


class Cache:
    """A cache for volume, credentials and audio files."""

    def __init__(
        self,
        credentials_path: Optional[PathLike] = None,
        volume_path: Optional[PathLike] = None,
        audio_path: Optional[PathLike] = None,
        size_limit: Optional[int] = None,
    ) -> None:
        self.credentials_location: Optional[Path] = None
        self.volume_location: Optional[Path] = None
        self.audio_location: Optional[Path] = None
        self.size_limiter: Optional[FsSizeLimiter] = None

        if credentials_path is not None:
            Path(credentials_path).mkdir(parents=True, exist_ok=True)
            self.credentials_location = Path(credentials_path) / "credentials.json"

        if volume_path is not None:
            Path(volume_path).mkdir(parents=True, exist_ok=True)
            self.volume_location = Path(volume_path) / "volume"

        if audio_path is not None:
            location = Path(audio_path)
            location.mkdir(parents=True, exist_ok=True)
            if size_limit is not None:
                self.size_limiter = FsSizeLimiter(location, size_limit)
            self.audio_location = location

    def credentials(self) -> Optional[Credentials]:
        """Return the stored credentials, or None if absent or unreadable."""
        if self.credentials_location is None:
            return None
        try:
            return Credentials.from_json(self.credentials_location.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            log.warning("Error reading credentials from cache: %s", exc)
            return None

    def save_credentials(self, cred: Credentials) -> None:
        if self.credentials_location is None:
            return
        try:
            self.credentials_location.write_text(cred.to_json(), encoding="utf-8")
        except OSError as exc:
            log.warning("Cannot save credentials to cache: %s", exc)

    def volume(self) -> Optional[int]:
        """Return the stored volume, or None if absent or unreadable."""
        if self.volume_location is None:
            return None
        try:
            contents = self.volume_location.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            log.warning("Error reading volume from cache: %s", exc)
            return None

        digits = contents[1:] if contents.startswith("+") else contents
        if not (digits.isascii() and digits.isdigit()) or int(digits) > 0xFFFF:
            log.warning("Error reading volume from cache: invalid value %r", contents)
            return None
        return int(digits)

    def save_volume(self, volume: int) -> None:
        if self.volume_location is None:
            return
        try:
            self.volume_location.write_text(str(volume), encoding="utf-8")
        except OSError as exc:
            log.warning("Cannot save volume to cache: %s", exc)

    def file_path(self, file: FileId) -> Optional[Path]:
        """Return where an audio file is stored, or None without an audio cache."""
        if self.audio_location is None:
            return None
        name = file.to_base16()
        return self.audio_location / name[:2] / name[2:]

    def file(self, file: FileId) -> Optional[BinaryIO]:
        """Open a cached audio file for reading, or return None if not cached."""
        path = self.file_path(file)
        if path is None:
            return None
        try:
            handle = open(path, "rb")
        except FileNotFoundError:
            return None
        except OSError as exc:
            log.warning("Error reading file from cache: %s", exc)
            return None
        if self.size_limiter is not None:
            self.size_limiter.touch(path)
        return handle

    def save_file(self, file: FileId, contents: Union[BinaryIO, bytes]) -> None:
        """Store an audio file and prune the cache if it grew over its limit."""
        path = self.file_path(file)
        if path is None:
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            size = 0
            with open(path, "wb") as out:
                if isinstance(contents, (bytes, bytearray, memoryview)):
                    size = out.write(contents)
                else:
                    while chunk := contents.read(_COPY_CHUNK):
                        size += out.write(chunk)
        except OSError as exc:
            log.warning("Cannot save file to cache: %s", exc)
            return

        if self.size_limiter is not None:
            self.size_limiter.add(path, size)
            self.size_limiter.prune()

    def remove_file(self, file: FileId) -> None:
        """Delete a cached audio file; raise RemoveFileError on failure."""
        path = self.file_path(file)
        if path is None:
            raise RemoveFileError("no audio cache configured")
        try:
            os.remove(path)
        except OSError as exc:
            log.warning("Unable to remove file from cache: %s", exc)
            raise RemoveFileError(str(exc)) from exc
        if self.size_limiter is not None:
            self.size_limiter.remove(path)