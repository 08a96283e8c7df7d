"""Read-only views over an ODB++ archive.

Every view exposes the same three calls: is_directory(), list_paths() and
read_bytes(). Paths are '/'-separated and relative to the archive root;
directory entries carry a trailing '/'. The parsers only ever talk to this
interface, so a zip in memory, a .tgz on disk and an extracted directory
all look the same.
"""

import logging
import os
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Protocol, Union

from .errors import NotFound

log = logging.getLogger(__name__)


class ArchiveView(Protocol):
    def is_directory(self, path: str) -> bool: ...

    def list_paths(self) -> List[str]: ...

    def read_bytes(self, path: str) -> bytes: ...


def normalize_path(path: str) -> str:
    """Use '/' separators and drop any leading './' or '/'."""
    p = path.replace("\\", "/")
    while p.startswith("./"):
        p = p[2:]
    return p.lstrip("/")


class MemoryArchive:
    """Archive held in a dict of path -> bytes.

    Paths ending in '/' (or listed in `directories`) are directories.
    Insertion order is the enumeration order.
    """

    def __init__(self, files: Dict[str, Union[bytes, str]] = None,
                 directories: Iterable[str] = ()):
        self._files = {}
        self._dirs = set()
        for d in directories:
            self.add_directory(d)
        for path, data in (files or {}).items():
            if path.endswith("/"):
                self.add_directory(path)
            else:
                self.add_file(path, data)

    def add_file(self, path: str, data: Union[bytes, str]):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._files[normalize_path(path)] = data

    def add_directory(self, path: str):
        p = normalize_path(path)
        if not p.endswith("/"):
            p += "/"
        self._dirs.add(p)
        self._files.setdefault(p, None)

    def is_directory(self, path: str) -> bool:
        p = normalize_path(path)
        return p.endswith("/") or p in self._dirs or (p + "/") in self._dirs

    def list_paths(self) -> List[str]:
        return list(self._files)

    def read_bytes(self, path: str) -> bytes:
        data = self._files.get(normalize_path(path))
        if data is None:
            raise NotFound(path)
        return data


class ZipArchive(MemoryArchive):
    """Zip file loaded into memory."""

    def __init__(self, source):
        super().__init__()
        with zipfile.ZipFile(source, "r") as zf:
            for info in zf.infolist():
                if info.is_dir():
                    self.add_directory(info.filename)
                else:
                    self.add_file(info.filename, zf.read(info))
        log.info("Loaded zip archive: %d entries", len(self._files))


class TarArchive(MemoryArchive):
    """Tar (optionally gzip'd) file loaded into memory."""

    def __init__(self, source: Path):
        super().__init__()
        with tarfile.open(source, "r:*") as tf:
            for member in tf.getmembers():
                if member.isdir():
                    self.add_directory(member.name)
                elif member.isfile():
                    fh = tf.extractfile(member)
                    if fh is not None:
                        self.add_file(member.name, fh.read())
        log.info("Loaded tar archive: %d entries", len(self._files))


class DirectoryArchive:
    """Extracted archive on disk, read lazily."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._paths = None

    def _walk(self) -> List[str]:
        if self._paths is None:
            paths = []
            for dirpath, dirnames, filenames in os.walk(self.root):
                dirnames.sort()
                rel = Path(dirpath).relative_to(self.root).as_posix()
                prefix = "" if rel == "." else rel + "/"
                if prefix:
                    paths.append(prefix)
                for name in sorted(filenames):
                    paths.append(prefix + name)
            self._paths = paths
        return self._paths

    def is_directory(self, path: str) -> bool:
        return (self.root / normalize_path(path)).is_dir()

    def list_paths(self) -> List[str]:
        return list(self._walk())

    def read_bytes(self, path: str) -> bytes:
        target = self.root / normalize_path(path)
        if not target.is_file():
            raise NotFound(path)
        return target.read_bytes()


def open_archive(path) -> ArchiveView:
    """Open an ODB++ archive (.tgz/.tar.gz/.tar, .zip) or extracted directory.

    Raises NotFound for a missing path and ValueError for an unsupported
    or unreadable archive.
    """
    path = Path(path)
    if path.is_dir():
        return DirectoryArchive(path)
    if not path.exists():
        raise NotFound(str(path))

    try:
        if path.suffixes[-2:] == [".tar", ".gz"] or path.suffix in (".tgz", ".tar"):
            return TarArchive(path)
        if path.suffix == ".zip":
            return ZipArchive(path)
    except (tarfile.TarError, zipfile.BadZipFile) as e:
        raise ValueError(f"Cannot read archive {path}: {e}") from e
    raise ValueError(f"Unsupported archive format: {path}")
