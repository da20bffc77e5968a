import bisect
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, unquote

import aiofiles
import aiofiles.os

from .errors import not_found
from .ibucket import Attributes, BlobReader, BlobWriter, IBucket, ListObject, ListPage

logger = logging.getLogger(__name__)

# Marks object files. quote() never emits a bare '%', so no directory can end with it.
_OBJECT_SUFFIX = "%"
# Stands for an empty name segment ("a//b", or the leading '/' of "/a").
_EMPTY_SEGMENT = "%"
_TEMP_PREFIX = ".tmp-"


def _escape_segment(segment: str) -> str:
    escaped = quote(segment, safe="")
    if not escaped:
        return _EMPTY_SEGMENT
    # Leading dots are reserved for temp files and would allow "." / "..".
    if escaped.startswith("."):
        escaped = "%2E" + escaped[1:]
    return escaped


def _unescape_segment(segment: str) -> str:
    if segment == _EMPTY_SEGMENT:
        return ""
    return unquote(segment)


class LocalFileReader(BlobReader):
    def __init__(self, handle):
        self._handle = handle

    async def read(self, n: int = -1) -> bytes:
        return await self._handle.read(n)

    async def close(self):
        await self._handle.close()


class LocalFileWriter(BlobWriter):
    """Writes to a temp file in the bucket root and renames it into place on close."""

    def __init__(self, handle, temp_path: Path, final_path: Path):
        self._handle = handle
        self._temp_path = temp_path
        self._final_path = final_path

    async def write(self, data: bytes) -> int:
        return await self._handle.write(data)

    async def close(self):
        await self._handle.close()
        try:
            await aiofiles.os.makedirs(self._final_path.parent, exist_ok=True)
            await aiofiles.os.replace(self._temp_path, self._final_path)
            logger.debug(f"Committed {self._final_path}")
        except Exception as e:
            logger.error(f"Error committing {self._final_path}: {e}")
            await self._remove_temp()
            raise

    async def abort(self):
        await self._handle.close()
        await self._remove_temp()

    async def _remove_temp(self):
        if await aiofiles.os.path.exists(self._temp_path):
            await aiofiles.os.remove(self._temp_path)


class LocalFileBucket(IBucket):
    """
    Bucket stored in a local directory.

    Every object is one file. Name segments separated by '/' become nested
    directories; segments are percent-escaped so any object name maps to a
    safe path inside the root, and object files carry a trailing '%' so that
    "a" and "a/b" can coexist.
    """

    def __init__(self, root_path: str, create_dir: bool = True):
        self.root_path = Path(root_path).resolve()
        if create_dir:
            os.makedirs(self.root_path, exist_ok=True)
        elif not self.root_path.is_dir():
            raise FileNotFoundError(f"Bucket directory does not exist: {self.root_path}")
        logger.info(f"Initialized LocalFileBucket with root: {self.root_path}")

    def _path_for_name(self, name: str) -> Path:
        segments = name.split("/")
        parts = [_escape_segment(s) for s in segments[:-1]]
        parts.append(_escape_segment(segments[-1]) + _OBJECT_SUFFIX)
        return self.root_path.joinpath(*parts)

    def _name_for_path(self, relative_parts: List[str]) -> str:
        segments = [_unescape_segment(p) for p in relative_parts[:-1]]
        segments.append(_unescape_segment(relative_parts[-1][: -len(_OBJECT_SUFFIX)]))
        return "/".join(segments)

    async def attributes(self, name: str) -> Attributes:
        path = self._path_for_name(name)
        try:
            st = await aiofiles.os.stat(path)
        except FileNotFoundError:
            raise not_found(name)
        return Attributes(
            size=st.st_size,
            mod_time=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            etag=f"{st.st_mtime_ns:x}-{st.st_size:x}",
        )

    async def exists(self, name: str) -> bool:
        exists = await aiofiles.os.path.isfile(self._path_for_name(name))
        logger.debug(f"Checked existence for {name}: {exists}")
        return exists

    async def new_reader(self, name: str) -> BlobReader:
        path = self._path_for_name(name)
        try:
            handle = await aiofiles.open(path, mode="rb")
        except FileNotFoundError:
            logger.debug(f"Object not found: {path}")
            raise not_found(name)
        return LocalFileReader(handle)

    async def new_writer(self, name: str) -> BlobWriter:
        final_path = self._path_for_name(name)
        temp_path = self.root_path / f"{_TEMP_PREFIX}{uuid.uuid4().hex}"
        handle = await aiofiles.open(temp_path, mode="wb")
        return LocalFileWriter(handle, temp_path, final_path)

    async def delete(self, name: str):
        path = self._path_for_name(name)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            raise not_found(name)
        logger.debug(f"Deleted file: {path}")

    async def _walk(self, directory: Path, parts: List[str], names: List[str]):
        try:
            entries = await aiofiles.os.listdir(directory)
        except FileNotFoundError:
            return
        for entry in entries:
            if entry.startswith("."):
                continue
            entry_path = directory / entry
            if await aiofiles.os.path.isdir(entry_path):
                await self._walk(entry_path, parts + [entry], names)
            elif entry.endswith(_OBJECT_SUFFIX):
                names.append(self._name_for_path(parts + [entry]))

    async def list_page(
        self, prefix: str, page_size: int, page_token: Optional[str] = None
    ) -> ListPage:
        names: List[str] = []
        try:
            await self._walk(self.root_path, [], names)
        except Exception as e:
            logger.error(f"Error listing objects under prefix '{prefix}' in {self.root_path}: {e}")
            raise
        names = sorted(n for n in names if n.startswith(prefix))
        start = bisect.bisect_right(names, page_token) if page_token else 0
        selected = names[start:start + page_size]

        objects = []
        for name in selected:
            try:
                st = await aiofiles.os.stat(self._path_for_name(name))
            except FileNotFoundError:
                # Deleted between the walk and the stat.
                continue
            objects.append(
                ListObject(
                    key=name,
                    size=st.st_size,
                    mod_time=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                )
            )
        next_token = selected[-1] if start + page_size < len(names) else None
        logger.debug(f"Listed {len(objects)} objects under prefix '{prefix}' in {self.root_path}")
        return ListPage(objects=objects, next_page_token=next_token)
