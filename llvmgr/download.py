"""Fetch source archives into the cache and unpack them."""

from __future__ import annotations

import logging
import os
import tarfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Optional

import httpx

from .cache import Cache
from .errors import DownloadError, ExtractError
from .progress import TaskRef

log = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
TIMEOUT = httpx.Timeout(30.0, read=120.0)


def download(
    task: TaskRef,
    url: str,
    cache: Cache,
    expected_size: Optional[int] = None,
    client: Optional[httpx.Client] = None,
) -> Path:
    """Download ``url`` to the cache root, reusing a previous complete download.

    Progress comes from ``Content-Length`` when the server sends it and from
    ``expected_size`` otherwise (GitHub tag archives are served chunked).
    """
    task.set_subtask("downloading")

    file_name = httpx.URL(url).path.rstrip("/").rsplit("/", 1)[-1]
    if not file_name:
        raise DownloadError(f"url {url} does not name a file")

    destination = cache.ensure_root() / file_name
    if destination.exists():
        log.info("reusing %s", destination)
        return destination

    partial = destination.with_name(destination.name + ".part")
    owns_client = client is None
    http = client or httpx.Client(follow_redirects=True, timeout=TIMEOUT)
    try:
        _fetch(task, http, url, partial, expected_size)
        os.replace(partial, destination)
    except DownloadError:
        partial.unlink(missing_ok=True)
        raise
    except httpx.HTTPError as err:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"cannot download {url}") from err
    except OSError as err:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"cannot write {destination}") from err
    finally:
        if owns_client:
            http.close()

    return destination


def _fetch(task: TaskRef, http: httpx.Client, url: str, partial: Path, expected_size: Optional[int]) -> None:
    with http.stream("GET", url) as response:
        if not response.is_success:
            raise DownloadError(f"GET {url} returned HTTP {response.status_code}")

        total = _content_length(response) or expected_size
        log.debug("downloading %s (%s bytes)", url, total or "unknown size")

        received = 0
        with open(partial, "wb") as out:
            for chunk in response.iter_bytes():
                out.write(chunk)
                received += len(chunk)
                if total:
                    task.set_percentage(received / total)


def _content_length(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("content-length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        log.debug("ignoring bad Content-Length header %r", value)
        return None


def extract_archive(task: TaskRef, archive: Path, dest: Path) -> int:
    """Unpack regular files from a compressed tarball into ``dest``.

    The first path component of every entry (``llvm-16.0.1.src/``,
    ``llvm-project-llvmorg-17.0.6/``) is dropped. Returns the number of files
    written.
    """
    task.set_subtask("extracting")
    dest = Path(dest)
    try:
        dest.mkdir(parents=True, exist_ok=True)
        total = archive.stat().st_size
        with open(archive, "rb") as raw:
            return _extract_stream(task, raw, total, dest)
    except tarfile.TarError as err:
        raise ExtractError(f"{archive.name} is not a readable archive") from err
    except OSError as err:
        raise ExtractError(f"cannot extract {archive.name} to {dest}") from err


def _extract_stream(task: TaskRef, raw: BinaryIO, total: int, dest: Path) -> int:
    root = dest.resolve()
    written = 0
    # Streaming mode reads the compressed file once; progress follows the raw offset.
    with tarfile.open(fileobj=raw, mode="r|*") as tar:
        for member in tar:
            if not member.isfile():
                continue

            target = _strip_first_component(member.name, root)
            if target is None:
                continue

            source = tar.extractfile(member)
            if source is None:
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with source, open(target, "wb") as out:
                while True:
                    block = source.read(CHUNK_SIZE)
                    if not block:
                        break
                    out.write(block)
            os.chmod(target, member.mode & 0o777 or 0o644)
            written += 1

            if total:
                task.set_percentage(raw.tell() / total)
    return written


def _strip_first_component(name: str, root: Path) -> Optional[Path]:
    parts = PurePosixPath(name).parts[1:]
    if not parts:
        return None
    target = root.joinpath(*parts).resolve()
    if target != root and root not in target.parents:
        raise ExtractError(f"archive entry {name!r} escapes {root}")
    return target


def download_and_extract(
    task: TaskRef,
    url: str,
    dest: Path,
    cache: Cache,
    expected_size: Optional[int] = None,
    client: Optional[httpx.Client] = None,
) -> Path:
    archive = download(task, url, cache, expected_size=expected_size, client=client)
    count = extract_archive(task, archive, dest)
    log.info("extracted %d files from %s", count, archive.name)
    return archive
