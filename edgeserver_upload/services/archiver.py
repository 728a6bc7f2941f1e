"""
Archive Service - Single Responsibility: stream a build directory into one zip.

Files are copied chunk by chunk into open zip member streams, so memory use
is bounded by the chunk size regardless of how large the build output is.
"""
import asyncio
import logging
import os
import zipfile
from contextlib import aclosing
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Callable, List, Optional, Union

from blake3 import blake3

from ..errors import AccessError, ArchiveError, FilesystemError, NotFoundError
from ..models import ArchiveJob, ArchiveProgress, ArchiveResult
from ..utils.events import FINALIZE, PROGRESS, EventEmitter

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


async def blake3_file(path: Path) -> str:
    """Calculate BLAKE3 hash of file asynchronously (non-blocking)."""
    def _hash_file():
        hasher = blake3()
        with open(path, 'rb') as f:
            while True:
                chunk = f.read(DEFAULT_CHUNK_SIZE)
                if not chunk:
                    break
                hasher.update(chunk)
        return hasher.hexdigest()

    return await asyncio.to_thread(_hash_file)


class ArchiveBuilder:
    """
    Builds the deployment zip with progress events.

    Usage:
        builder = ArchiveBuilder()
        builder.on_progress(lambda p: print(f"{p.percent}%"))
        result = await builder.build(Path("dist"), Path("edgeserver_dist.zip"), total)

    `build` returns only after the archive is finalized and the file handle
    is closed, so `result.size_bytes` is the final on-disk size.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        compression: int = zipfile.ZIP_DEFLATED,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._chunk_size = chunk_size
        self._compression = compression
        self._events = EventEmitter()

    def on_progress(self, callback: Callable[[ArchiveProgress], None]):
        """Called after each committed chunk. Receives ArchiveProgress."""
        self._events.on(PROGRESS, callback)

    def on_finalize(self, callback: Callable[[ArchiveResult], None]):
        """Called once the archive is closed. Receives ArchiveResult."""
        self._events.on(FINALIZE, callback)

    async def build(
        self,
        source_directory: Union[str, Path],
        destination_path: Union[str, Path],
        total_bytes: int,
        on_progress: Optional[Callable[[ArchiveProgress], None]] = None,
    ) -> ArchiveResult:
        """
        Archive every file under `source_directory` into `destination_path`.

        Args:
            source_directory: Directory whose contents are archived
            destination_path: Zip file to create (overwritten)
            total_bytes: Inventory total used for percentages
            on_progress: Optional extra progress listener for this build

        Returns:
            ArchiveResult describing the closed archive

        Raises:
            FilesystemError: source missing or a file vanished mid-read
            ArchiveError: destination could not be created or written
        """
        job = ArchiveJob(
            source_directory=Path(source_directory),
            destination_path=Path(destination_path),
            total_bytes=total_bytes,
        )

        if on_progress is not None:
            self._events.on(PROGRESS, on_progress)
        try:
            async for progress in self.stream(job):
                await self._events.emit(PROGRESS, progress)
        finally:
            if on_progress is not None:
                self._events.off(PROGRESS, on_progress)

        try:
            size_bytes = job.destination_path.stat().st_size
            digest = await blake3_file(job.destination_path)
        except OSError as exc:
            raise ArchiveError(
                f"archive missing after finalize: {job.destination_path}: {exc}",
                job.destination_path,
            ) from exc

        result = ArchiveResult(
            path=job.destination_path,
            size_bytes=size_bytes,
            file_count=job.files_written,
            processed_bytes=job.processed_bytes,
            blake3_hash=digest,
        )
        logger.info(
            "Archive %s finalized: %d files, %d bytes in, %d bytes out, blake3 %s",
            result.path,
            result.file_count,
            result.processed_bytes,
            result.size_bytes,
            result.blake3_hash,
        )
        await self._events.emit(FINALIZE, result)
        return result

    async def stream(self, job: ArchiveJob) -> AsyncIterator[ArchiveProgress]:
        """
        Write the archive for `job`, yielding one ArchiveProgress per chunk.

        The generator is exhausted only after the zip central directory is
        written and the file is closed; `job.finalized` is then True. A source
        with no bytes yields a single 100% event after finalizing.
        """
        source = job.source_directory
        if not source.is_dir():
            raise NotFoundError(f"directory not found: {source}", source)

        files = await asyncio.to_thread(self._collect_files, source, job.destination_path)
        emitted = False

        archive = await self._open_archive(job.destination_path)
        try:
            for path in files:
                arcname = self._arcname(path, source)
                chunks = self._copy_member(archive, path, arcname, job.destination_path)
                async with aclosing(chunks):
                    async for count in chunks:
                        job.advance(count)
                        emitted = True
                        yield ArchiveProgress.from_job(job)
                job.files_written += 1
                logger.debug("Added %s", arcname)
        finally:
            await self._close_archive(archive, job.destination_path)

        job.finalize()
        if not emitted or job.total_bytes == 0:
            yield ArchiveProgress.from_job(job)

    @staticmethod
    def _arcname(path: Path, source: Path) -> str:
        arcname = path.relative_to(source).as_posix()
        try:
            arcname.encode("utf-8")
        except UnicodeEncodeError as exc:
            shown = os.fsencode(path).decode("utf-8", "backslashreplace")
            raise FilesystemError(f"cannot archive {shown}: name is not valid UTF-8", path) from exc
        return arcname

    @staticmethod
    def _collect_files(source: Path, destination: Path) -> List[Path]:
        destination = destination.resolve()
        files = []
        for item in source.rglob("*"):
            if item.is_file() and item.resolve() != destination:
                files.append(item)
        return sorted(files)

    async def _open_archive(self, destination: Path) -> zipfile.ZipFile:
        def _open():
            return zipfile.ZipFile(destination, "w", compression=self._compression)

        try:
            return await asyncio.to_thread(_open)
        except OSError as exc:
            raise ArchiveError(f"cannot create archive {destination}: {exc}", destination) from exc

    @staticmethod
    async def _close_archive(archive: zipfile.ZipFile, destination: Path) -> None:
        try:
            await asyncio.to_thread(archive.close)
        except OSError as exc:
            raise ArchiveError(f"cannot finalize archive {destination}: {exc}", destination) from exc

    async def _copy_member(
        self,
        archive: zipfile.ZipFile,
        path: Path,
        arcname: str,
        destination: Path,
    ) -> AsyncIterator[int]:
        """Copy one file into the archive, yielding the size of each chunk."""
        try:
            src = await asyncio.to_thread(open, path, "rb")
        except FileNotFoundError as exc:
            raise NotFoundError(f"file disappeared before archiving: {path}", path) from exc
        except PermissionError as exc:
            raise AccessError(f"cannot read {path}: {exc}", path) from exc
        except OSError as exc:
            raise FilesystemError(f"cannot open {path}: {exc}", path) from exc

        try:
            try:
                zinfo = zipfile.ZipInfo.from_file(path, arcname, strict_timestamps=False)
            except OSError as exc:
                raise NotFoundError(f"file disappeared while archiving: {path}", path) from exc
            zinfo.compress_type = self._compression
            try:
                dst = await asyncio.to_thread(archive.open, zinfo, "w", force_zip64=True)
            except OSError as exc:
                raise ArchiveError(f"cannot write {arcname} to {destination}: {exc}", destination) from exc

            try:
                while True:
                    count = await asyncio.to_thread(self._pump, src, dst, path, destination)
                    if not count:
                        break
                    yield count
            finally:
                try:
                    await asyncio.to_thread(dst.close)
                except OSError as exc:
                    raise ArchiveError(f"cannot write {arcname} to {destination}: {exc}", destination) from exc
        finally:
            src.close()

    def _pump(self, src: BinaryIO, dst: BinaryIO, path: Path, destination: Path) -> int:
        try:
            chunk = src.read(self._chunk_size)
        except OSError as exc:
            raise FilesystemError(f"read failed for {path}: {exc}", path) from exc
        if not chunk:
            return 0
        try:
            dst.write(chunk)
        except OSError as exc:
            raise ArchiveError(f"write failed for {destination}: {exc}", destination) from exc
        return len(chunk)
