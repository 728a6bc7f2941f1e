"""
Scanner Service - Single Responsibility: build the inventory of a build directory.

The inventory total is what archive progress is measured against, so the
scan always completes before archiving starts.
"""
import asyncio
import logging
import os
from pathlib import Path
from typing import Iterable, List, Set, Union

from ..errors import AccessError, NotFoundError
from ..models import DirectoryInventory, InventoryEntry

logger = logging.getLogger(__name__)


class DirectoryScanner:
    """
    Walks a directory tree and totals the size of its regular files.

    Usage:
        inventory = await DirectoryScanner().scan_async(Path("dist"))
        print(inventory.total_size_bytes, inventory.file_count)
    """

    def scan(
        self,
        root: Union[str, Path],
        exclude: Iterable[Union[str, Path]] = (),
    ) -> DirectoryInventory:
        """
        Scan `root` recursively.

        Args:
            root: Directory to scan
            exclude: Absolute paths to leave out of the inventory

        Returns:
            DirectoryInventory with entries in traversal order

        Raises:
            NotFoundError: root does not exist or is not a directory
            AccessError: an entry could not be read
        """
        root_path = Path(root)
        if not root_path.exists():
            raise NotFoundError(f"directory not found: {root_path}", root_path)
        if not root_path.is_dir():
            raise NotFoundError(f"not a directory: {root_path}", root_path)

        excluded: Set[Path] = {Path(p).resolve() for p in exclude}
        entries: List[InventoryEntry] = []
        total = self._walk(root_path, root_path, excluded, entries)

        logger.debug(
            "Scanned %s: %d entries, %d bytes",
            root_path,
            len(entries),
            total,
        )
        return DirectoryInventory(total_size_bytes=total, entries=tuple(entries))

    async def scan_async(
        self,
        root: Union[str, Path],
        exclude: Iterable[Union[str, Path]] = (),
    ) -> DirectoryInventory:
        """Scan in a worker thread so the event loop is not blocked."""
        return await asyncio.to_thread(self.scan, root, tuple(exclude))

    def _walk(
        self,
        root: Path,
        current: Path,
        excluded: Set[Path],
        entries: List[InventoryEntry],
    ) -> int:
        total = 0
        try:
            with os.scandir(current) as it:
                children = list(it)
        except PermissionError as exc:
            raise AccessError(f"cannot read directory {current}: {exc}", current) from exc
        except FileNotFoundError as exc:
            raise NotFoundError(f"directory disappeared during scan: {current}", current) from exc

        for child in children:
            child_path = Path(child.path)
            if excluded and child_path.resolve() in excluded:
                continue
            relative = child_path.relative_to(root).as_posix()

            try:
                if child.is_dir(follow_symlinks=False):
                    entries.append(InventoryEntry(relative, 0, True))
                    total += self._walk(root, child_path, excluded, entries)
                    continue

                if child.is_symlink() and child.is_dir():
                    # Directory symlinks are listed, never descended into.
                    entries.append(InventoryEntry(relative, 0, True))
                    continue

                if not child.is_file():
                    logger.warning("Skipping non-regular file %s", relative)
                    continue
                size = child.stat().st_size
            except PermissionError as exc:
                raise AccessError(f"cannot read {child_path}: {exc}", child_path) from exc
            except FileNotFoundError as exc:
                raise NotFoundError(f"entry disappeared during scan: {child_path}", child_path) from exc

            if not os.access(child_path, os.R_OK):
                raise AccessError(f"cannot read {child_path}: permission denied", child_path)

            entries.append(InventoryEntry(relative, size, False))
            total += size

        return total
