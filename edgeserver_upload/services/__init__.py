"""Services for edgeserver_upload."""
from .api_client import UploadClient
from .archiver import ArchiveBuilder, blake3_file
from .scanner import DirectoryScanner

__all__ = [
    "ArchiveBuilder",
    "DirectoryScanner",
    "UploadClient",
    "blake3_file",
]
