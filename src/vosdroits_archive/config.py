"""Configuration constants for vosdroits-archive."""

import os
import re
from pathlib import Path

# Remote export with every published document plus the theme menu.
ARCHIVE_URL: str = os.environ.get(
    "VOSDROITS_ARCHIVE_URL",
    "https://lecomarquage.service-public.fr/vdd/3.4/part/zip/vosdroits-latest.zip",
)

# Entry routing, applied to basenames. The leading letter encodes the document kind.
DOCUMENT_ENTRY_PATTERN: re.Pattern[str] = re.compile(r"^[A-Z]\d+\.xml$")
HIERARCHY_ENTRY_NAME: str = "menu.xml"

# Public page for a document, completed with its id.
DOCUMENT_BASE_URL: str = "https://www.service-public.fr/particuliers/vosdroits/"

# Max statements per write call.
BATCH_LIMIT: int = 100

# Buffered documents before a flush to the store.
FLUSH_THRESHOLD: int = int(os.environ.get("VOSDROITS_FLUSH_THRESHOLD", "1000"))

# Download limits, in seconds. DOWNLOAD_TIMEOUT is wall clock for the whole body.
DOWNLOAD_TIMEOUT: float = float(os.environ.get("VOSDROITS_DOWNLOAD_TIMEOUT", "900"))
CONNECT_TIMEOUT: float = 15.0
READ_TIMEOUT: float = 60.0
DOWNLOAD_CHUNK_SIZE: int = 1 << 20

# A sync lock older than this is considered abandoned.
SYNC_LOCK_TTL: int = 3 * 3600

# Minimum seconds between two scheduled syncs (`sync --if-due`).
SYNC_INTERVAL: int = 24 * 3600

# Directory with the archive database. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/vosdroits-archive").expanduser(),
    Path("~/.vosdroits-archive").expanduser(),
]

DATABASE_FILENAME: str = "archive.db"


def resolve_data_directory() -> Path:
    """Return the archive directory.

    ``VOSDROITS_ARCHIVE_DIR`` wins, then the first existing candidate from
    DATA_DIRECTORIES, then the first candidate (created on demand by callers).
    """
    env_dir = os.environ.get("VOSDROITS_ARCHIVE_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]
