"""Runtime settings for castkeeper."""

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_DB_PATH = Path.home() / ".castkeeper" / "castkeeper.db"

USER_AGENT = "castkeeper/1.0"


@dataclass
class Settings:
    """Settings passed explicitly to every sync operation.

    Attributes:
        download_dir: Root directory; each feed gets a subdirectory here
        timeout: Per-request timeout in seconds
        chunk_size: Bytes per write when streaming an enclosure to disk
        max_redirects: Cap on feed moves followed within a single sync
        user_agent: User-Agent header sent with every request
    """

    download_dir: Path = field(default_factory=Path.cwd)
    timeout: int = 30
    chunk_size: int = 20480
    max_redirects: int = 5
    user_agent: str = USER_AGENT
