from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings

DEFAULT_INDEX_FILES = (
    "index.html",
    "index.htm",
    "default.html",
    "default.htm",
    "index.php",
)


class Settings(BaseSettings):
    # Server
    ROOT_DIRECTORY: str = "www"
    HOST: str = "0.0.0.0"
    PORT: int = 0  # 0 = pick a free port at startup
    INDEX_FILES: List[str] = list(DEFAULT_INDEX_FILES)
    CHUNK_SIZE: int = 16 * 1024
    CONCURRENT_REQUESTS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Operator console
    CONSOLE: bool = True

    class Config:
        env_prefix = "DUOSERVER_"
        env_file = ".env"
        extra = "ignore"


settings = Settings()


@dataclass(frozen=True)
class ServerConfig:
    """Immutable parameters of one server instance."""

    root_directory: Path
    port: int = 0
    index_file_names: tuple = DEFAULT_INDEX_FILES
    host: str = "0.0.0.0"
    chunk_size: int = 16 * 1024
    concurrent: bool = True

    def __post_init__(self):
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Port out of range: {self.port}")
        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive: {self.chunk_size}")
        object.__setattr__(self, "root_directory", Path(self.root_directory))
        object.__setattr__(self, "index_file_names", tuple(self.index_file_names))

    @classmethod
    def from_settings(
        cls,
        source: Settings = settings,
        root_directory: Optional[str] = None,
        port: Optional[int] = None,
        host: Optional[str] = None,
        concurrent: Optional[bool] = None,
    ) -> "ServerConfig":
        """Build a config from settings, letting explicit arguments win."""
        return cls(
            root_directory=Path(root_directory if root_directory is not None else source.ROOT_DIRECTORY),
            port=port if port is not None else source.PORT,
            index_file_names=tuple(source.INDEX_FILES),
            host=host if host is not None else source.HOST,
            chunk_size=source.CHUNK_SIZE,
            concurrent=concurrent if concurrent is not None else source.CONCURRENT_REQUESTS,
        )
