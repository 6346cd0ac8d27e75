"""Project-wide constants (chunk layout, streaming sizes, default paths)."""

CHUNK_FILE_SUFFIX: str = ".chunk"
PARTIAL_FILE_SUFFIX: str = ".part"

STREAM_PIECE_SIZE: int = 64 * 1024  # 64 KiB read/write piece
DEFAULT_CLIENT_CHUNK_SIZE: int = 5 * 1024 * 1024  # 5 MiB per uploaded chunk

DEFAULT_UPLOAD_ROOT: str = "./ReceivedFiles"
DEFAULT_STAGING_DIRNAME: str = "temp"

DEFAULT_SERVER_PORT: int = 3000
