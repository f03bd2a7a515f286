"""CRC32 calculation for ROM identification."""

import zlib
from pathlib import Path
from typing import Optional

CHUNK_SIZE = 8 * 1024 * 1024  # 8MB chunks


def calculate_crc32(file_path: Path, size_limit: int = 1073741824) -> Optional[str]:
    """
    Calculate the CRC32 of a file.

    Args:
        file_path: Path to file to hash
        size_limit: Maximum file size to hash (default 1GB). Set 0 for no limit.

    Returns:
        Lowercase 8-digit hex string, or None if the file exceeds the limit

    Raises:
        OSError: If the file cannot be read
    """
    file_size = file_path.stat().st_size
    if size_limit > 0 and file_size > size_limit:
        return None

    crc = 0
    with open(file_path, 'rb') as f:
        while True:
            chunk = f.read(CHUNK_SIZE)
            if not chunk:
                break
            crc = zlib.crc32(chunk, crc)

    return f"{crc & 0xFFFFFFFF:08x}"
