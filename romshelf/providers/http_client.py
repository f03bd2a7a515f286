"""
HTTP client factory and file downloads for providers

One httpx.AsyncClient is shared by all HTTP providers in a run.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from romshelf import __version__
from romshelf.providers.errors import NetworkError, ProviderIOError

logger = logging.getLogger(__name__)

USER_AGENT = f"romshelf/{__version__}"


def create_client(config: dict) -> httpx.AsyncClient:
    """
    Create httpx async client with connection pooling

    Args:
        config: Configuration dictionary (reads the 'api' section)

    Returns:
        Configured httpx.AsyncClient
    """
    api_config = config.get('api', {})
    timeout = api_config.get('request_timeout', 30)
    max_connections = api_config.get('max_connections', 4)

    limits = httpx.Limits(
        max_connections=max_connections,
        max_keepalive_connections=max_connections,
        keepalive_expiry=90.0,
    )

    timeout_config = httpx.Timeout(
        connect=10.0,
        read=timeout,
        write=10.0,
        pool=10.0,
    )

    # No transport retries: rate limits are handled by the backoff registry
    transport = httpx.AsyncHTTPTransport(limits=limits, retries=0)

    client = httpx.AsyncClient(
        timeout=timeout_config,
        transport=transport,
        follow_redirects=True,
        headers={'User-Agent': USER_AGENT},
    )

    logger.debug(
        f"HTTP client: max_connections={max_connections}, timeout={timeout}s"
    )
    return client


async def download_to_file(
    client: httpx.AsyncClient,
    url: str,
    destination: Path,
    params: Optional[Dict[str, Any]] = None
) -> int:
    """
    Download a URL to a file atomically.

    The body is written to '<destination>.tmp' and renamed into place only
    once complete, so an interrupted download never leaves a partial file.

    Args:
        client: Shared HTTP client
        url: URL to fetch
        destination: Final file path
        params: Optional extra query parameters

    Returns:
        Number of bytes written

    Raises:
        NetworkError: If the request fails or returns a non-2xx status
        ProviderIOError: If the file cannot be written
    """
    temp_path = destination.with_suffix(destination.suffix + '.tmp')
    written = 0
    try:
        async with client.stream('GET', url, params=params) as response:
            response.raise_for_status()
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, 'wb') as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
                    written += len(chunk)
        temp_path.replace(destination)
    except httpx.HTTPStatusError as e:
        _discard(temp_path)
        raise NetworkError(f"Download failed with HTTP {e.response.status_code}: {url}")
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        _discard(temp_path)
        raise NetworkError(f"Download failed: {e}")
    except OSError as e:
        _discard(temp_path)
        raise ProviderIOError(f"Failed to save {destination}: {e}")

    logger.debug(f"Downloaded {written} bytes to {destination}")
    return written


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove partial download {path}: {e}")
