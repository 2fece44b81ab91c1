"""
Verified downloads with retry logic and signature checking.

This module provides the download primitive used by installers:
- HTTP/HTTPS GET with TLS verification and redirects
- Size and SHA-1 computed while streaming
- Download into a temporary file, promoted to the destination only after
  the signature matches, so no corrupt file is ever left at the cache path
- Reuse of an already verified file at the destination
- Retry logic with exponential backoff for transport failures
"""

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Optional, Union

import requests
from requests.exceptions import RequestException

from sdkprovision.core.verification import (
    FileSignature,
    new_hasher,
    signature_matches,
    verify_file_signature,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


class DownloadError(Exception):
    """Exception raised when download fails."""

    pass


class TransportError(DownloadError):
    """Network failure or non-success HTTP status."""

    pass


class SignatureMismatchError(DownloadError):
    """Downloaded file does not match the expected size or digest."""

    def __init__(
        self, name: str, signature: FileSignature, actual_bytes: int, actual_sha1: str
    ):
        self.expected = signature
        self.actual_bytes = actual_bytes
        self.actual_sha1 = actual_sha1
        super().__init__(
            f"Signature mismatch for {name}: expected {signature.bytes} bytes "
            f"sha1 {signature.sha1}, got {actual_bytes} bytes sha1 {actual_sha1}"
        )


def download_file(
    url: str,
    destination: Union[str, Path],
    expected_signature: FileSignature,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    timeout: int = 30,
    max_retries: int = 3,
) -> Path:
    """
    Download file from URL to destination and verify its signature.

    Args:
        url: URL to download from
        destination: Local path to save file
        expected_signature: Expected size and SHA-1 digest
        progress_callback: Optional callback(bytes_downloaded, total_bytes)
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts for transport failures

    Returns:
        Path to downloaded file

    Raises:
        TransportError: If the request fails after retries
        SignatureMismatchError: If the file doesn't match the signature
        ValueError: If URL or destination is invalid

    Example:
        >>> sig = FileSignature(bytes=1024, sha1="abc...")
        >>> download_file("https://example.com/sdk.zip", Path("cache/sdk.zip"), sig)
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    # Reuse a previously verified download
    if destination.exists():
        logger.info(f"File exists, verifying signature: {destination}")
        if verify_file_signature(destination, expected_signature):
            logger.info("Signature verified, skipping download")
            return destination
        logger.warning("Signature mismatch on cached file, re-downloading")
        destination.unlink()

    for attempt in range(max_retries):
        try:
            return _download_verified(
                url=url,
                destination=destination,
                expected_signature=expected_signature,
                progress_callback=progress_callback,
                timeout=timeout,
            )
        except RequestException as e:
            if attempt == max_retries - 1:
                raise TransportError(
                    f"Download failed after {max_retries} attempts: {e}"
                ) from e

            # Exponential backoff
            backoff_seconds = 2**attempt
            logger.warning(
                f"Download attempt {attempt + 1} failed: {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            time.sleep(backoff_seconds)

    raise TransportError("Download failed: no attempts were made")


def _download_verified(
    url: str,
    destination: Path,
    expected_signature: FileSignature,
    progress_callback: Optional[Callable[[int, int], None]],
    timeout: int,
) -> Path:
    """
    Stream a download into a temp file, verify it, and promote it.

    Raises:
        SignatureMismatchError: If size or digest don't match
        RequestException: If HTTP request fails
    """
    logger.info(f"Downloading from {url}")

    temp_fd, temp_name = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=".part"
    )
    temp_path = Path(temp_name)

    hasher = new_hasher("sha1")
    downloaded = 0
    total = expected_signature.bytes

    try:
        with os.fdopen(temp_fd, "wb") as f, requests.get(
            url, stream=True, timeout=timeout, allow_redirects=True
        ) as response:
            response.raise_for_status()

            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if not chunk:
                    continue
                f.write(chunk)
                hasher.update(chunk)
                downloaded += len(chunk)
                if progress_callback:
                    progress_callback(downloaded, total)

        actual_sha1 = hasher.hexdigest()
        if not signature_matches(downloaded, actual_sha1, expected_signature):
            raise SignatureMismatchError(
                destination.name, expected_signature, downloaded, actual_sha1
            )

        temp_path.replace(destination)
    except BaseException:
        # Never leave a partial or corrupt file behind
        temp_path.unlink(missing_ok=True)
        raise

    logger.info(f"Download complete: {destination}")
    return destination


__all__ = [
    "DownloadError",
    "TransportError",
    "SignatureMismatchError",
    "download_file",
]
