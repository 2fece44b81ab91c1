"""
Signature verification for downloaded SDK archives.

A signature is the expected {size, SHA-1 digest} pair published alongside an
SDK archive. Verification is pass/fail: the size is checked first, then the
digest, using a constant-time comparison.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192

_HASH_LENGTHS = {
    "md5": 32,
    "sha1": 40,
    "sha256": 64,
    "sha512": 128,
}


@dataclass(frozen=True)
class FileSignature:
    """
    Expected properties of a downloaded file.

    Attributes:
        bytes: Expected size in bytes
        sha1: Expected SHA-1 digest (hex string)
    """

    bytes: int
    sha1: str


def new_hasher(algorithm: str = "sha1"):
    """
    Create a hashlib object for a supported algorithm.

    Raises:
        ValueError: If algorithm is not supported
    """
    algorithm = algorithm.lower()
    if algorithm not in _HASH_LENGTHS:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")
    return hashlib.new(algorithm)


def compute_file_hash(file_path: Path, algorithm: str = "sha1") -> str:
    """
    Compute cryptographic hash of file.

    Args:
        file_path: Path to file
        algorithm: Hash algorithm ('sha1', 'sha256', 'sha512', 'md5')

    Returns:
        Hex string of hash

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If algorithm is not supported
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    hasher = new_hasher(algorithm)

    with open(file_path, "rb") as f:
        while chunk := f.read(CHUNK_SIZE):
            hasher.update(chunk)

    return hasher.hexdigest()


def digests_match(actual: str, expected: str) -> bool:
    """Case-insensitive, constant-time comparison of two hex digests."""
    a = actual.strip().lower().encode("utf-8")
    b = expected.strip().lower().encode("utf-8")
    return secrets.compare_digest(a, b)


def is_valid_hash_format(hash_str: str, algorithm: str = "sha1") -> bool:
    """Check that a string looks like a hex digest of the given algorithm."""
    expected_length = _HASH_LENGTHS.get(algorithm.lower())
    if expected_length is None or len(hash_str) != expected_length:
        return False
    try:
        int(hash_str, 16)
    except ValueError:
        return False
    return True


def signature_matches(size: int, sha1: str, signature: FileSignature) -> bool:
    """Check an already computed size/digest pair against a signature."""
    if size != signature.bytes:
        return False
    return digests_match(sha1, signature.sha1)


def verify_file_signature(file_path: Path, signature: FileSignature) -> bool:
    """
    Verify that a file matches the expected size and SHA-1 digest.

    Args:
        file_path: Path to file
        signature: Expected signature

    Returns:
        True if both size and digest match, False otherwise (including when
        the file does not exist)

    Example:
        >>> sig = FileSignature(bytes=1024, sha1="3f786850e387550fdab836ed7e6dc881de23001b")
        >>> verify_file_signature(Path("sdk.zip"), sig)
        False
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        return False

    actual_size = file_path.stat().st_size
    if actual_size != signature.bytes:
        logger.debug(
            f"Size mismatch for {file_path.name}: "
            f"expected {signature.bytes}, got {actual_size}"
        )
        return False

    return digests_match(compute_file_hash(file_path, "sha1"), signature.sha1)


__all__ = [
    "FileSignature",
    "new_hasher",
    "compute_file_hash",
    "digests_match",
    "is_valid_hash_format",
    "signature_matches",
    "verify_file_signature",
]
