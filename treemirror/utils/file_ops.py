"""
File Operation Utilities

Provides content hashing and the size and number formatting shared by
the tree loader and the reports.

Author: TreeMirror Project
License: MIT
"""

import os
import hashlib
from typing import List

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB", "PB"]


def calculate_file_hash(file_path: str, algorithm: str = "md5", chunk_size: int = 1024 * 1024) -> str:
    """
    Calculate hash of a file.

    Args:
        file_path: Path to the file
        algorithm: Hash algorithm (md5, sha1, sha256, etc.)
        chunk_size: Size of chunks to read (bytes)

    Returns:
        Hexadecimal hash string

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If algorithm is unsupported
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")

    try:
        hash_func = hashlib.new(algorithm)
    except ValueError:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    with open(file_path, 'rb') as f:
        while chunk := f.read(chunk_size):
            hash_func.update(chunk)

    return hash_func.hexdigest()


def format_file_size(size: int) -> str:
    """
    Format a byte count for humans.

    Args:
        size: Size in bytes

    Returns:
        String such as ``"512 B"`` or ``"1.50 MB"``
    """
    if size < 1024:
        return f"{size} B"

    value = float(size)
    for unit in SIZE_UNITS[1:]:
        value /= 1024
        if value < 1024 or unit == SIZE_UNITS[-1]:
            return f"{value:.2f} {unit}"
    return f"{size} B"


def format_number(value: int) -> str:
    """Format an integer with thousands separators."""
    return f"{value:,}"


def align_right(min_width: int, *values: str) -> List[str]:
    """Right-align values to a common width (at least ``min_width``)."""
    width = max([min_width] + [len(v) for v in values])
    return [v.rjust(width) for v in values]
