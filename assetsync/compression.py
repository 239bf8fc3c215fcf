"""
Choice between a plain asset and its pre-compressed gzip twin.
"""

from dataclasses import dataclass
from typing import Optional

GZIP_SUFFIX = ".gz"


@dataclass(frozen=True)
class CompressionChoice:
    """Which bytes to send for an asset and under which key."""

    key: str
    source: str
    content_encoding: Optional[str] = None
    skip: bool = False
    savings: Optional[str] = None


def is_gzip_variant(path: str) -> bool:
    return path.endswith(GZIP_SUFFIX)


def plain_name(path: str) -> str:
    """Strip the .gz suffix of a compressed variant."""
    return path[: -len(GZIP_SUFFIX)] if is_gzip_variant(path) else path


def gzip_name(path: str) -> str:
    return path if is_gzip_variant(path) else path + GZIP_SUFFIX


def percentage_change(original_size, new_size):
    """Size reduction in percent, formatted with two decimals."""
    if not original_size:
        return "0.00"
    return "%.2f" % (((original_size - new_size) / original_size) * 100)


def select_variant(
    asset: str,
    gzip_compression: bool,
    original_size: Optional[int] = None,
    gzipped_size: Optional[int] = None,
) -> CompressionChoice:
    """
    Decide whether the plain or the gzip variant of an asset is uploaded.

    ``gzipped_size`` is None when no gzip twin exists next to the plain file.
    In gzip compression mode the twin replaces the plain file under the plain
    key, but only when it is actually smaller; the .gz files themselves are
    skipped. Outside that mode a .gz file is uploaded under its own key.
    """
    file_name = plain_name(asset)
    gz_file_name = gzip_name(asset)

    if gzip_compression and is_gzip_variant(asset):
        return CompressionChoice(key=file_name, source=asset, skip=True)

    if gzip_compression and gzipped_size is not None:
        savings = percentage_change(original_size, gzipped_size)
        if original_size is not None and gzipped_size < original_size:
            return CompressionChoice(
                key=file_name, source=gz_file_name, content_encoding="gzip", savings=savings
            )
        return CompressionChoice(key=file_name, source=file_name, savings=savings)

    if not gzip_compression and is_gzip_variant(asset):
        return CompressionChoice(key=gz_file_name, source=gz_file_name, content_encoding="gzip")

    return CompressionChoice(key=file_name, source=file_name)
