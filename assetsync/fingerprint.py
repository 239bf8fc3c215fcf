"""
Recognition of fingerprinted asset names and their non-fingerprinted aliases.
"""

import posixpath
import re
from typing import Iterable, List, Optional

# dir/name-token.ext: name has no hyphen, the token may contain hyphens
FINGERPRINTED_FILE = re.compile(r"^(?:(.*)/)?([^/.\-]+)-[^/.]+\.([^/.]+)$")

# A 32 character hex digest right before the extension, e.g. app-d41d8c...27e.js
DIGEST_SUFFIX = re.compile(r"-[0-9a-fA-F]{32}$")


def non_fingerprinted(path: str) -> Optional[str]:
    """Return the alias of a fingerprinted path, or None when it is not one."""
    match = FINGERPRINTED_FILE.match(path)
    if not match:
        return None

    directory, name, ext = match.groups()
    alias = f"{name}.{ext}"
    return f"{directory}/{alias}" if directory is not None else alias


def aliases(paths: Iterable[str]) -> List[str]:
    """Aliases of every fingerprinted path, in input order."""
    return [alias for alias in map(non_fingerprinted, paths) if alias]


def has_digest(path: str) -> bool:
    """Check whether the file name ends in a 32 character hex digest."""
    stem, _ = posixpath.splitext(posixpath.basename(path))
    return DIGEST_SUFFIX.search(stem) is not None
