"""
Object metadata for uploads: content type, cache headers, custom headers
and storage class.
"""

import mimetypes
import posixpath
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .compression import CompressionChoice, plain_name
from .config import FINGERPRINT_CACHE_CONTROL, ONE_YEAR, REDUCED_REDUNDANCY
from .fingerprint import has_digest
from .logger import logger


@dataclass
class UploadPlan:
    """Everything needed to write one asset to the bucket."""

    asset: str
    key: str
    source: str
    headers: Dict[str, Any] = field(default_factory=dict)
    storage_class: Optional[str] = None
    skip: bool = False


def utc_now():
    return datetime.now(timezone.utc)


def normalize_header_name(name: str) -> str:
    """Cache-Control, CacheControl and cache_control all become cache_control."""
    name = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name)
    return name.replace("-", "_").lower()


def normalize_headers(headers: Mapping[str, Any]) -> Dict[str, Any]:
    return {normalize_header_name(k): v for k, v in headers.items()}


def resolve_headers(
    path: str,
    fingerprint_headers: Mapping[str, Any],
    exact_rules: Mapping[str, Mapping[str, Any]],
    pattern_rules: List[Tuple[re.Pattern, Mapping[str, Any]]],
) -> Dict[str, Any]:
    """
    Merge cache and custom headers for a path.

    An exact path rule replaces the fingerprint headers outright. Otherwise the
    first matching pattern rule is applied on top of them.
    """
    if path in exact_rules:
        return normalize_headers(exact_rules[path])

    headers = dict(fingerprint_headers)
    for regex, rule in pattern_rules:
        if regex.search(path):
            headers.update(normalize_headers(rule))
            break
    return headers


class MetadataResolver:
    """Builds upload plans from the sync configuration."""

    def __init__(self, config, log=None, clock=utc_now):
        self.config = config
        self.log = log or logger
        self.clock = clock
        self.exact_rules = {
            posixpath.join(config.assets_prefix, path): headers
            for path, headers in config.custom_headers.items()
        }
        self.pattern_rules = self._compile_pattern_rules(config.custom_headers)

    def _compile_pattern_rules(self, custom_headers):
        rules = []
        for pattern, headers in custom_headers.items():
            try:
                rules.append((re.compile(pattern), headers))
            except re.error as e:
                self.log.warning(f"Invalid custom header pattern {pattern!r} skipped: {e}")
        return rules

    @staticmethod
    def content_type(name: str) -> Optional[str]:
        """MIME type for a file name, None for unknown extensions."""
        mime, _ = mimetypes.guess_type(name, strict=False)
        return mime

    def fingerprint_headers(self, asset: str) -> Dict[str, Any]:
        """Far-future caching for assets whose name carries a digest."""
        if not has_digest(asset):
            return {}
        return {
            "cache_control": FINGERPRINT_CACHE_CONTROL,
            "expires": self.clock() + timedelta(seconds=ONE_YEAR),
        }

    def headers_for(self, asset: str) -> Dict[str, Any]:
        fingerprint = self.fingerprint_headers(asset)
        headers = resolve_headers(asset, fingerprint, self.exact_rules, self.pattern_rules)
        if asset in self.exact_rules:
            self.log.info(f"Overwriting {asset} with custom headers {headers}")
        elif headers != fingerprint:
            self.log.info(f"Overwriting matching file {asset} with custom headers {headers}")
        return headers

    def storage_class(self) -> Optional[str]:
        if self.config.aws and self.config.reduced_redundancy:
            return REDUCED_REDUNDANCY
        return None

    def plan(self, asset: str, choice: CompressionChoice) -> UploadPlan:
        """Resolve key, payload and headers for an asset."""
        headers = {}
        mime = self.content_type(plain_name(asset))
        if mime:
            headers["content_type"] = mime
        if self.config.acl:
            headers["acl"] = self.config.acl

        headers.update(self.headers_for(asset))

        if choice.content_encoding:
            headers["content_encoding"] = choice.content_encoding

        return UploadPlan(
            asset=asset,
            key=choice.key,
            source=choice.source,
            headers=headers,
            storage_class=self.storage_class(),
            skip=choice.skip,
        )
