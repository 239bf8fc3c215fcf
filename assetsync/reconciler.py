"""
Set reconciliation between the local asset tree and the remote bucket.

Decides which local files are uploaded and which remote files are deleted,
honouring ignore rules, the always-upload list and fingerprint aliases.
"""

import posixpath
import re
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Set, Union

from .exceptions import ConfigurationError
from .fingerprint import aliases
from .logger import logger


@dataclass(frozen=True)
class ExactName:
    """Ignore rule matching the final path segment exactly."""

    name: str

    def matches(self, path: str) -> bool:
        return path.split("/")[-1] == self.name


@dataclass(frozen=True)
class Pattern:
    """Ignore rule matching a regular expression anywhere in the path."""

    regex: re.Pattern

    def matches(self, path: str) -> bool:
        return self.regex.search(path) is not None


IgnoreRule = Union[ExactName, Pattern]


def to_ignore_rule(value) -> IgnoreRule:
    """Convert a raw configuration value into an ignore rule."""
    if isinstance(value, (ExactName, Pattern)):
        return value
    if isinstance(value, str):
        return ExactName(value)
    if isinstance(value, re.Pattern):
        return Pattern(value)
    raise ConfigurationError(
        f"please define ignored_files as string or regular expression. "
        f"{value!r} ({type(value).__name__}) ignored."
    )


def build_ignore_rules(values, log=None) -> List[IgnoreRule]:
    """Build ignore rules, skipping values of an unsupported type with a warning."""
    log = log or logger
    rules = []
    for value in values or []:
        try:
            rules.append(to_ignore_rule(value))
        except ConfigurationError as e:
            log.warning(f"Error: {e}")
    return rules


def unique(paths: Iterable[str]) -> List[str]:
    """De-duplicate paths keeping the first occurrence."""
    return list(dict.fromkeys(paths))


def compute_upload_set(
    local: Sequence[str],
    remote: Iterable[str],
    ignored: Iterable[str],
    always_upload: Sequence[str],
) -> List[str]:
    """local - ignored - remote + always_upload, expanded with fingerprint aliases.

    Aliases go through the same exclusions as any other file; an alias that is
    already remote or ignored is only uploaded when it is also always-uploaded.
    """
    always = list(always_upload)
    excluded = (set(ignored) | set(remote)) - set(always)
    files = [f for f in local if f not in excluded] + always
    return unique(files + [a for a in aliases(files) if a not in excluded])


def compute_deletion_set(
    remote: Iterable[str],
    local: Iterable[str],
    ignored: Iterable[str],
    always_upload: Iterable[str],
) -> Set[str]:
    """Remote files no longer justified by the local tree."""
    return set(remote) - set(local) - set(ignored) - set(always_upload)


class Reconciler:
    """Applies the configured exclusion rules to local and remote inventories."""

    def __init__(self, config, log=None):
        self.config = config
        self.log = log or logger
        self.ignore_rules = build_ignore_rules(config.ignored_files, self.log)

    def ignored_files(self, paths: Iterable[str]) -> List[str]:
        """Every path matched by at least one ignore rule."""
        paths = list(paths)
        files = []
        for rule in self.ignore_rules:
            files.extend(path for path in paths if rule.matches(path))
        return unique(files)

    def always_upload_files(self) -> List[str]:
        return [posixpath.join(self.config.assets_prefix, f) for f in self.config.always_upload]

    def upload_set(self, local: Sequence[str], remote: Iterable[str]) -> List[str]:
        local = list(local)
        # Aliases may not exist locally, so they are matched against the rules too
        ignored = self.ignored_files(local + aliases(local + self.always_upload_files()))
        return compute_upload_set(local, remote, ignored, self.always_upload_files())

    def deletion_set(self, remote: Iterable[str], local: Sequence[str]) -> Set[str]:
        remote = list(remote)
        # Remote-only files can be ignored too, so match against both trees
        ignored = self.ignored_files(unique(list(local) + remote))
        return compute_deletion_set(remote, local, ignored, self.always_upload_files())
