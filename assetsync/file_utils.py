"""
Local file access and discovery of the compiled asset tree.
"""

import json
import os
import posixpath
import re
from pathlib import Path
from typing import List

import yaml

from .config import FONT_EXTENSIONS
from .exceptions import ConfigurationError
from .logger import logger

FONT_ORIGINAL = re.compile(r"^.+(%s)$" % "|".join(FONT_EXTENSIONS))
YAML_EXTENSIONS = (".yml", ".yaml")


class LocalFilesystem:
    """Filesystem checks for asset paths relative to the public directory."""

    def __init__(self, public_path):
        self.public_path = public_path

    def path(self, asset):
        return os.path.join(self.public_path, *asset.split("/"))

    def exists(self, asset):
        return os.path.exists(self.path(asset))

    def is_file(self, asset):
        return os.path.isfile(self.path(asset))

    def size(self, asset):
        return os.path.getsize(self.path(asset))

    def open(self, asset):
        return open(self.path(asset), "rb")


class LocalInventory:
    """Lists the local assets from a manifest or by walking the prefix directory."""

    def __init__(self, filesystem, config, log=None):
        self.filesystem = filesystem
        self.config = config
        self.log = log or logger

    def list_files(self) -> List[str]:
        manifest_path = self.config.manifest_path
        if self.config.manifest and manifest_path and os.path.exists(manifest_path):
            return self.files_from_manifest(manifest_path)

        if self.config.manifest:
            self.log.warning("Warning: Manifest could not be found")
        self.log.info(
            f"Using: Directory Search of {self.filesystem.public_path}/{self.config.assets_prefix}"
        )
        return self.files_from_directory()

    def files_from_directory(self) -> List[str]:
        """Every entry below the prefix, directories included."""
        root = Path(self.filesystem.public_path)
        prefix = self.config.assets_prefix
        pattern = f"{prefix}/**/*" if prefix else "**/*"
        return sorted({p.relative_to(root).as_posix() for p in root.glob(pattern)})

    def files_from_manifest(self, manifest_path) -> List[str]:
        """
        Compiled file names from a JSON or YAML manifest.

        Sprockets manifests keep logical -> compiled names under "assets";
        flat manifests (including Rails 3 manifest.yml) are the mapping
        itself. Font originals are listed alongside their compiled copy.
        """
        self.log.info(f"Using: Manifest {manifest_path}")
        manifest = read_manifest(manifest_path)

        if isinstance(manifest.get("assets"), dict):
            files = list(manifest["assets"].values())
        else:
            files = []
            for original, compiled in manifest.items():
                if FONT_ORIGINAL.match(original):
                    files.append(original)
                files.append(compiled)

        prefix = self.config.assets_prefix
        return list(dict.fromkeys(posixpath.join(prefix, f) for f in files))


def read_manifest(manifest_path) -> dict:
    """Load a manifest, as YAML for .yml/.yaml files and as JSON otherwise."""
    with open(manifest_path, "r", encoding="utf-8") as f:
        content = f.read()

    try:
        if str(manifest_path).lower().endswith(YAML_EXTENSIONS):
            manifest = yaml.safe_load(content) or {}
        else:
            manifest = json.loads(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Manifest {manifest_path} could not be parsed: {e}") from e

    if not isinstance(manifest, dict):
        raise ConfigurationError(f"Manifest {manifest_path} must define a mapping at the top level")
    return manifest
