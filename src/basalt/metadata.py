"""Repository metadata persisted at ``<git-dir>/basalt/metadata.yml``.

The file is YAML so that it stays readable and hand-editable::

    version: "1"
    provider: gitlab
    base_branch: main
    base_url: https://gitlab.com
    project_path: group/project
    branches:
      feature-1:
        parent: main
        review_id: "!42"
        ...

It may hold the API credential, so writes go through
:func:`~basalt.config.atomic_write` with ``0o600`` permissions and the file
is never world-readable, even momentarily. Loading validates the version and
refuses anything this release cannot read.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from basalt.config import atomic_write
from basalt.exceptions import MetadataError, MetadataNotFound, UnsupportedMetadataVersion
from basalt.models import METADATA_VERSION, Metadata

logger = logging.getLogger(__name__)

METADATA_DIRNAME = "basalt"
METADATA_FILENAME = "metadata.yml"


class MetadataStore:
    """Read/write the metadata file of one repository.

    Args:
        git_dir: The repository's ``.git`` directory (see
            :meth:`basalt.git.Git.git_dir`).

    Example::

        store = MetadataStore(Git().git_dir())
        metadata = store.load()
        metadata.auth_token = None
        store.save(metadata)
    """

    def __init__(self, git_dir: Path) -> None:
        self._path = Path(git_dir) / METADATA_DIRNAME / METADATA_FILENAME

    @property
    def path(self) -> Path:
        """The filesystem path to the metadata file."""
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> Metadata:
        """Load and validate the metadata file.

        Raises:
            MetadataNotFound: If the file does not exist.
            UnsupportedMetadataVersion: If the file was written by an
                incompatible release.
            MetadataError: If the file cannot be read or parsed.
        """
        if not self._path.is_file():
            raise MetadataNotFound()
        try:
            data = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise MetadataError(f"Failed to read metadata at {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise MetadataError(f"Invalid metadata at {self._path}: expected a mapping")

        version = str(data.get("version", ""))
        if version != METADATA_VERSION:
            raise UnsupportedMetadataVersion(version, METADATA_VERSION)
        data["version"] = version

        try:
            return Metadata.model_validate(data)
        except ValidationError as exc:
            raise MetadataError(f"Invalid metadata at {self._path}: {exc}") from exc

    def save(self, metadata: Metadata) -> None:
        """Write *metadata* atomically with ``0o600`` permissions."""
        data = metadata.model_dump(mode="json")
        text = yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
        try:
            atomic_write(self._path, text, mode=0o600)
        except OSError as exc:
            raise MetadataError(f"Failed to write metadata at {self._path}: {exc}") from exc
        logger.debug("Saved metadata to %s", self._path)

    def delete(self) -> None:
        """Remove the metadata file. No-op when it does not exist."""
        if self._path.is_file():
            self._path.unlink()
