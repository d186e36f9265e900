"""
Workspace registry for grit.

The registry owns the workspace document, ``<root>/.grit/config.yml``::

    version: 1
    root: /Users/john/my_project
    ignore_root: true
    repositories:
      - name: sproutcore
        path: frameworks/sproutcore
      - name: scui
        path: frameworks/scui

Repository order in the document is execution order. The document is read
whole for every operation and replaced whole (temp file + rename) after every
mutation. There is no locking; concurrent grit runs on one workspace race.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .exit_codes import (
    ConfigCorruptError,
    ConfigMissingError,
    DirectoryMissingError,
    LegacyFormatError,
    NotAGitRepoError,
    RepositoryNotFoundError,
)

logger = logging.getLogger(__name__)

METADATA_DIR = ".grit"
CONFIG_FILENAME = "config.yml"
GIT_MARKER = ".git"
ROOT_NAME = "Root"

SCHEMA_VERSION = 1
SUPPORTED_VERSIONS = (1,)
DOCUMENT_FIELDS = ("version", "root", "ignore_root", "repositories")
REPOSITORY_FIELDS = ("name", "path")


@dataclass(frozen=True)
class Repository:
    """A registered repository: a name and a path relative to the root (or absolute)."""
    name: str
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'path': self.path}


@dataclass
class Workspace:
    """
    The workspace document.

    ``repositories`` holds only the stored entries. ``members`` is the list a
    command runs over: the stored entries, preceded by a synthesized ``Root``
    entry unless ``ignore_root`` is set.
    """
    root: str
    ignore_root: bool = True
    repositories: List[Repository] = field(default_factory=list)
    version: int = SCHEMA_VERSION

    @property
    def root_entry(self) -> Repository:
        return Repository(name=ROOT_NAME, path=self.root)

    @property
    def members(self) -> List[Repository]:
        if self.ignore_root:
            return list(self.repositories)
        return [self.root_entry] + list(self.repositories)

    def find(self, name: str) -> Optional[Repository]:
        """First stored entry named ``name``; later duplicates are shadowed."""
        for repo in self.repositories:
            if repo.name == name:
                return repo
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Persisted form. Never includes the synthesized Root entry."""
        return {
            'version': self.version,
            'root': self.root,
            'ignore_root': self.ignore_root,
            'repositories': [repo.to_dict() for repo in self.repositories],
        }

    def effective_dict(self) -> Dict[str, Any]:
        """Display form, with the member list a fan-out would run over."""
        data = self.to_dict()
        data['repositories'] = [repo.to_dict() for repo in self.members]
        return data


def is_git_repo(path) -> bool:
    """Check if a given path is a git working copy."""
    return os.path.isdir(os.path.join(path, GIT_MARKER))


def is_legacy_document(data: Any) -> bool:
    """Legacy documents were written with symbol keys (``:root``, ``:repositories``)."""
    if not isinstance(data, dict):
        return False
    return any(isinstance(key, str) and key.startswith(':') for key in data)


def migrate_legacy_document(data: Any) -> Any:
    """
    Convert a parsed legacy document to the current key convention.

    Works on the parsed structure: every mapping key loses its leading ``:``.
    The legacy tool always ran commands on the root as well, so a missing
    ``ignore_root`` becomes ``False``.
    """
    def strip_keys(value):
        if isinstance(value, dict):
            return {
                (key[1:] if isinstance(key, str) and key.startswith(':') else key): strip_keys(item)
                for key, item in value.items()
            }
        if isinstance(value, list):
            return [strip_keys(item) for item in value]
        return value

    migrated = strip_keys(data)
    if isinstance(migrated, dict):
        migrated.setdefault('ignore_root', False)
        migrated.setdefault('version', SCHEMA_VERSION)
    return migrated


def parse_document(data: Any, path) -> Workspace:
    """
    Validate a parsed document and build a :class:`Workspace`.

    Raises:
        LegacyFormatError: if the document uses symbol keys
        ConfigCorruptError: on any shape, type or version problem
    """
    if not isinstance(data, dict):
        raise ConfigCorruptError(path, "top level is not a mapping")

    if is_legacy_document(data):
        raise LegacyFormatError(path)

    unknown = [str(key) for key in data if key not in DOCUMENT_FIELDS]
    if unknown:
        raise ConfigCorruptError(path, f"unknown field(s): {', '.join(sorted(unknown))}")

    version = data.get('version', SCHEMA_VERSION)
    if isinstance(version, bool) or version not in SUPPORTED_VERSIONS:
        raise ConfigCorruptError(path, f"unsupported schema version {version!r}")

    for key in ('root', 'ignore_root', 'repositories'):
        if key not in data:
            raise ConfigCorruptError(path, f"missing field '{key}'")

    root = data['root']
    if not isinstance(root, str):
        raise ConfigCorruptError(path, "'root' must be a string")

    ignore_root = data['ignore_root']
    if not isinstance(ignore_root, bool):
        raise ConfigCorruptError(path, "'ignore_root' must be a boolean")

    entries = data['repositories']
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise ConfigCorruptError(path, "'repositories' must be a list")

    repositories = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ConfigCorruptError(path, f"repository #{index} is not a mapping")
        extra = [str(key) for key in entry if key not in REPOSITORY_FIELDS]
        if extra:
            raise ConfigCorruptError(
                path, f"repository #{index} has unknown field(s): {', '.join(sorted(extra))}"
            )
        name, repo_path = entry.get('name'), entry.get('path')
        if not isinstance(name, str) or not isinstance(repo_path, str):
            raise ConfigCorruptError(path, f"repository #{index} needs string 'name' and 'path'")
        repositories.append(Repository(name=name, path=repo_path))

    return Workspace(
        root=root,
        ignore_root=ignore_root,
        repositories=repositories,
        version=version,
    )


class Registry:
    """
    Repository registry for one workspace root.

    The root is fixed at construction; relative repository paths are
    resolved against it.

    Example:
        registry = Registry("~/my_project")
        registry.initialize()
        registry.add_repository("lib", "vendor/lib")
        for repo in registry.load().members:
            print(repo.name, registry.resolve(repo))
    """

    def __init__(
        self,
        root: Union[str, Path],
        metadata_dir: str = METADATA_DIR,
        config_file: str = CONFIG_FILENAME,
    ):
        self.root = Path(root).expanduser().resolve()
        self.metadata_dir_name = metadata_dir
        self.metadata_dir = self.root / metadata_dir
        self.config_path = self.metadata_dir / config_file

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        return self.config_path.exists()

    def initialize(self) -> bool:
        """
        Create the workspace metadata under the root.

        Returns:
            True if a new document was written, False if one already existed

        Raises:
            DirectoryMissingError: if the root directory does not exist
        """
        if not self.root.is_dir():
            raise DirectoryMissingError(self.root)

        self.metadata_dir.mkdir(exist_ok=True)
        if self.config_path.exists():
            logger.info(f"Workspace already initialized at {self.root}")
            return False

        self.save(Workspace(root=str(self.root), ignore_root=True, repositories=[]))
        logger.info(f"Initialized workspace at {self.root}")
        return True

    def _read_raw(self) -> Any:
        if not self.config_path.exists():
            raise ConfigMissingError(self.config_path)
        try:
            with open(self.config_path, 'r') as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigCorruptError(self.config_path, f"invalid YAML ({e})") from e

    def load(self) -> Workspace:
        """
        Load the workspace document.

        Raises:
            ConfigMissingError: no document at the root
            LegacyFormatError: document written with symbol keys
            ConfigCorruptError: unparseable or invalid document
        """
        workspace = parse_document(self._read_raw(), self.config_path)
        logger.debug(
            f"Loaded {len(workspace.repositories)} repositories from {self.config_path}"
        )
        return workspace

    def save(self, workspace: Workspace) -> None:
        """Replace the document with ``workspace`` (stored entries only)."""
        self._write_atomic(workspace.to_dict())
        logger.debug(f"Wrote {len(workspace.repositories)} repositories to {self.config_path}")

    def _write_atomic(self, data: Dict[str, Any]) -> None:
        """Write data atomically using temp file and rename."""
        fd, temp_path = tempfile.mkstemp(
            dir=self.metadata_dir,
            prefix=f".{self.config_path.name}.",
            suffix=".tmp"
        )

        try:
            with os.fdopen(fd, 'w') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

            os.replace(temp_path, self.config_path)

        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def convert_legacy(self) -> bool:
        """
        Migrate a legacy document in place.

        Returns:
            True if the document was converted, False if it was already current
        """
        data = self._read_raw()
        if not is_legacy_document(data):
            # Validates; raises if the current-format document is broken
            parse_document(data, self.config_path)
            return False

        workspace = parse_document(migrate_legacy_document(data), self.config_path)
        self.save(workspace)
        logger.info(f"Converted legacy workspace config {self.config_path}")
        return True

    def destroy(self) -> None:
        """Delete the workspace metadata directory."""
        if not self.metadata_dir.is_dir():
            raise ConfigMissingError(self.config_path)
        shutil.rmtree(self.metadata_dir)
        logger.info(f"Removed workspace metadata {self.metadata_dir}")

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def resolve(self, repo: Repository) -> Path:
        """Absolute filesystem path of a repository entry."""
        path = Path(repo.path).expanduser()
        if not path.is_absolute():
            path = self.root / path
        return path

    def is_valid(self, repo: Repository) -> bool:
        """An entry is valid when its path is a directory holding a git working copy."""
        path = self.resolve(repo)
        return os.path.isdir(path) and is_git_repo(path)

    def find_by_name(self, name: str) -> Repository:
        repo = self.load().find(name)
        if repo is None:
            raise RepositoryNotFoundError(name)
        return repo

    def add_repository(self, name: str, path: Optional[str] = None) -> Repository:
        """
        Register a repository. ``path`` defaults to ``name``.

        Duplicate names are accepted; lookups see the first one.
        """
        if path is None:
            path = name
        workspace = self.load()

        repo = Repository(name=name, path=path)
        if not is_git_repo(self.resolve(repo)):
            raise NotAGitRepoError(path)

        workspace.repositories.append(repo)
        self.save(workspace)
        logger.info(f"Added repository {name} ({path})")
        return repo

    def add_all_discovered(self) -> List[Repository]:
        """Register every immediate child of the root that is a git working copy."""
        workspace = self.load()

        added = []
        for child in sorted(self.root.iterdir(), key=lambda p: p.name):
            if child.name == self.metadata_dir_name or not child.is_dir():
                continue
            if is_git_repo(child):
                added.append(Repository(name=child.name, path=child.name))

        workspace.repositories.extend(added)
        self.save(workspace)
        logger.info(f"Discovered {len(added)} repositories under {self.root}")
        return added

    def remove_repository(self, name: str) -> Repository:
        """Remove the first entry named ``name``. The document is untouched if absent."""
        workspace = self.load()
        repo = workspace.find(name)
        if repo is None:
            raise RepositoryNotFoundError(name)

        workspace.repositories.remove(repo)
        self.save(workspace)
        logger.info(f"Removed repository {name}")
        return repo

    def clean_missing(self) -> List[Repository]:
        """Drop entries whose path is gone, not a directory, or not a git working copy."""
        workspace = self.load()

        kept, dropped = [], []
        for repo in workspace.repositories:
            (kept if self.is_valid(repo) else dropped).append(repo)

        workspace.repositories = kept
        self.save(workspace)
        for repo in dropped:
            logger.info(f"Dropped {repo.name} ({repo.path})")
        return dropped
