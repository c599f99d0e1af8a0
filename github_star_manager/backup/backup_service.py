"""Create, inspect, move and restore backups of starred repositories."""

import gzip
import json
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path

from ..errors import AuthError, GitHubError, NotFoundError
from ..models import Backup, BackupMeta
from .store import KvStore

_PREFIX = "backups"


def _log(msg: str):
    sys.stderr.write(f"\033[2K\r[backup] {msg}\n")
    sys.stderr.flush()


def _progress(msg: str):
    sys.stdout.write(f"\033[2K\r{msg}")
    sys.stdout.flush()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _read_json(path: Path) -> dict:
    if path.suffix == ".gz":
        with gzip.open(path, "rt", encoding="utf-8") as f:
            return json.load(f)
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix == ".gz":
        with gzip.open(path, "wt", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        return
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


class BackupNotFoundError(KeyError):
    pass


class BackupService:
    """Backups of the authenticated user's stars, kept in a KvStore.

    Each backup is two entries: ("backups", id, "meta") for listing and
    ("backups", id, "data") for the full repository list.
    """

    def __init__(self, store: KvStore, client=None):
        self.store = store
        self.client = client

    def _save(self, backup: Backup) -> None:
        self.store.set((_PREFIX, backup.meta.id, "meta"), backup.meta.to_dict())
        self.store.set((_PREFIX, backup.meta.id, "data"), backup.to_dict())

    def _latest_id(self) -> str | None:
        backups = self.list_backups()
        return backups[0].id if backups else None

    def create_backup(
        self,
        description: str | None = None,
        tags: list[str] | None = None,
        overwrite: bool = False,
    ) -> BackupMeta:
        """Snapshot every starred repository.

        With overwrite, the most recent backup is replaced instead of a new one
        being added.
        """
        user = self.client.get_current_user()
        repositories = list(self.client.starred_repos())

        now = _now()
        today = now.date().isoformat()
        if overwrite:
            backup_id = self._latest_id() or f"backup-{today}"
        else:
            backup_id = f"backup-{today}-{uuid.uuid4().hex[:8]}"

        meta = BackupMeta(
            id=backup_id,
            created_at=now.isoformat(),
            username=user["login"],
            count=len(repositories),
            description=description,
            tags=tags,
        )
        self._save(Backup(meta=meta, repositories=repositories))
        return meta

    def list_backups(self) -> list[BackupMeta]:
        """Metadata for every backup, newest first."""
        backups = []
        for key, value in self.store.list((_PREFIX,)):
            if len(key) == 3 and key[2] == "meta" and value and value.get("id") and value.get("created_at"):
                backups.append(BackupMeta.from_dict(value))
        return sorted(backups, key=lambda m: m.created_at, reverse=True)

    def get_backup(self, backup_id: str) -> Backup | None:
        data = self.store.get((_PREFIX, backup_id, "data"))
        return Backup.from_dict(data) if data else None

    def delete_backup(self, backup_id: str) -> bool:
        """Returns False if there was no such backup."""
        if self.get_backup(backup_id) is None:
            return False
        self.store.delete((_PREFIX, backup_id, "meta"))
        self.store.delete((_PREFIX, backup_id, "data"))
        return True

    def export_backup(self, backup_id: str, path: Path) -> None:
        """Write a backup as JSON (gzipped if path ends in .gz)."""
        backup = self.get_backup(backup_id)
        if backup is None:
            raise BackupNotFoundError(backup_id)
        _write_json(Path(path), backup.to_dict())

    def import_backup(
        self,
        path: Path,
        description: str | None = None,
        tags: list[str] | None = None,
        overwrite: bool = False,
    ) -> BackupMeta:
        """Load a backup file into the store.

        The imported backup keeps its original id only with overwrite; otherwise
        it gets a fresh one so it can't clobber an existing backup.
        """
        backup = Backup.from_dict(_read_json(Path(path)))
        now = _now()
        if not overwrite:
            backup.meta.id = f"backup-{now.date().isoformat()}-imported-{str(int(time.time()))[-6:]}"
        if description is not None:
            backup.meta.description = description
        if tags is not None:
            backup.meta.tags = tags
        backup.meta.created_at = now.isoformat()
        backup.meta.count = len(backup.repositories)
        self._save(backup)
        return backup.meta

    def restore_backup(self, backup_id: str, dry_run: bool = False) -> dict:
        """Star every repository in a backup.

        Returns dict with counts: restored, missing, errors. A repository that
        no longer exists counts as missing; a bad token stops the restore.
        """
        backup = self.get_backup(backup_id)
        if backup is None:
            raise BackupNotFoundError(backup_id)

        stats = {"restored": 0, "missing": 0, "errors": 0}
        total = len(backup.repositories)
        for i, repo in enumerate(backup.repositories, 1):
            full_name = repo["full_name"]
            owner, name = full_name.split("/", 1)
            if dry_run:
                _log(f"[DRY RUN] Would star: {full_name}")
                stats["restored"] += 1
                continue
            try:
                self.client.star_repo(owner, name)
                stats["restored"] += 1
            except AuthError:
                raise
            except NotFoundError:
                stats["missing"] += 1
                _log(f"Not found: {full_name}")
            except GitHubError as e:
                stats["errors"] += 1
                _log(f"Error starring {full_name}: {e}")
            _progress(
                f"  [{i}/{total}] {stats['restored']} restored, "
                f"{stats['missing']} missing, {stats['errors']} errors"
            )

        if not dry_run and total:
            sys.stdout.write("\n")
            sys.stdout.flush()
        return stats
