from .backup_service import BackupNotFoundError, BackupService
from .store import KvStore

__all__ = ["BackupService", "BackupNotFoundError", "KvStore"]
