"""Data models and constants for star management."""

from dataclasses import asdict, dataclass, field, replace

MAX_PER_PAGE = 100  # GitHub REST API hard limit per page


@dataclass(frozen=True)
class ApiRequest:
    """One call against the REST API.

    `path` is relative to the client's base URL. Follow-up pages taken from a
    Link header carry an absolute URL instead, with their query already baked in.
    """

    method: str
    path: str
    params: dict = field(default_factory=dict)
    json: dict | list | None = None

    def with_params(self, **params) -> "ApiRequest":
        return replace(self, params={**self.params, **params})


@dataclass
class ApiResponse:
    """Response from the GitHub REST API client."""

    status: int
    body: dict | list
    etag: str | None = None
    link: str | None = None
    headers: dict = field(default_factory=dict)


@dataclass
class BackupMeta:
    id: str
    created_at: str
    username: str
    count: int
    description: str | None = None
    tags: list[str] | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "BackupMeta":
        return cls(
            id=data["id"],
            created_at=data["created_at"],
            username=data["username"],
            count=data["count"],
            description=data.get("description"),
            tags=data.get("tags"),
        )


@dataclass
class Backup:
    meta: BackupMeta
    repositories: list[dict]

    def to_dict(self) -> dict:
        return {"meta": self.meta.to_dict(), "repositories": self.repositories}

    @classmethod
    def from_dict(cls, data: dict) -> "Backup":
        return cls(meta=BackupMeta.from_dict(data["meta"]), repositories=list(data["repositories"]))


@dataclass
class CleanupResults:
    total_reviewed: int = 0
    removed: int = 0
    archived: int = 0
    outdated: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def remaining(self) -> int:
        return self.total_reviewed - self.removed
