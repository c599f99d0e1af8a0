"""Remove stars from archived or long-inactive repositories."""

import sys
from datetime import datetime, timezone
from pathlib import Path

from ..errors import AuthError, GitHubError
from ..models import CleanupResults

DEFAULT_CUTOFF_MONTHS = 24


def _log(msg: str):
    sys.stderr.write(f"\033[2K\r[cleanup] {msg}\n")
    sys.stderr.flush()


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def months_ago(now: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the end of shorter months."""
    year, month = divmod(now.year * 12 + (now.month - 1) - months, 12)
    month += 1
    day = now.day
    while True:
        try:
            return now.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


def find_stale_stars(
    repos: list[dict],
    cutoff_months: int = DEFAULT_CUTOFF_MONTHS,
    now: datetime | None = None,
    skip_archived: bool = False,
    skip_outdated: bool = False,
) -> list[tuple[dict, str]]:
    """Pick the stars worth removing.

    Returns (repo, reason) pairs, reason being "archived" or "outdated".
    Activity is judged by pushed_at, which tracks commits rather than
    metadata edits.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = months_ago(now, cutoff_months)
    stale = []
    for repo in repos:
        if repo.get("archived"):
            if not skip_archived:
                stale.append((repo, "archived"))
            continue
        if skip_outdated:
            continue
        pushed_at = _parse_timestamp(repo.get("pushed_at"))
        if pushed_at is not None and pushed_at < cutoff:
            stale.append((repo, "outdated"))
    return stale


def write_step_summary(path: Path, results: CleanupResults, cutoff_months: int, now: datetime) -> None:
    """Append a markdown summary for a GitHub Actions job page."""
    cutoff = months_ago(now, cutoff_months).date().isoformat()
    with open(path, "a", encoding="utf-8") as f:
        f.write(
            "## Star Cleanup Results\n\n"
            f"- **Total stars reviewed**: {results.total_reviewed}\n"
            f"- **Stars removed**: {results.removed}\n"
            f"  - Archived repositories: {results.archived}\n"
            f"  - Outdated repositories: {results.outdated}\n"
            f"- **Stars remaining**: {results.remaining}\n"
            f"- **Cutoff date**: {cutoff}\n\n"
            "### Cleanup Policy\n"
            "- Removed stars from archived repositories\n"
            f"- Removed stars from repositories with no activity for {cutoff_months} months\n"
        )


def cleanup_stars(
    client,
    cutoff_months: int = DEFAULT_CUTOFF_MONTHS,
    dry_run: bool = True,
    skip_archived: bool = False,
    skip_outdated: bool = False,
    now: datetime | None = None,
    summary_path: Path | None = None,
) -> CleanupResults:
    """Unstar archived and inactive repositories.

    The whole star list is read before anything is removed; unstarring
    mid-traversal would shift later pages and skip repositories.
    """
    now = now or datetime.now(timezone.utc)
    repos = list(client.starred_repos())
    stale = find_stale_stars(repos, cutoff_months, now, skip_archived, skip_outdated)

    results = CleanupResults(total_reviewed=len(repos))
    for repo, reason in stale:
        full_name = repo["full_name"]
        detail = reason if reason == "archived" else f"no activity since {repo.get('pushed_at')}"
        if dry_run:
            _log(f"[DRY RUN] Would unstar: {full_name} ({detail})")
        else:
            owner, name = full_name.split("/", 1)
            try:
                client.unstar_repo(owner, name)
            except AuthError:
                raise
            except GitHubError as e:
                _log(f"Error unstarring {full_name}: {e}")
                results.errors += 1
                results.skipped += 1
                continue
            _log(f"Unstarred: {full_name} ({detail})")
        results.removed += 1
        if reason == "archived":
            results.archived += 1
        else:
            results.outdated += 1

    results.skipped += results.total_reviewed - len(stale)
    if summary_path:
        write_step_summary(Path(summary_path), results, cutoff_months, now)
    return results
