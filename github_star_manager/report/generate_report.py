"""Statistics reports and interest digests over starred repositories."""

from collections import Counter
from datetime import date

from ..utils import escape_table_cell, truncate_text

DEFAULT_INTERESTS = ["typescript", "python", "golang", "ai", "devops"]
TOP_N = 10


def build_report(repos: list[dict], today: date | None = None) -> dict:
    """Summary statistics for a list of starred repositories."""
    today = today or date.today()
    this_year = str(today.year)
    last_year = str(today.year - 1)
    old_cutoff = f"{today.year - 2}-01-01"

    languages = Counter(r.get("language") or "Unknown" for r in repos)
    pushed = [r.get("pushed_at") or "" for r in repos]
    top = sorted(repos, key=lambda r: r.get("stargazers_count", 0), reverse=True)[:TOP_N]

    return {
        "generated": today.isoformat(),
        "total": len(repos),
        "archived": sum(1 for r in repos if r.get("archived")),
        "languages": dict(languages.most_common()),
        "activity": {
            "this_year": sum(1 for p in pushed if p.startswith(this_year)),
            "last_year": sum(1 for p in pushed if p.startswith(last_year)),
            "older": sum(1 for p in pushed if p and p < old_cutoff),
        },
        "top_starred": [
            {
                "full_name": r["full_name"],
                "html_url": r.get("html_url"),
                "stars": r.get("stargazers_count", 0),
                "description": r.get("description"),
            }
            for r in top
        ],
    }


def render_report(report: dict) -> str:
    activity = report["activity"]
    lines = [
        f"# GitHub Stars Report - {report['generated']}",
        "",
        "## Summary Statistics",
        "",
        f"- Total stars: {report['total']}",
        f"- Archived repositories: {report['archived']}",
        "",
        "## Language Distribution",
        "",
    ]
    lines += [f"- {lang}: {count}" for lang, count in report["languages"].items()]
    lines += [
        "",
        "## Activity Analysis",
        "",
        f"- Updated this year: {activity['this_year']}",
        f"- Updated last year: {activity['last_year']}",
        f"- Not updated in 2+ years: {activity['older']}",
        "",
        "## Most Popular",
        "",
        "| Repository | Stars | Description |",
        "| --- | ---: | --- |",
    ]
    for r in report["top_starred"]:
        desc = escape_table_cell(truncate_text(r["description"] or "", 80))
        lines.append(f"| [{r['full_name']}]({r['html_url']}) | {r['stars']} | {desc} |")
    return "\n".join(lines) + "\n"


def build_digest(client, interests: list[str] | None = None, per_interest: int = 5) -> dict[str, list[dict]]:
    """Most starred repositories for each interest, one search call each."""
    interests = interests or DEFAULT_INTERESTS
    return {topic: client.search_repositories(topic, per_page=per_interest) for topic in interests}


def render_digest(digest: dict[str, list[dict]], today: date | None = None) -> str:
    today = today or date.today()
    lines = [f"# GitHub Star Digest - {today.isoformat()}", ""]
    for topic, repos in digest.items():
        lines += [f"## Trending in {topic}", ""]
        for r in repos:
            lines.append(
                f"- [{r['full_name']}]({r['html_url']}) - "
                f"{r.get('description') or 'No description'} ⭐{r.get('stargazers_count', 0)}"
            )
        lines.append("")
    return "\n".join(lines)
