"""Sort stars into topical markdown lists."""

import re
from pathlib import Path

from ..utils import date_only
from .categories import COMPILED


def matches(repo: dict, pattern: re.Pattern) -> bool:
    """Name, description or any topic matches."""
    fields = [repo.get("name") or "", repo.get("description") or ""]
    fields.extend(repo.get("topics") or [])
    return any(pattern.search(f) for f in fields)


def categorize(repos: list[dict], categories: dict[str, re.Pattern] | None = None) -> dict[str, list[dict]]:
    """Map category name -> matching repos. A repo may land in several."""
    categories = categories or COMPILED
    return {name: [r for r in repos if matches(r, pattern)] for name, pattern in categories.items()}


def render_category(category: str, repos: list[dict]) -> str:
    lines = [
        f"# {category.capitalize()} Stars Collection",
        "",
        f"*Curated list of {category} repositories I've found valuable*",
        "",
    ]
    for repo in repos:
        lines += [
            f"## [{repo['full_name']}]({repo['html_url']})",
            repo.get("description") or "No description",
            "",
            f"⭐ {repo.get('stargazers_count', 0)} | 🔄 Updated: {date_only(repo.get('updated_at'))}",
            "",
            "---",
            "",
        ]
    return "\n".join(lines)


def write_category_lists(categorized: dict[str, list[dict]], output_dir: Path) -> dict[str, int]:
    """Write <category>-stars.md files. Returns category -> count."""
    output_dir.mkdir(parents=True, exist_ok=True)
    counts = {}
    for category, repos in categorized.items():
        (output_dir / f"{category}-stars.md").write_text(render_category(category, repos), encoding="utf-8")
        counts[category] = len(repos)
    return counts


def render_awesome_list(keyword: str, title: str, repos: list[dict]) -> str:
    """Awesome-list style document of the repos matching keyword, most starred first."""
    pattern = re.compile(re.escape(keyword), re.IGNORECASE)
    selected = sorted(
        (r for r in repos if matches(r, pattern)),
        key=lambda r: r.get("stargazers_count", 0),
        reverse=True,
    )
    lines = [
        f"# Awesome {title} [![Awesome](https://awesome.re/badge.svg)](https://awesome.re)",
        "",
        f"> A curated list of {title} resources, tools, and libraries",
        "",
        "---",
        "",
    ]
    for repo in selected:
        lines.append(
            f"- [{repo['full_name']}]({repo['html_url']}) - "
            f"{repo.get('description') or 'No description'} ⭐{repo.get('stargazers_count', 0)}"
        )
    return "\n".join(lines) + "\n"
