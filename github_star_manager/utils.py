"""Formatting helpers shared by the markdown writers."""

import html


def split_full_name(full_name: str) -> tuple[str, str]:
    """'owner/repo' -> ('owner', 'repo')."""
    owner, sep, repo = full_name.strip().strip("/").partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise ValueError(f"Expected owner/repo, got {full_name!r}")
    return owner, repo


def truncate_text(text: str, max_len: int = 100) -> str:
    """Shorten text at a word boundary, ending with '...'."""
    if len(text) <= max_len:
        return text
    cut = text[: max_len - 3]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut + "..."


def escape_html(text: str) -> str:
    return html.escape(text, quote=True)


def escape_table_cell(text: str) -> str:
    """Make text safe inside a markdown table cell."""
    return escape_html(text).replace("|", "&#124;")


def date_only(timestamp: str | None) -> str:
    """'2024-05-01T12:00:00Z' -> '2024-05-01'."""
    return timestamp.split("T")[0] if timestamp else "unknown"
