"""CLI commands for star management."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .backup import BackupNotFoundError
from .errors import GitHubError


def _split_tags(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [t.strip() for t in value.split(",") if t.strip()]


def _confirm(question: str) -> bool:
    return input(f"{question} (y/N) ").strip().lower() == "y"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _print_meta(meta, verb: str) -> None:
    print(f"{verb} {meta.count} repositories for user {meta.username}")
    if meta.description:
        print(f"Description: {meta.description}")
    if meta.tags:
        print(f"Tags: {', '.join(meta.tags)}")


def _write_output(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    print(f"Wrote {output}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="github-stars",
        description="Manage your GitHub stars",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--token",
        default=None,
        help="GitHub API token (default: GITHUB_TOKEN or STAR_MANAGEMENT_TOKEN)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Backup database path (default: STARS_DB_PATH or ~/.local/share/github-star-manager/stars.db)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("output"),
        help="Output directory for generated lists (default: ./output)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # backup subcommands
    backup_parser = subparsers.add_parser("backup", help="Manage star backups")
    backup_sub = backup_parser.add_subparsers(dest="backup_command", help="Backup commands")

    create_parser = backup_sub.add_parser("create", help="Create a new backup of starred repositories")
    create_parser.add_argument("--description", default=None, help="Description for the backup")
    create_parser.add_argument("--tags", default=None, help="Comma-separated list of tags")
    create_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite most recent backup instead of creating new one",
    )

    list_parser = backup_sub.add_parser("list", help="List available backups")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    get_parser = backup_sub.add_parser("get", help="Show a backup")
    get_parser.add_argument("id", help="Backup ID")
    get_parser.add_argument("--json", action="store_true", help="Output as JSON")

    delete_parser = backup_sub.add_parser("delete", help="Delete a backup")
    delete_parser.add_argument("id", help="Backup ID")
    delete_parser.add_argument("--force", action="store_true", help="Skip confirmation prompt")

    export_parser = backup_sub.add_parser("export", help="Export a backup to a file (.json or .json.gz)")
    export_parser.add_argument("id", help="Backup ID")
    export_parser.add_argument("output", type=Path, help="Output file path")
    export_parser.add_argument("--force", action="store_true", help="Overwrite without asking")

    import_parser = backup_sub.add_parser("import", help="Import a backup from a file")
    import_parser.add_argument("input", type=Path, help="Input file path")
    import_parser.add_argument("--description", default=None, help="New description for the imported backup")
    import_parser.add_argument("--tags", default=None, help="Comma-separated list of tags")
    import_parser.add_argument("--overwrite", action="store_true", help="Keep the file's backup ID")

    restore_parser = backup_sub.add_parser("restore", help="Star every repository in a backup")
    restore_parser.add_argument("id", help="Backup ID")
    restore_parser.add_argument("--dry-run", action="store_true", help="Show what would be starred")

    # cleanup subcommand
    cleanup_parser = subparsers.add_parser(
        "cleanup",
        help="Unstar archived and inactive repositories",
    )
    cleanup_parser.add_argument(
        "--cutoff-months",
        type=int,
        default=None,
        help="Unstar repos with no push in this many months (default: 24)",
    )
    cleanup_parser.add_argument("--dry-run", action="store_true", help="Report without unstarring")
    cleanup_parser.add_argument("--skip-archived", action="store_true", help="Keep archived repositories")
    cleanup_parser.add_argument("--skip-outdated", action="store_true", help="Keep inactive repositories")

    # categorize / awesome
    subparsers.add_parser("categorize", help="Write one markdown list per category to --output-dir")

    awesome_parser = subparsers.add_parser("awesome", help="Write an awesome-list for one keyword")
    awesome_parser.add_argument("keyword", help="Keyword to match (e.g., ai)")
    awesome_parser.add_argument("title", help="List title (e.g., 'AI and Machine Learning')")
    awesome_parser.add_argument("-o", "--output", type=Path, default=None, help="Output file (default: stdout)")

    # report / digest
    report_parser = subparsers.add_parser("report", help="Statistics about your stars")
    report_parser.add_argument("--json", action="store_true", help="Output as JSON")
    report_parser.add_argument("-o", "--output", type=Path, default=None, help="Output file (default: stdout)")

    digest_parser = subparsers.add_parser("digest", help="Most starred repos for your interests")
    digest_parser.add_argument(
        "--interest",
        action="append",
        default=None,
        help="Interest to search (repeatable, default: typescript python golang ai devops)",
    )
    digest_parser.add_argument("-o", "--output", type=Path, default=None, help="Output file (default: stdout)")

    # star / unstar
    star_parser = subparsers.add_parser("star", help="Star repositories")
    star_parser.add_argument("repos", nargs="+", metavar="OWNER/REPO")
    unstar_parser = subparsers.add_parser("unstar", help="Unstar repositories")
    unstar_parser.add_argument("repos", nargs="+", metavar="OWNER/REPO")

    # api subcommand
    api_parser = subparsers.add_parser("api", help="Make a generic cached GitHub API call")
    api_parser.add_argument("endpoint", help="API endpoint path (e.g., repos/owner/repo)")
    api_parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Query parameter (repeatable, e.g., --param per_page=100)",
    )
    api_parser.add_argument("--method", default="GET", help="HTTP method (default: GET)")
    api_parser.add_argument("--skip-cache", action="store_true", help="Skip cache for this call")

    return parser


def _run_backup(args, settings) -> int:
    from .backup import BackupService, KvStore

    store = KvStore(args.db or settings.db_path)

    if args.backup_command == "create":
        from .client import create_client

        with create_client(settings, token=args.token) as client:
            print("Creating backup of starred repositories...")
            meta = BackupService(store, client).create_backup(
                description=args.description,
                tags=_split_tags(args.tags),
                overwrite=args.overwrite,
            )
        print(f"Backup created successfully with ID: {meta.id}")
        _print_meta(meta, "Backed up")
        return 0

    service = BackupService(store)

    if args.backup_command == "list":
        backups = service.list_backups()
        if args.json:
            json.dump([m.to_dict() for m in backups], sys.stdout, indent=2)
            sys.stdout.write("\n")
            return 0
        if not backups:
            print("No backups found.")
            return 0
        print(f"{'ID':<36} {'Created':<26} {'User':<20} {'Count':>6}  Description")
        for m in backups:
            print(f"{m.id:<36} {m.created_at[:25]:<26} {m.username:<20} {m.count:>6}  {m.description or ''}")
        print(f"\nTotal: {len(backups)} backup(s)")
        return 0

    if args.backup_command == "get":
        backup = service.get_backup(args.id)
        if backup is None:
            print(f"Backup with ID '{args.id}' not found.", file=sys.stderr)
            return 1
        if args.json:
            json.dump(backup.to_dict(), sys.stdout, indent=2)
            sys.stdout.write("\n")
            return 0
        print(f"Backup: {backup.meta.id}")
        print(f"Created: {backup.meta.created_at}")
        _print_meta(backup.meta, "Contains")
        print()
        for repo in backup.repositories:
            print(f"  {repo['full_name']:<50} {repo.get('language') or 'N/A':<15} {repo.get('stargazers_count', 0):>8}")
        return 0

    if args.backup_command == "delete":
        if service.get_backup(args.id) is None:
            print(f"Backup with ID '{args.id}' not found.", file=sys.stderr)
            return 1
        if not args.force and not _confirm(f"Are you sure you want to delete backup '{args.id}'?"):
            print("Deletion cancelled.")
            return 0
        service.delete_backup(args.id)
        print(f"Backup '{args.id}' deleted successfully.")
        return 0

    if args.backup_command == "export":
        if service.get_backup(args.id) is None:
            print(f"Backup with ID '{args.id}' not found.", file=sys.stderr)
            return 1
        if args.output.is_file() and not args.force and not _confirm(
            f"File '{args.output}' already exists. Overwrite?"
        ):
            print("Export cancelled.")
            return 0
        service.export_backup(args.id, args.output)
        print(f"Backup exported successfully to '{args.output}'.")
        return 0

    if args.backup_command == "import":
        print(f"Importing backup from '{args.input}'...")
        meta = service.import_backup(
            args.input,
            description=args.description,
            tags=_split_tags(args.tags),
            overwrite=args.overwrite,
        )
        print(f"Backup imported successfully with ID: {meta.id}")
        _print_meta(meta, "Imported")
        return 0

    if args.backup_command == "restore":
        from .client import create_client

        with create_client(settings, token=args.token) as client:
            service.client = client
            stats = service.restore_backup(args.id, dry_run=args.dry_run)
        print(f"\nDone: {stats['restored']} restored, {stats['missing']} missing, {stats['errors']} errors")
        return 1 if stats["errors"] else 0

    print("Usage: github-stars backup {create,list,get,delete,export,import,restore}", file=sys.stderr)
    return 1


def _run(args) -> int:
    from .settings import get_settings

    settings = get_settings()

    if args.command == "backup":
        return _run_backup(args, settings)

    from .client import create_client

    with create_client(settings, token=args.token) as client:
        if args.command == "cleanup":
            from .cleanup import cleanup_stars

            cutoff = args.cutoff_months if args.cutoff_months is not None else settings.cutoff_months
            print(f"Cutoff: {cutoff} months, dry run: {args.dry_run}")
            results = cleanup_stars(
                client,
                cutoff_months=cutoff,
                dry_run=args.dry_run,
                skip_archived=args.skip_archived,
                skip_outdated=args.skip_outdated,
                summary_path=settings.github_step_summary,
            )
            print(
                f"\nDone: {results.total_reviewed} reviewed, {results.removed} removed "
                f"({results.archived} archived, {results.outdated} outdated), "
                f"{results.remaining} remaining, {results.errors} errors"
            )
            return 1 if results.errors else 0

        if args.command == "categorize":
            from .categorize import categorize, write_category_lists

            counts = write_category_lists(categorize(list(client.starred_repos())), args.output_dir)
            for category, count in counts.items():
                print(f"  {category}: {count} repositories")
            print(f"\nDone. Lists written to {args.output_dir}")
            return 0

        if args.command == "awesome":
            from .categorize import render_awesome_list

            _write_output(render_awesome_list(args.keyword, args.title, list(client.starred_repos())), args.output)
            return 0

        if args.command == "report":
            from .report import build_report, render_report

            report = build_report(list(client.starred_repos()))
            text = json.dumps(report, indent=2) + "\n" if args.json else render_report(report)
            _write_output(text, args.output)
            return 0

        if args.command == "digest":
            from .report import build_digest, render_digest

            _write_output(render_digest(build_digest(client, args.interest)), args.output)
            return 0

        if args.command in ("star", "unstar"):
            from .utils import split_full_name

            action = client.star_repo if args.command == "star" else client.unstar_repo
            for full_name in args.repos:
                owner, repo = split_full_name(full_name)
                action(owner, repo)
                print(f"{args.command.capitalize()}red {owner}/{repo}")
            return 0

        if args.command == "api":
            from .api_cache import CachedApi

            params = {}
            for p in args.param:
                k, _, v = p.partition("=")
                params[k] = v

            api = CachedApi(client, settings.cache_dir)
            resp = api.call(args.endpoint, params=params or None, method=args.method, skip_cache=args.skip_cache)
            json.dump(resp.body, sys.stdout, indent=2)
            sys.stdout.write("\n")
            return 0

    return 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return _run(args)
    except GitHubError as e:
        print(f"Error ({e.kind.value}): {e}", file=sys.stderr)
        return 1
    except BackupNotFoundError as e:
        print(f"Error: backup {e.args[0]!r} not found", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
