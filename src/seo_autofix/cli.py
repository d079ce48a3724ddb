"""Command-line interface for the SEO auto-fix engine.

Usage:
    seo-autofix fix <website_id> --user USER [--apply] [--types T ...] [--max-changes N]
    seo-autofix fix-types <website_id> --user USER
    seo-autofix issues <website_id> --user USER [--status S ...]
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .fixer.orchestrator import RemediationOrchestrator
from .models import FixOptions, IssueStatus
from .storage import SQLiteStore

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="seo-autofix",
        description="SEO auto-fix engine - remediate tracked SEO issues",
    )
    parser.add_argument("--db", help="Path to the SQLite database (default: from config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # fix command
    fix_parser = subparsers.add_parser("fix", help="Fix tracked SEO issues (dry run by default)")
    fix_parser.add_argument("website_id", help="Website ID")
    fix_parser.add_argument("--user", "-u", required=True, help="Owner user ID")
    fix_parser.add_argument(
        "--apply", action="store_true",
        help="Apply fixes to the content platform (default: dry run)"
    )
    fix_parser.add_argument(
        "--types", "-t", nargs="+", metavar="TYPE",
        help="Only fix these issue types"
    )
    fix_parser.add_argument(
        "--max-changes", "-m", type=int,
        help="Maximum number of issues to fix (default: all)"
    )
    fix_parser.add_argument("--skip-backup", action="store_true", help="Do not record a backup")
    fix_parser.add_argument("--no-reanalysis", action="store_true", help="Skip score reanalysis")
    fix_parser.add_argument(
        "--force-reanalysis", action="store_true",
        help="Reanalyze even when no fix succeeded"
    )
    fix_parser.add_argument(
        "--delay", type=float,
        help="Seconds to wait before reanalysis (default: from config)"
    )

    # fix-types command
    types_parser = subparsers.add_parser("fix-types", help="Show fixable issue types")
    types_parser.add_argument("website_id", help="Website ID")
    types_parser.add_argument("--user", "-u", required=True, help="Owner user ID")

    # issues command
    issues_parser = subparsers.add_parser("issues", help="List tracked issues")
    issues_parser.add_argument("website_id", help="Website ID")
    issues_parser.add_argument("--user", "-u", required=True, help="Owner user ID")
    issues_parser.add_argument(
        "--status", "-s", nargs="+", choices=[s.value for s in IssueStatus],
        help="Only show issues in these statuses"
    )

    return parser


def cmd_fix(args):
    """Handle fix command."""
    store = SQLiteStore(args.db)
    orchestrator = RemediationOrchestrator(store)
    options = FixOptions(
        fix_types=args.types,
        max_changes=args.max_changes,
        skip_backup=args.skip_backup,
        enable_reanalysis=not args.no_reanalysis,
        force_reanalysis=args.force_reanalysis,
        reanalysis_delay=args.delay,
    )

    mode = "[bold red]APPLY[/bold red]" if args.apply else "[bold]DRY RUN[/bold]"
    console.print(f"{mode} website {args.website_id}")

    result = orchestrator.analyze_and_fix_sync(
        args.website_id, args.user, dry_run=not args.apply, options=options
    )

    if result.fixes_applied:
        table = Table(title=f"Fixes ({result.fix_session_id})")
        table.add_column("Type", style="cyan")
        table.add_column("Impact")
        table.add_column("Result")
        table.add_column("Description")
        for fix in result.fixes_applied:
            table.add_row(
                fix.type,
                fix.impact,
                "[green]ok[/green]" if fix.success else f"[red]{fix.error or 'failed'}[/red]",
                fix.description[:80],
            )
        console.print(table)

    for error in result.errors or []:
        console.print(f"[red]{error}[/red]")

    color = "green" if result.success else "red"
    console.print(f"[{color}]{result.message}[/{color}]")
    if not result.success:
        sys.exit(1)


def cmd_fix_types(args):
    """Handle fix-types command."""
    store = SQLiteStore(args.db)
    available = RemediationOrchestrator(store).get_available_fix_types(args.website_id, args.user)

    if not available.total_fixable_issues:
        console.print("[dim]No fixable issues[/dim]")
        return

    table = Table(title=f"Fixable issues (est. {available.estimated_time})")
    table.add_column("Type", style="cyan")
    table.add_column("Count", justify="right")
    for issue_type, count in available.breakdown.items():
        table.add_row(issue_type, str(count))
    console.print(table)


def cmd_issues(args):
    """Handle issues command."""
    store = SQLiteStore(args.db)
    issues = store.get_tracked_seo_issues(args.website_id, args.user, statuses=args.status)

    if not issues:
        console.print("[dim]No tracked issues found[/dim]")
        return

    table = Table(title=f"Tracked issues for {args.website_id}")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Severity")
    table.add_column("Status")
    table.add_column("Fixed")

    for issue in issues:
        table.add_row(
            issue.id,
            issue.issue_type,
            issue.severity,
            issue.status,
            issue.fixed_at.strftime("%Y-%m-%d %H:%M") if issue.fixed_at else "",
        )

    console.print(table)


def main():
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "fix": cmd_fix,
        "fix-types": cmd_fix_types,
        "issues": cmd_issues,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        cmd_func(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
