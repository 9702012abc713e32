"""
PRACTICE CONSOLE - Audit Report
===============================
Builds the demo store, applies an audit filter and prints a summary.

Usage: python scripts/audit_report.py --severity critical --top 5 --csv out/audit.csv
"""

import argparse
import sys
from pathlib import Path

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

from practice_console.audit import AuditFilter, daily_activity, export_audit_logs_csv
from practice_console.auth import build_demo_store
from practice_console.config import configure_logging, get_settings
from practice_console.service import AdminService

logger = logging.getLogger(__name__)


def build_filter(args: argparse.Namespace) -> AuditFilter:
    return AuditFilter(
        user_id=args.user,
        action=args.action,
        severity=args.severity,
        module=args.module,
        search=args.search,
        success=False if args.failed_only else None,
    )


def run_report(args: argparse.Namespace) -> int:
    settings = get_settings()
    service = AdminService(build_demo_store(seed=args.seed, settings=settings), settings)

    logs = service.filter_audit_logs(build_filter(args), sort_by=args.sort)
    summary = service.audit_summary(logs)

    logger.info("=" * 60)
    logger.info(f"{settings.APP_NAME.upper()} - AUDIT REPORT")
    logger.info("=" * 60)
    logger.info(f"Matching events: {summary.total_events} of {len(service.list_audit_logs())}")
    logger.info(f"Failed events: {summary.failed_events}")
    logger.info(f"Security events: {summary.security_events}")

    for title, groups in (("By action", summary.by_action),
                          ("By severity", summary.by_severity),
                          ("By module", summary.by_module)):
        logger.info(f"{title}:")
        for group in groups:
            logger.info(f"  {group.key:<16} {group.count}")

    logger.info(f"Top {args.top} users:")
    for activity in summary.by_user[:args.top]:
        logger.info(f"  {activity.user_name:<28} {activity.count}")

    if args.daily:
        logger.info("Daily activity:\n" + daily_activity(logs).to_string(index=False))

    if args.csv:
        path = export_audit_logs_csv(logs, args.csv)
        logger.info(f"CSV written to: {path}")

    return 0 if summary.total_events else 1


def main():
    parser = argparse.ArgumentParser(description="Summarize the demo audit log")
    parser.add_argument("--seed", type=int, default=None, help="Demo data seed (default: DEMO_SEED)")
    parser.add_argument("--user", help="Only events by this user id")
    parser.add_argument("--action", nargs="+", help="Audit actions to include")
    parser.add_argument("--severity", nargs="+", help="Severities to include")
    parser.add_argument("--module", nargs="+", help="Modules to include")
    parser.add_argument("--search", help="Text in description, user name or resource")
    parser.add_argument("--failed-only", action="store_true", help="Only failed events")
    parser.add_argument("--sort", default=None, help="Sort field (default: log order)")
    parser.add_argument("--top", type=int, default=10, help="Number of top users to list")
    parser.add_argument("--daily", action="store_true", help="Print per-day severity counts")
    parser.add_argument("--csv", help="Write matching events to this CSV path")

    args = parser.parse_args()
    configure_logging()
    sys.exit(run_report(args))


if __name__ == "__main__":
    main()
