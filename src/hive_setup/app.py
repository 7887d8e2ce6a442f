from __future__ import annotations

import argparse
import logging
import sys

from hive_setup.config.settings import Settings, expand_path
from hive_setup.core.errors import UnsupportedPlatformError
from hive_setup.utils.logging_config import configure_logging


__version__ = "0.2.2"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hive", description="Automated hive-mcp setup CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", action="store_true", help="Also show log records on the console.")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser(
        "detect",
        aliases=["check"],
        help="Detect system prerequisites and installed components.",
    )

    setup_parser = subparsers.add_parser(
        "setup",
        aliases=["install"],
        help="Install and configure hive-mcp components.",
    )
    setup_parser.add_argument("--hive-mcp-dir", help="Checkout directory for hive-mcp (default: $HIVE_MCP_DIR or ~/hive-mcp).")
    setup_parser.add_argument(
        "--rollback-on-failure",
        action="store_true",
        help="Undo the failed step and every earlier step when setup fails.",
    )
    setup_parser.add_argument("--quiet", action="store_true", help="Suppress per-step progress lines.")

    doctor_parser = subparsers.add_parser(
        "doctor",
        aliases=["diagnose"],
        help="Diagnose and fix common issues.",
    )
    doctor_parser.add_argument("--fix", "-f", action="store_true", help="Attempt automatic fixes for fixable issues.")

    history_parser = subparsers.add_parser("history", help="List recorded setup runs.")
    history_parser.add_argument("--limit", type=int, default=10, help="Number of runs to show.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_dir, console_level=logging.INFO if args.verbose else logging.WARNING)
    logger = logging.getLogger("hive_setup")

    if args.command in ("detect", "check"):
        from hive_setup.detect.scanner import format_detection_report, run_detection

        print("Detecting system configuration...")
        print()
        report = run_detection(settings)
        print(format_detection_report(report))
        return 0 if report.is_ready else 1

    if args.command in ("setup", "install"):
        from hive_setup.services.setup_service import SetupService

        if args.hive_mcp_dir:
            settings.hive_mcp_dir = expand_path(args.hive_mcp_dir)

        print("🐝 hive-mcp setup")
        print()
        service = SetupService(settings=settings)
        try:
            summary = service.run_setup(
                observer=service.default_observer(quiet=args.quiet),
                rollback_on_failure=args.rollback_on_failure,
            )
        except UnsupportedPlatformError as exc:
            logger.error(str(exc))
            print(f"Setup failed: {exc}")
            return 2

        logger.info("Setup finished: %s", summary.to_dict())
        if not summary.ok:
            print()
            print(f"Setup failed: {summary.error_message}")
            for problem in summary.rollback_errors:
                print(f"  rollback problem: {problem}")
            print("Run 'hive doctor' to diagnose issues.")
            return 1

        print()
        print("Setup complete!")
        print()
        print("Next steps:")
        print("  1. Restart your shell or run: source ~/.bashrc")
        print("  2. Verify with: hive doctor")
        print("  3. Start using: claude")
        return 0

    if args.command in ("doctor", "diagnose"):
        from hive_setup.doctor.report import format_doctor_report, run_doctor, run_fixes

        print("Running hive-mcp health checks...")
        report = run_doctor(settings)
        print(format_doctor_report(report))

        if args.fix:
            if not report.fixable_checks():
                print("\nNo fixable issues found.")
            else:
                print("\nAttempting automatic fixes...")
                fixed, failed = run_fixes(report, stream=sys.stdout)
                print(f"\nFixed {fixed} issue(s), {failed} failed")
                if fixed > 0:
                    print("\nRe-running health checks...")
                    report = run_doctor(settings)
                    print(format_doctor_report(report))
        return 0 if report.is_healthy else 1

    if args.command == "history":
        from hive_setup.services.setup_service import SetupService

        for run in SetupService(settings=settings).history(limit=max(1, args.limit)):
            print(f"#{run['run_id']} {run['created_at']} {run['status']} ({run['platform']})")
            for step in run["steps"]:
                print(f"    {step['outcome']:<9} {step['step_name']}")
            if run["error_message"]:
                print(f"    error: {run['error_message']}")
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
