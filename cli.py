#!/usr/bin/env python3
"""
CLI script for running a single Instagram business audit
Usage: python cli.py <handle | @handle | profile URL> [--output report.json]
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add backend to Python path
backend_path = Path(__file__).parent / "backend"
sys.path.insert(0, str(backend_path))

from audit.analyzer import ProfileAuditor  # noqa: E402
from core.config import Settings  # noqa: E402
from core.errors import AuditError  # noqa: E402
from core.logging_config import configure_logging  # noqa: E402
from utils.helpers import report_filename, save_json_file  # noqa: E402


def build_parser():
    parser = argparse.ArgumentParser(description="Run an Instagram business audit with Gemini.")
    parser.add_argument("profile", help="Instagram handle, @handle or profile URL")
    parser.add_argument("--output", type=Path, help="Write the full report JSON to this path")
    return parser


def main(argv=None):
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        settings = Settings.from_env()
        settings.require_api_key()
        auditor = ProfileAuditor(settings=settings)
        result = asyncio.run(auditor.analyze(args.profile))
    except AuditError as e:
        print(f"Error: {e.user_message}", file=sys.stderr)
        print(f"  ({type(e).__name__}: {e})", file=sys.stderr)
        return 1

    report = result.to_json_dict()
    if args.output:
        save_json_file(report, args.output)
        print(f"Report saved to: {args.output}")
    else:
        print(json.dumps(report, indent=2, ensure_ascii=False))

    info = result.basic_info
    print(f"\n📊 {info.business_name} (@{info.handle})", file=sys.stderr)
    print(f"  - Overall score: {result.diagnosis.overall_score}/10", file=sys.stderr)
    print(f"  - Competitors: {len(result.competitors)}", file=sys.stderr)
    print(f"  - Sources: {len(result.sources)}", file=sys.stderr)
    print(f"  - PDF filename: {report_filename(info.business_name)}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
