#!/usr/bin/env python3
"""
Audit shortlisted matches against their conversations.

Run: python scripts/audit_shortlist_conversations.py [--repair] [--json]

Reports shortlisted matches without a conversation and shortlist events
that were never delivered. With --repair, re-runs conversation get-or-create
for every shortlisted match that lacks one and for every event that ran out
of retries, then marks those events delivered.

Exit codes:
  0 - Healthy (every shortlisted match has a conversation)
  1 - Issues found (missing conversations or exhausted events remain)
  2 - Audit failed (database not configured or unreachable)
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

try:
    from matcher import database
    from matcher.services.audit import ShortlistAuditService
    from matcher.services.conversation_store import build_conversation_store
except ImportError as e:
    print(f"ERROR: Failed to import required modules: {e}")
    print("Make sure you're running from the project root and dependencies are installed.")
    sys.exit(2)


def format_report(report: dict) -> str:
    """
    Format audit report as human-readable text

    Args:
        report: Audit report dict from ShortlistAuditService

    Returns:
        Formatted report string
    """
    lines = []
    lines.append("=" * 80)
    lines.append("SHORTLIST CONVERSATION AUDIT REPORT")
    lines.append("=" * 80)
    lines.append("")

    summary = report["summary"]
    lines.append("SUMMARY")
    lines.append("-" * 80)
    lines.append(f"Audit Timestamp:           {summary['audit_timestamp']}")
    lines.append(f"Conversation Check:        {summary['conversation_check']}")
    lines.append(f"Shortlisted Matches:       {summary['shortlisted_matches']}")
    lines.append(f"Missing Conversations:     {summary['missing_conversations']}")
    lines.append(f"Undelivered Events:        {summary['undelivered_events']}")
    lines.append(f"Exhausted Events:          {summary['exhausted_events']}")
    lines.append("")

    missing = report["missing_match_ids"]
    if missing:
        lines.append("MATCHES WITHOUT CONVERSATION")
        lines.append("-" * 80)
        for match_id in missing[:20]:
            lines.append(f"  - Match {match_id}")
        if len(missing) > 20:
            lines.append(f"  ... and {len(missing) - 20} more")
        lines.append("")

    events = report["undelivered_events"]
    if events:
        lines.append("UNDELIVERED SHORTLIST EVENTS")
        lines.append("-" * 80)
        for event in events[:20]:
            state = "EXHAUSTED" if event["exhausted"] else "pending"
            lines.append(
                f"  - Event {event['outbox_message_id']} (match {event['match_id']}): "
                f"{event['retry_count']}/{event['max_retries']} retries, {state}"
            )
            if event["error_message"]:
                lines.append(f"      last error: {event['error_message']}")
        if len(events) > 20:
            lines.append(f"  ... and {len(events) - 20} more")
        lines.append("")

    repair = report["repair"]
    if repair is not None:
        lines.append("REPAIR")
        lines.append("-" * 80)
        lines.append(f"Attempted:                 {repair['attempted']}")
        lines.append(f"Repaired:                  {repair['repaired']}")
        lines.append(f"Events closed:             {repair['events_closed']}")
        lines.append(f"Still missing:             {repair['remaining_missing']}")
        lines.append(f"Still exhausted:           {repair['remaining_exhausted']}")
        for failure in repair["failures"][:10]:
            lines.append(f"  - Match {failure['match_id']}: {failure['error']}")
        lines.append("")

    lines.append("=" * 80)

    return "\n".join(lines)


def main():
    """Main audit script entry point"""
    parser = argparse.ArgumentParser(
        description="Audit shortlisted matches for missing conversations"
    )
    parser.add_argument(
        "--repair",
        action="store_true",
        help="Create missing conversations (idempotent get-or-create)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw JSON report instead of the text report"
    )
    args = parser.parse_args()

    try:
        database.init_db()
        if database.SessionLocal is None:
            print("ERROR: Database not configured. Set DATABASE_URL environment variable.")
            sys.exit(2)
    except Exception as e:
        print(f"ERROR: Failed to connect to database: {e}")
        sys.exit(2)

    try:
        audit_service = ShortlistAuditService(
            database.SessionLocal,
            build_conversation_store(database.SessionLocal),
        )
        report = audit_service.run_audit(repair=args.repair)
    except Exception as e:
        print(f"ERROR: Audit failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(2)

    if args.json:
        print(json.dumps(report, indent=2, default=str))
    else:
        print(format_report(report))

    if report["healthy"]:
        print("\n✓ AUDIT PASSED: Every shortlisted match has a conversation")
        sys.exit(0)
    else:
        print("\n✗ AUDIT FAILED: Shortlisted matches without conversation remain")
        sys.exit(1)


if __name__ == "__main__":
    main()
