#!/usr/bin/env python3
"""
Mailbox Poll Script

Runs one ingestion pass over a user's Outlook mailbox, for cron jobs or
manual triggering. Run at most one poll per tenant at a time.

Usage:
    python poll_mailbox.py --tenant-id <uuid> --user-id <uuid>
    python poll_mailbox.py --tenant-id <uuid> --user-id <uuid> --deals
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from uuid import UUID

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.client import get_supabase
from services.ingestion_config import IngestionConfig, MailCredentials
from services.offer_ingestion_service import OfferIngestor
from services.outlook_mail import MailCredentialError, MailFetchError, OutlookMailbox


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Ingest buyer offer replies from an Outlook mailbox",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replies to the user's sent lot batches
  python poll_mailbox.py --tenant-id 2f1c... --user-id 9a7e...

  # Replies on the tenant's deal threads
  python poll_mailbox.py --tenant-id 2f1c... --user-id 9a7e... --deals
        """
    )

    parser.add_argument(
        "--tenant-id",
        required=True,
        type=UUID,
        help="Tenant whose batches/threads replies are matched against"
    )

    parser.add_argument(
        "--user-id",
        required=True,
        type=UUID,
        help="User whose Outlook mailbox is polled"
    )

    parser.add_argument(
        "--deals",
        action="store_true",
        help="Poll deal-thread replies instead of lot batch replies"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        db = get_supabase()
        config = IngestionConfig.from_env()
        mailbox = OutlookMailbox(db, config, MailCredentials.from_env())
        ingestor = OfferIngestor(db, mailbox, config)

        print(f"Polling {'deal threads' if args.deals else 'lot batches'}...")
        if args.deals:
            result = ingestor.poll_deal_threads(args.tenant_id, args.user_id)
        else:
            result = ingestor.poll_lot_batches(args.tenant_id, args.user_id)

        print()
        print("=" * 60)
        print("POLL SUMMARY")
        print("=" * 60)
        print(f"Processed: {result.processed}")
        for kind, count in result.counts().items():
            print(f"  {kind:<16} {count}")
        print("=" * 60)

        return 0

    except (MailCredentialError, MailFetchError) as e:
        print(f"\nMAILBOX ERROR: {e}", file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        print("\n\nPoll interrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
