"""
Backfill icp_id on company analyzer outputs written before migration 003.

For each output with no icp_id, links the first ICP of the same user whose
company name or website matches.

Usage:
    python scripts/backfill_icp_id.py            # Link matching outputs
    python scripts/backfill_icp_id.py --dry-run  # Report matches without writing
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from personaops import config
from personaops.db import models
from personaops.logging_config import setup_logging

logger = logging.getLogger("personaops.scripts.backfill")


def backfill(dry_run: bool = False) -> dict:
    """Link unlinked analyzer outputs to ICPs.

    Returns {"scanned": int, "linked": int}.
    """
    outputs = models.list_analyzer_outputs(unlinked_only=True)
    linked = 0
    for output in outputs:
        icp = models.find_matching_icp(output["user_id"], output["company_name"], output["website"])
        if not icp:
            continue
        logger.info("Output %s -> ICP %s%s", output["id"], icp["id"], " (dry run)" if dry_run else "")
        if not dry_run:
            models.link_analyzer_output_to_icp(output["id"], icp["id"])
        linked += 1
    return {"scanned": len(outputs), "linked": linked}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Backfill icp_id on company analyzer outputs")
    parser.add_argument("--dry-run", action="store_true", help="Report matches without writing")
    args = parser.parse_args(argv)

    setup_logging(config.LOG_LEVEL, config.LOG_FORMAT, config.LOG_FILE)
    result = backfill(dry_run=args.dry_run)
    verb = "Would link" if args.dry_run else "Linked"
    print(f"{verb} {result['linked']} of {result['scanned']} unlinked analyzer outputs")
    return result


if __name__ == "__main__":
    main()
