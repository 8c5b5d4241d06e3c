# scripts/reset_usage.py
# Reset the AI symptom-check counter of a guest session or user in Redis.
# Usage: python scripts/reset_usage.py <identity>

import argparse
import logging
import sys

from petcare.services.usage_gate import RedisUsageStore, UsageGate

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def reset_usage(identity: str, client=None) -> int:
    gate = UsageGate(RedisUsageStore(client))
    before = gate.status(identity).count
    gate.reset(identity)
    logger.info(f"✅ Reset usage for {identity} (was {before})")
    return before


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Reset a guest or user symptom-check usage counter.")
    parser.add_argument("identity", help="guest session id or user id")
    args = parser.parse_args(argv)

    try:
        reset_usage(args.identity)
    except Exception as e:
        logger.error(f"❌ Failed to reset usage: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
