"""Command-line overview of a user's collection."""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from wordlab.app import WordLab
from wordlab.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def overview(app: WordLab, user_id: str) -> List[str]:
    """Sign user_id in and describe the dashboard."""
    await app.sign_in(user_id)
    lines = [
        f"Words: {len(app.collection)}",
        f"Due (all words): {app.global_due_count()}",
    ]
    for group in app.groups():
        lines.append(f"{group.title} ({group.subtitle}): {group.due} due, {group.mastered}/{group.total} mastered")
    profile = await app.profile()
    lines.append(f"Learned: {profile.learned}, mastered: {profile.mastered} ({profile.mastery_percent}%)")
    lines.append(f"Study time: {profile.time_label}")
    return lines


async def run(user_id: str) -> None:
    """Print the overview of user_id."""
    app = WordLab()
    try:
        await app.start()
        for line in await overview(app, user_id):
            print(line)
    finally:
        await app.stop()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="wordlab", description=__doc__)
    parser.add_argument("user_id", help="id of the user to describe")
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    args = parser.parse_args(argv)

    setup_logging("Starting WordLab ...", level=args.log_level)

    try:
        asyncio.run(run(args.user_id))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
