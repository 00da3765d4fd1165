#!/usr/bin/env python3
"""
MongoDB Database Initialization Script for Tubely.

Creates the indexes on the ``videos`` collection and, on request, seeds a
draft video plus a bearer token for manual testing of the upload endpoints.
Safe to run repeatedly; index creation is idempotent.

Usage:
    python scripts/init_db.py [options]

Options:
    --drop              Drop the videos collection first (WARNING: destructive)
    --seed-user [UUID]  Insert a draft video for UUID (new user if omitted)
                        and print a bearer token for it
    --title TITLE       Title of the seeded draft video
    --verbose           Display detailed operation logs

Configuration is read the same way the service reads it (environment
variables or ``.env``): MONGODB_URI, MONGODB_DB_NAME, JWT_SECRET, ...
"""

import argparse
import asyncio
import sys
from uuid import UUID, uuid4

from tubely.config import Settings, get_settings
from tubely.core.auth import create_access_token
from tubely.core.database import VIDEOS_COLLECTION, DatabaseClient
from tubely.models.video import Video
from tubely.services.video_store import RecordStoreError, VideoStore
from tubely.utils.logger import setup_logging


def parse_arguments() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Initialize the Tubely MongoDB database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/init_db.py                  # Create indexes
  python scripts/init_db.py --drop           # Drop videos first (DESTRUCTIVE)
  python scripts/init_db.py --seed-user      # Seed a draft video for a new user
        """,
    )

    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop the videos collection before creating indexes (WARNING: destructive)",
    )
    parser.add_argument(
        "--seed-user",
        nargs="?",
        const="",
        default=None,
        metavar="UUID",
        help="Seed a draft video owned by UUID (a new id when omitted) and print a token",
    )
    parser.add_argument("--title", default="Sample video", help="Title of the seeded video")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Display detailed operation logs"
    )

    return parser.parse_args()


async def seed_video(client: DatabaseClient, settings: Settings, user_id: str, title: str) -> None:
    store = VideoStore(client.get_videos_collection())
    video = await store.create(Video(user_id=user_id, title=title))
    token = create_access_token(user_id, settings)

    print(f"\nSeeded video {video.id} for user {user_id}")
    print(f"Bearer token (expires in {settings.jwt_expiration_hours}h):\n{token}\n")
    print("Try:")
    print(
        f"  curl -H 'Authorization: Bearer <token>' "
        f"-F 'video=@clip.mp4;type=video/mp4' "
        f"{settings.public_base_url}/api/v1/upload/video/{video.id}"
    )


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    client = DatabaseClient(settings)

    if not await client.connect():
        print("\nFailed to connect to MongoDB. Exiting.")
        return 1

    try:
        if args.drop:
            confirmation = input(
                f"\nWARNING: This will DELETE ALL DATA in '{VIDEOS_COLLECTION}'.\n"
                "Type 'yes' to confirm: "
            )
            if confirmation.lower() != "yes":
                print("Operation cancelled.")
                return 0
            await client.get_database().drop_collection(VIDEOS_COLLECTION)
            print(f"Dropped collection '{VIDEOS_COLLECTION}'")

        await client.create_indexes()
        print(f"Indexes ready on '{VIDEOS_COLLECTION}'")

        if args.seed_user is not None:
            try:
                user_id = str(UUID(args.seed_user)) if args.seed_user else str(uuid4())
            except ValueError:
                print(f"\nNot a UUID: {args.seed_user}")
                return 2
            await seed_video(client, settings, user_id, args.title)

        return 0

    except RecordStoreError as e:
        print(f"\nFailed to seed video: {e}")
        return 1

    finally:
        await client.close()


def main() -> int:
    """
    Main entry point for the database initialization script.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    args = parse_arguments()
    setup_logging(log_level="DEBUG" if args.verbose else "WARNING", json_logs=False)

    print("\n" + "=" * 60)
    print("Tubely - MongoDB Database Initialization")
    print("=" * 60 + "\n")

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\n\nInitialization interrupted by user.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
