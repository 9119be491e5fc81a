#!/usr/bin/env python3
"""
Runner script for VibeCheck.

This script prepares the local database, optionally seeds it with synthetic
reports, and serves the API.
"""

import asyncio
import argparse
from datetime import datetime

import uvicorn

from vibecheck.core.config import settings
from vibecheck.core.logging import logger
from vibecheck.core.database import init_db
from vibecheck.seed import seed_database


async def main():
    """Main entry point."""
    # Parse command line arguments
    parser = argparse.ArgumentParser(description="VibeCheck runner")
    parser.add_argument("--no-api", action="store_true", help="Don't start the API server")
    parser.add_argument("--seed-days", type=int, default=0, help="Seed this many days of synthetic reports")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for synthetic reports")
    args = parser.parse_args()

    try:
        # Print banner
        print("\n" + "=" * 80)
        print(f"{settings.PROJECT_NAME} v{settings.VERSION}")
        print(f"Starting at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print("=" * 80 + "\n")

        if settings.STORE_BACKEND == "sql":
            logger.info("Initializing database")
            init_db()

            if args.seed_days > 0:
                logger.info(f"Seeding {args.seed_days} days of synthetic reports")
                await seed_database(days=args.seed_days, seed=args.seed)
        elif args.seed_days > 0:
            logger.warning("Seeding is only supported for the sql store backend")

        # Start API server if enabled
        if not args.no_api:
            logger.info(f"Starting API server on {settings.API_HOST}:{settings.API_PORT}")
            config = uvicorn.Config(
                "vibecheck.main:app",
                host=settings.API_HOST,
                port=settings.API_PORT,
                log_level="info",
                reload=settings.DEBUG
            )
            server = uvicorn.Server(config)
            await server.serve()
        else:
            logger.info("API server disabled, exiting after setup")

    except Exception as e:
        logger.error(f"Error in main: {e}", exc_info=True)
    finally:
        logger.info("Shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
