"""Seed script to create the default roles and permissions.

Usage:
    PYTHONPATH=backend/src python backend/scripts/seed_data.py populate
    PYTHONPATH=backend/src python backend/scripts/seed_data.py populate --admin-password 'secret'

Works against whichever backend DB_BACKEND selects. Existing roles, permissions
and the admin user are left untouched, so the script can be re-run safely.
"""

import argparse
import asyncio
import logging

from core.cache import CacheClient
from core.config import get_settings
from db.session import close_backend, open_backend
from repositories.factory import RepositoryFactory
from services.seed_service import seed_defaults


async def populate(admin_password: str | None = None) -> None:
    """Create missing defaults and report what was added."""
    settings = get_settings()
    cache = CacheClient(
        settings.redis_url,
        enabled=settings.redis_enabled,
        default_ttl=settings.redis_cache_ttl,
        op_timeout=settings.cache_op_timeout,
    )
    await cache.connect()
    backend = await open_backend(settings)
    try:
        repos = RepositoryFactory(settings, backend, cache).create()
        result = await seed_defaults(repos, admin_password=admin_password)
    finally:
        await close_backend(backend)
        await cache.close()

    print(f'  Created permissions: {", ".join(result.permissions) or "none"}')
    print(f'  Created roles: {", ".join(result.roles) or "none"}')
    if admin_password:
        print(f'  Admin user: {"created" if result.admin_created else "already exists"}')
    print('Seed complete.')


def main() -> None:
    """CLI entry point."""
    logging.basicConfig(level=logging.WARNING)
    parser = argparse.ArgumentParser(description='Seed default roles and permissions.')
    subparsers = parser.add_subparsers(dest='command', required=True)

    populate_parser = subparsers.add_parser('populate', help='Create missing defaults')
    populate_parser.add_argument(
        '--admin-password',
        help='Also create an "admin" user holding the admin role',
    )

    args = parser.parse_args()

    if args.command == 'populate':
        asyncio.run(populate(admin_password=args.admin_password))


if __name__ == '__main__':
    main()
