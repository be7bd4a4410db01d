#!/usr/bin/env python3
"""Check Web Help Desk authentication status."""

import sys
import asyncio

from whd_client.integrations.whd_client import WHDClient
from whd_client.models.config import Settings
from whd_client.utils.health import health_checker
from whd_client.utils.logger import setup_logging


async def check_auth_status() -> bool:
    """Check if the configured WHD credentials work."""
    settings = Settings()
    setup_logging(log_level=settings.log_level)

    print("Checking WHD authentication status...")
    print(f"WHD URL: {settings.whd_url}")
    print(f"Username: {settings.whd_username or '(none)'}")
    print(f"Auth type: {settings.whd_auth_type.name.lower()}")
    print(f"SSL verify: {settings.whd_ssl_verify}")

    async with WHDClient.from_settings(settings) as client:
        health = await health_checker.check_whd_api(client)

    status = health.get('status', 'unknown')
    print(f"Health Status: {status}")

    if status == 'healthy':
        print(f"\nAuthentication successful ({health['response_time_ms']:.0f} ms).")
    elif status == 'authentication_required':
        print("\nAuthentication failed, check WHD_USERNAME / WHD_PASSWORD / WHD_API_KEY.")
    else:
        print(f"\nUnexpected status: {health}")

    return status == 'healthy'


async def main() -> bool:
    """Main function."""
    print("Web Help Desk Authentication Status Checker\n")
    return await check_auth_status()


if __name__ == "__main__":
    try:
        result = asyncio.run(main())
        sys.exit(0 if result else 1)
    except KeyboardInterrupt:
        print("\nCancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
