"""Health check utilities for monitoring WHD availability."""

from typing import Dict, Any, Optional, TYPE_CHECKING
from datetime import datetime, timedelta, timezone
from whd_client.utils.logger import get_logger

if TYPE_CHECKING:
    from whd_client.integrations.whd_client import WHDClient

logger = get_logger(__name__)


class HealthChecker:
    """Health checker caching the last WHD check result."""

    def __init__(self, check_interval: timedelta = timedelta(minutes=5)):
        self.last_checks = {}
        self.check_interval = check_interval

    async def check_whd_api(self, client: "WHDClient") -> Dict[str, Any]:
        """Check WHD connectivity and credentials, caching the result."""
        start_time = datetime.now(timezone.utc)
        result = await client.health_check()

        if result.get("status") != "healthy":
            logger.warning(f"WHD health check: {result}")

        result = {
            **result,
            "timestamp": start_time.isoformat(),
            "url": client.base_url
        }
        self.last_checks[client.base_url] = {
            "result": result,
            "timestamp": start_time
        }
        return result

    def get_cached_health(self, base_url: str) -> Optional[Dict[str, Any]]:
        """Get cached health check result if recent enough."""
        cached = self.last_checks.get(base_url)
        if cached:
            age = datetime.now(timezone.utc) - cached["timestamp"]
            if age < self.check_interval:
                return cached["result"]
        return None


# Global health checker instance
health_checker = HealthChecker()
