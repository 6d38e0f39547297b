"""
Upstream reachability monitor.

Probes a cheap, real upstream endpoint on a fixed interval and tracks
consecutive failures. Only after ``failure_threshold`` failures in a row is the
upstream reported offline and the advisory banner raised. A user can dismiss the
banner; the dismissal time is persisted and keeps the banner down for
``dismiss_cooldown`` seconds while probing carries on.

The monitor is purely observational: it never retries, blocks, or influences
request forwarding.
"""

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

import httpx

from storefront_gateway.core.exceptions import ProbeFailure, ProbeTimeout
from storefront_gateway.core.storage import BANNER_DISMISSED_KEY, KeyValueStore
from storefront_gateway.models.schemas import HealthSnapshot

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]
Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class HealthStatus(str, Enum):
    CHECKING = "checking"
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass
class HealthState:
    status: HealthStatus = HealthStatus.CHECKING
    consecutive_failures: int = 0
    dismissed_until: Optional[int] = None
    banner_visible: bool = False


class HttpProbe:
    """GET a low-cost upstream endpoint; any status below 500 counts as reachable."""

    def __init__(self, client: httpx.AsyncClient, url: str, timeout: float = 5.0):
        self.client = client
        self.url = url
        self.timeout = timeout

    async def __call__(self) -> bool:
        try:
            response = await self.client.get(
                self.url,
                headers={"cache-control": "no-store"},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ProbeTimeout(f"Probe to {self.url} timed out") from e
        except httpx.RequestError as e:
            raise ProbeFailure(f"Probe to {self.url} failed: {e}") from e

        return response.status_code < 500


class HealthMonitor:
    def __init__(
        self,
        probe: Probe,
        store: KeyValueStore,
        clock: Clock = time.time,
        sleep: Sleep = asyncio.sleep,
        failure_threshold: int = 3,
        dismiss_cooldown: float = 300.0,
        startup_delay: float = 2.0,
        interval: float = 30.0,
        probe_timeout: float = 5.0,
    ):
        self.probe = probe
        self.store = store
        self.clock = clock
        self.sleep = sleep
        self.failure_threshold = failure_threshold
        self.dismiss_cooldown = dismiss_cooldown
        self.startup_delay = startup_delay
        self.interval = interval
        self.probe_timeout = probe_timeout

        self.state = HealthState(dismissed_until=self._load_dismissed_until())
        self._task: Optional[asyncio.Task] = None

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _load_dismissed_until(self) -> Optional[int]:
        dismissed_at = self.store.get(BANNER_DISMISSED_KEY)
        if isinstance(dismissed_at, bool) or not isinstance(dismissed_at, (int, float)):
            return None
        return int(dismissed_at + self.dismiss_cooldown * 1000)

    def is_suppressed(self) -> bool:
        dismissed_until = self.state.dismissed_until
        return dismissed_until is not None and self._now_ms() < dismissed_until

    def record_success(self) -> None:
        if self.state.status is not HealthStatus.ONLINE:
            logger.info("Upstream is online")
        self.state.consecutive_failures = 0
        self.state.status = HealthStatus.ONLINE
        self.state.banner_visible = False

    def record_failure(self) -> None:
        self.state.consecutive_failures += 1
        if self.state.consecutive_failures < self.failure_threshold:
            return

        if self.state.status is not HealthStatus.OFFLINE:
            logger.warning(
                "Upstream marked offline after %d consecutive failed probes",
                self.state.consecutive_failures,
            )
        self.state.status = HealthStatus.OFFLINE
        if not self.is_suppressed():
            self.state.banner_visible = True

    def dismiss(self) -> None:
        """Hide the banner and keep it down for the cooldown window."""
        now = self._now_ms()
        self.store.set(BANNER_DISMISSED_KEY, now)
        self.state.dismissed_until = now + int(self.dismiss_cooldown * 1000)
        self.state.banner_visible = False
        logger.info("Backend status banner dismissed for %.0fs", self.dismiss_cooldown)

    async def probe_once(self) -> bool:
        """Run one probe and fold its outcome into the state. Never raises."""
        try:
            healthy = await asyncio.wait_for(self.probe(), timeout=self.probe_timeout)
        except asyncio.TimeoutError:
            logger.warning("Health probe aborted after %.1fs", self.probe_timeout)
            healthy = False
        except ProbeFailure as e:
            logger.warning("Health probe failed: %s", e)
            healthy = False
        except Exception:
            logger.error("Unexpected error in health probe", exc_info=True)
            healthy = False

        if healthy:
            self.record_success()
        else:
            self.record_failure()
        return healthy

    async def run(self) -> None:
        await self.sleep(self.startup_delay)
        while True:
            await self.probe_once()
            await self.sleep(self.interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="health-monitor")
            logger.info(
                "Health monitor started (interval %.0fs, threshold %d)",
                self.interval,
                self.failure_threshold,
            )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Health monitor stopped")

    def snapshot(self) -> HealthSnapshot:
        return HealthSnapshot(
            status=self.state.status.value,
            consecutive_failures=self.state.consecutive_failures,
            dismissed_until=self.state.dismissed_until,
            banner_visible=self.state.banner_visible,
        )
