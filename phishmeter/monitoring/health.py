"""Minimal health/metrics server for PhishMeter."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from aiohttp import web

from ..analyzer.models import Analysis

logger = logging.getLogger(__name__)


class HealthServer:
    """Serves lightweight health, metrics and on-demand scan endpoints."""

    def __init__(
        self,
        host: str,
        port: int,
        status_provider: Callable[[], dict],
        scan_provider: Optional[Callable[[str], Optional[Analysis]]] = None,
        enabled: bool = True,
    ):
        self.host = host
        self.port = port
        self.status_provider = status_provider
        self.scan_provider = scan_provider
        self.enabled = enabled
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/healthz", self._handle_health)
        app.router.add_get("/metrics", self._handle_metrics)
        if self.scan_provider is not None:
            app.router.add_get("/scan", self._handle_scan)
        return app

    async def start(self):
        """Start the health server."""
        if not self.enabled:
            logger.info("Health server disabled")
            return

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("Health server listening on %s:%s", self.host, self.port)

    async def stop(self):
        """Stop the health server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None

    def _status(self) -> dict:
        try:
            return dict(self.status_provider() or {})
        except Exception as exc:  # pragma: no cover
            logger.warning("Status provider failed: %s", exc)
            return {"status": "error", "message": str(exc)}

    async def _handle_health(self, request):  # noqa: ANN001
        """Return JSON health status."""
        payload = self._status()
        payload.setdefault("status", "ok")
        return web.json_response(payload, headers={"Access-Control-Allow-Origin": "*"})

    async def _handle_metrics(self, request):  # noqa: ANN001
        """Expose numeric status fields as text metrics (Prometheus-ish)."""
        data = self._status()

        lines = []
        for key, value in data.items():
            metric_key = str(key).replace(".", "_").replace("-", "_")
            if isinstance(value, bool):
                lines.append(f"phishmeter_{metric_key} {int(value)}")
            elif isinstance(value, (int, float)):
                lines.append(f"phishmeter_{metric_key} {value}")
        if not lines:
            lines.append('phishmeter_status{state="empty"} 1')

        return web.Response(text="\n".join(lines) + "\n")

    async def _handle_scan(self, request):  # noqa: ANN001
        """Evaluate ``?url=`` and return the analysis as JSON."""
        url = (request.query.get("url") or "").strip()
        if not url:
            return web.json_response({"error": "missing url parameter"}, status=400)

        analysis = await asyncio.to_thread(self.scan_provider, url)
        if analysis is None:
            return web.json_response({"url": url, "skipped": True})
        return web.json_response(analysis.to_dict())
