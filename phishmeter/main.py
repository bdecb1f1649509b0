"""Command-line entry point for PhishMeter."""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path

from .analyzer import PageSnapshot, RiskEvaluator, TablesLoader, TableStore
from .analyzer.models import Analysis
from .config import Config, load_config, validate_config
from .monitoring.health import HealthServer
from .service import PeriodicTasks, ProtectionService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr),
    ],
)
logger = logging.getLogger(__name__)


def format_analysis(analysis: Analysis) -> str:
    """Human-readable report for one analysis."""
    lines = [
        f"URL:     {analysis.url}",
        f"Domain:  {analysis.domain or '-'}",
        f"Score:   {analysis.overall_score}/100 ({str(analysis.risk_level)})",
    ]
    if analysis.checks:
        lines.append("Checks:")
        for name, result in analysis.checks.items():
            lines.append(f"  {name:<18} {result.score:>3} {str(result.status)}")
    if analysis.threats:
        lines.append("Threats:")
        lines.extend(f"  - {threat}" for threat in analysis.threats)
    return "\n".join(lines)


def run_scan(config: Config, url: str, html_file: Path | None = None, as_json: bool = False) -> int:
    """Evaluate one URL and print the result. Exit code is the risk level (0-2)."""
    evaluator = RiskEvaluator(TableStore(TablesLoader(config.config_dir)), config.risk_thresholds)

    if html_file is not None:
        snapshot = PageSnapshot.from_html(html_file.read_text(errors="replace"), url)
        analysis = evaluator.evaluate_page(url, snapshot)
    else:
        analysis = evaluator.evaluate_url(url)

    if as_json:
        print(json.dumps(analysis.to_dict(), indent=2))
    else:
        print(format_analysis(analysis))
    return int(analysis.risk_level)


async def run_server(config: Config) -> None:
    """Run the protection service with its periodic tasks and HTTP endpoints."""
    service = ProtectionService(config)
    tasks = PeriodicTasks(service)
    health = HealthServer(
        host=config.health_host,
        port=config.health_port,
        status_provider=service.status,
        scan_provider=service.scan,
        enabled=config.health_enabled,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await tasks.start()
    await health.start()
    logger.info("PhishMeter running (tables v%s)", service.store.current().version)
    try:
        await stop_event.wait()
    finally:
        await health.stop()
        await tasks.stop()
        logger.info("PhishMeter stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="phishmeter", description="Heuristic phishing risk scoring")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Score a single URL")
    scan.add_argument("url")
    scan.add_argument("--html", type=Path, help="Saved page HTML to run page checks against")
    scan.add_argument("--json", action="store_true", help="Print the analysis as JSON")

    sub.add_parser("serve", help="Run the protection service with health/scan endpoints")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)
    config = load_config()

    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        return 1

    if args.command == "scan":
        return run_scan(config, args.url, html_file=args.html, as_json=args.json)

    asyncio.run(run_server(config))
    return 0


if __name__ == "__main__":
    sys.exit(main())
