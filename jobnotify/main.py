"""Command-line entry point for the job notifier service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from jobnotify.config.environment import EnvironmentConfig
from jobnotify.config.exceptions import ConfigurationError
from jobnotify.config.loader import load_config
from jobnotify.config.models import AppConfig
from jobnotify.feed.client import FeedClient
from jobnotify.logging import get_logger
from jobnotify.logging.config import configure_logging
from jobnotify.normalization.service import ListingNormalizer
from jobnotify.notifications.channel import LineNotifyChannel
from jobnotify.notifications.models import MessageLinks
from jobnotify.notifications.service import DeliveryWorker
from jobnotify.persistence.database import close_database, init_database
from jobnotify.pipeline import NotifyPipeline
from jobnotify.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")

RUN_STAGES = ("refresh", "notify", "deliver")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def build_pipeline(app_config: AppConfig, env_config: EnvironmentConfig) -> NotifyPipeline:
    """Wire the feed client, channel and worker into a pipeline."""
    normalizer = ListingNormalizer(
        rules=app_config.accessibility,
        feed_client=FeedClient(app_config.feed),
    )
    worker = DeliveryWorker(
        channel=LineNotifyChannel(app_config.notify),
        links=MessageLinks(
            view_base_url=env_config.backend_host,
            settings_url=env_config.frontend_host,
            unsubscribe_url=app_config.notify.unsubscribe_url,
        ),
        delivery_config=app_config.delivery,
    )
    return NotifyPipeline(
        app_config=app_config,
        env_config=env_config,
        normalizer=normalizer,
        worker=worker,
    )


def run_stage(pipeline: NotifyPipeline, stage: str) -> int:
    """Run one stage synchronously and return the process exit code."""
    if stage == "refresh":
        result = pipeline.refresh_listings()
        logger.info(
            f"Refresh finished: {result.listing_count} listings",
            extra={"event": "service.run.completed", "stage": stage, "had_errors": result.had_errors},
        )
    elif stage == "notify":
        result = pipeline.run_notify_cycle()
        logger.info(
            f"Notify cycle finished: {result.new_count} new listings, "
            f"{result.jobs_enqueued} jobs enqueued",
            extra={"event": "service.run.completed", "stage": stage, "had_errors": result.had_errors},
        )
    elif stage == "deliver":
        result = pipeline.handle_delivery_batch()
        logger.info(
            f"Delivery batch finished: {len(result.outcomes)} jobs handled",
            extra={"event": "service.run.completed", "stage": stage, "had_errors": result.had_errors},
        )
    else:
        raise ValueError(f"Unknown stage: {stage}")

    return 1 if result.had_errors else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Job notifier - daily civil-service listing alerts over LINE Notify"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml if present, else built-in defaults)",
    )
    parser.add_argument(
        "--run",
        choices=RUN_STAGES,
        default=None,
        help="Run a single stage immediately and exit instead of starting the scheduler",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Job notifier starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "run": args.run,
            },
        )

        init_database(env_config.database_url)
        pipeline = build_pipeline(app_config, env_config)

        if args.run:
            try:
                return run_stage(pipeline, args.run)
            finally:
                close_database()

        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(
            refresh_callable=pipeline.refresh_listings,
            notify_callable=pipeline.run_notify_cycle,
            delivery_callable=pipeline.handle_delivery_batch,
            schedule=app_config.schedule,
            shutdown_event=shutdown_event,
        )

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler_service.shutdown(wait=False)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler_service.start()
        logger.info(
            "Scheduler started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            scheduler_service.shutdown(wait=False)
        finally:
            close_database()

        logger.info(
            "Job notifier stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
