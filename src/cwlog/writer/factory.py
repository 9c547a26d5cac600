# src/cwlog/writer/factory.py
"""Factory functions for creating a LogWriter from configuration.

This module is the glue between WriterSettings and a running LogWriter:
1. Building the boto3 CloudWatch Logs client (region/profile aware)
2. Wrapping it in the delivery and provisioning adapters
3. Creating the LogWriter with the runtime config

Usage:
    settings = load_settings(Path("cwlog.yaml"))
    writer = create_writer(settings)
"""

from __future__ import annotations

from typing import Any

import boto3
import structlog
from botocore.config import Config

from cwlog import __version__
from cwlog.core.clock import DEFAULT_CLOCK, Clock
from cwlog.core.config import WriterSettings
from cwlog.destinations.cloudwatch import CloudWatchLogsClient, CloudWatchProvisioner
from cwlog.writer.events import Destination
from cwlog.writer.writer import LogWriter, WriterConfig

logger = structlog.get_logger(__name__)


def create_logs_client(settings: WriterSettings) -> Any:
    """Build a boto3 CloudWatch Logs client for the configured account.

    Credentials and region follow the usual boto3 resolution chain unless
    settings pin a profile or region.
    """
    session = boto3.session.Session(
        profile_name=settings.profile,
        region_name=settings.region,
    )
    return session.client(
        "logs",
        config=Config(user_agent_extra=f"cwlog/{__version__}"),
    )


def create_writer(
    settings: WriterSettings,
    *,
    logs_client: Any | None = None,
    clock: Clock = DEFAULT_CLOCK,
) -> LogWriter:
    """Create a LogWriter from settings.

    Args:
        settings: Validated writer settings
        logs_client: Pre-built boto3 ``logs`` client. Built from settings
            when None.
        clock: Source of event timestamps

    Returns:
        A started LogWriter. The caller owns it and must close() it.
    """
    if logs_client is None:
        logs_client = create_logs_client(settings)

    destination = Destination(settings.log_group, settings.log_stream)
    provisioner = CloudWatchProvisioner(logs_client) if settings.create_destination else None

    logger.debug(
        "Creating log writer",
        destination=str(destination),
        create_destination=settings.create_destination,
        max_batch_bytes=settings.max_batch_bytes,
        max_batch_events=settings.max_batch_events,
    )
    return LogWriter(
        destination,
        CloudWatchLogsClient(logs_client),
        provisioner=provisioner,
        config=WriterConfig.from_settings(settings),
        clock=clock,
    )
