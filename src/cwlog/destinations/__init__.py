"""Delivery backends.

Available destinations:
- CloudWatchLogsClient: PutLogEvents over a boto3 ``logs`` client
- CloudWatchProvisioner: creates missing log groups and streams

Usage:
    from cwlog.destinations import CloudWatchLogsClient, CloudWatchProvisioner
"""

from cwlog.destinations.cloudwatch import CloudWatchLogsClient, CloudWatchProvisioner

__all__ = [
    "CloudWatchLogsClient",
    "CloudWatchProvisioner",
]
