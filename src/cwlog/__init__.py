"""
cwlog: ship line-oriented output to CloudWatch Logs.

Reads a byte stream, splits it into log events and delivers them in order
to a CloudWatch Logs stream, keeping the sequence token chain intact.
"""

__version__ = "0.2.0"
