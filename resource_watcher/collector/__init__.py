"""Collector package for resource-watcher.

Lists the resources of an AWS account region by region.

Submodules
----------
enumerator -- ResourceEnumerator: pagination with dedup and loop-safety cutoffs.
aws_client -- AWSResourceClient: boto3 listing client (tagging API, EC2, STS).
"""

from resource_watcher.collector.enumerator import (
    EnumerationError,
    ListingClient,
    PartitionTimeoutError,
    ResourceEnumerator,
)

__all__ = [
    "EnumerationError",
    "ListingClient",
    "PartitionTimeoutError",
    "ResourceEnumerator",
]
