"""boto3-backed listing client.

Uses the Resource Groups Tagging API (``GetResources``) for per-region
listings, EC2 ``DescribeRegions`` for region discovery and STS
``GetCallerIdentity`` for the account id. boto3 is synchronous, so every
call is pushed onto the default thread-pool executor to keep the event loop
responsive.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any

import boto3
import botocore.session
from botocore.config import Config
from botocore.credentials import RefreshableCredentials, create_assume_role_refresher

from resource_watcher.models.resources import ResourcePage
from resource_watcher.observability.logging import get_logger

_logger = get_logger("collector.aws")

_ROLE_SESSION_NAME = "resource-watcher"

_BOTO_CONFIG = Config(
    retries={"max_attempts": 5, "mode": "standard"},
    connect_timeout=10,
    read_timeout=30,
)


def build_session(region: str, role_arn: str = "") -> boto3.Session:
    """Create a boto3 session, assuming *role_arn* when one is given.

    Without a role the default credential chain applies (environment,
    shared config, web identity, instance profile). With a role, the
    session holds refreshable credentials: STS ``AssumeRole`` is called
    again through the source session shortly before each set expires.
    """
    source = boto3.Session(region_name=region)
    if not role_arn:
        return source

    _logger.info("assuming_role", role_arn=role_arn)
    refresh = create_assume_role_refresher(
        source.client("sts", config=_BOTO_CONFIG),
        {"RoleArn": role_arn, "RoleSessionName": _ROLE_SESSION_NAME},
    )
    credentials = RefreshableCredentials.create_from_metadata(
        metadata=refresh(),
        refresh_using=refresh,
        method="assume-role",
    )
    core = botocore.session.get_session()
    # botocore only loads credentials when none are set on the session.
    core._credentials = credentials
    return boto3.Session(botocore_session=core, region_name=region)


class AWSResourceClient:
    """Implements the ListingClient protocol on top of a boto3 session.

    Clients are created once and reused across cycles.
    """

    def __init__(self, session: boto3.Session) -> None:
        self._session = session
        self._tagging_clients: dict[str, Any] = {}
        self._global_clients: dict[str, Any] = {}

    async def _run(self, func: Any, /, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, **kwargs))

    def _tagging_client(self, region: str) -> Any:
        client = self._tagging_clients.get(region)
        if client is None:
            client = self._session.client("resourcegroupstaggingapi", region_name=region, config=_BOTO_CONFIG)
            self._tagging_clients[region] = client
        return client

    def _client(self, service: str) -> Any:
        client = self._global_clients.get(service)
        if client is None:
            client = self._session.client(service, config=_BOTO_CONFIG)
            self._global_clients[service] = client
        return client

    async def get_account_id(self) -> str:
        identity = await self._run(self._client("sts").get_caller_identity)
        return str(identity["Account"])

    async def list_partitions(self) -> list[str]:
        response = await self._run(self._client("ec2").describe_regions)
        return sorted(r["RegionName"] for r in response.get("Regions", []) if r.get("RegionName"))

    async def list_page(self, partition: str, token: str | None, page_size: int) -> ResourcePage:
        client = self._tagging_client(partition)
        kwargs: dict[str, Any] = {"ResourcesPerPage": page_size}
        if token:
            kwargs["PaginationToken"] = token
        response = await self._run(client.get_resources, **kwargs)

        items = [
            mapping["ResourceARN"]
            for mapping in response.get("ResourceTagMappingList", [])
            if mapping.get("ResourceARN")
        ]
        # The API signals the last page with an empty string rather than omitting the token.
        next_token = response.get("PaginationToken") or None
        return ResourcePage(items=items, next_token=next_token)
