"""Tests for ResourceEnumerator pagination, dedup and loop-safety cutoffs."""

from __future__ import annotations

import pytest

from resource_watcher.collector.enumerator import (
    EnumerationError,
    PartitionTimeoutError,
    ResourceEnumerator,
)
from resource_watcher.models.resources import ResourcePage
from tests.fakes import ScriptedListingClient, arn, pages

_REGION = "us-east-1"


def _enumerator(client: ScriptedListingClient, **kwargs: object) -> ResourceEnumerator:
    return ResourceEnumerator(client, **kwargs)  # type: ignore[arg-type]


class TestPagination:
    async def test_single_page_without_token(self) -> None:
        client = ScriptedListingClient({_REGION: pages([arn(_REGION, "instance/i-1")])})

        result = await _enumerator(client).enumerate(_REGION)

        assert result == frozenset({arn(_REGION, "instance/i-1")})
        assert len(client.calls[_REGION]) == 1

    async def test_follows_continuation_tokens(self) -> None:
        client = ScriptedListingClient(
            {_REGION: pages([arn(_REGION, "instance/i-1")], [arn(_REGION, "instance/i-2")], [arn(_REGION, "vpc/v")])}
        )

        result = await _enumerator(client).enumerate(_REGION)

        assert len(result) == 3
        tokens = [token for token, _ in client.calls[_REGION]]
        assert tokens == [None, "token-1", "token-2"]

    async def test_empty_string_token_ends_pagination(self) -> None:
        client = ScriptedListingClient({_REGION: pages([arn(_REGION, "instance/i-1")], last_token="")})

        await _enumerator(client).enumerate(_REGION)

        assert len(client.calls[_REGION]) == 1

    async def test_page_size_is_capped_at_100(self) -> None:
        client = ScriptedListingClient({_REGION: pages([arn(_REGION, "instance/i-1")])})

        await _enumerator(client, page_size=500).enumerate(_REGION)

        assert client.calls[_REGION][0][1] == 100

    async def test_empty_region(self) -> None:
        client = ScriptedListingClient({_REGION: [ResourcePage(items=[])]})

        assert await _enumerator(client).enumerate(_REGION) == frozenset()


class TestDeduplication:
    async def test_same_identifier_on_three_pages_appears_once(self) -> None:
        a = arn(_REGION, "instance/i-1")
        b = arn(_REGION, "instance/i-2")
        c = arn(_REGION, "instance/i-3")
        client = ScriptedListingClient({_REGION: pages([a, b], [a, c], [a])})

        result = await _enumerator(client).enumerate(_REGION)

        assert result == frozenset({a, b, c})

    async def test_duplicates_within_one_page(self) -> None:
        a = arn(_REGION, "instance/i-1")
        client = ScriptedListingClient({_REGION: pages([a, a, a])})

        assert await _enumerator(client).enumerate(_REGION) == frozenset({a})

    async def test_high_duplicate_ratio_does_not_stop(self) -> None:
        seen = [arn(_REGION, f"instance/i-{i}") for i in range(10)]
        fresh = arn(_REGION, "instance/new")
        client = ScriptedListingClient({_REGION: pages(seen, [*seen, fresh], [arn(_REGION, "vpc/v")])})

        result = await _enumerator(client).enumerate(_REGION)

        # 10 of 11 items on page two were duplicates, yet page three was fetched.
        assert len(client.calls[_REGION]) == 3
        assert fresh in result


class TestLoopSafety:
    async def test_all_duplicate_page_stops_immediately(self) -> None:
        a = arn(_REGION, "instance/i-1")
        client = ScriptedListingClient({_REGION: [ResourcePage(items=[a], next_token="again")]})

        result = await _enumerator(client, max_empty_pages=3).enumerate(_REGION)

        assert result == frozenset({a})
        assert len(client.calls[_REGION]) == 2

    async def test_empty_pages_with_token_stop_at_ceiling(self) -> None:
        client = ScriptedListingClient({_REGION: [ResourcePage(items=[], next_token="forever")]})

        result = await _enumerator(client, max_empty_pages=3).enumerate(_REGION)

        assert result == frozenset()
        assert len(client.calls[_REGION]) == 3

    async def test_default_empty_ceiling_is_one_page(self) -> None:
        client = ScriptedListingClient({_REGION: [ResourcePage(items=[], next_token="forever")]})

        await _enumerator(client).enumerate(_REGION)

        assert len(client.calls[_REGION]) == 1

    async def test_empty_counter_resets_after_new_items(self) -> None:
        empty = ResourcePage(items=[], next_token="t")
        script: list[ResourcePage | Exception] = [
            empty,
            ResourcePage(items=[arn(_REGION, "instance/i-1")], next_token="t"),
            empty,
            ResourcePage(items=[arn(_REGION, "instance/i-2")], next_token=None),
        ]
        client = ScriptedListingClient({_REGION: script})

        result = await _enumerator(client, max_empty_pages=2).enumerate(_REGION)

        assert len(result) == 2
        assert len(client.calls[_REGION]) == 4

    async def test_request_ceiling_bounds_endless_token_chain(self) -> None:
        counter = iter(range(1000))

        class EndlessClient(ScriptedListingClient):
            async def list_page(self, partition: str, token: str | None, page_size: int) -> ResourcePage:
                self.calls[partition].append((token, page_size))
                return ResourcePage(items=[arn(partition, f"instance/i-{next(counter)}")], next_token="more")

        client = EndlessClient()

        result = await _enumerator(client, max_page_requests=7).enumerate(_REGION)

        assert len(client.calls[_REGION]) == 7
        assert len(result) == 7


class TestFailures:
    async def test_api_error_discards_partial_results(self) -> None:
        script: list[ResourcePage | Exception] = [
            ResourcePage(items=[arn(_REGION, "instance/i-1")], next_token="t"),
            RuntimeError("throttled"),
        ]
        client = ScriptedListingClient({_REGION: script})

        with pytest.raises(EnumerationError, match="throttled") as exc_info:
            await _enumerator(client).enumerate(_REGION)

        assert exc_info.value.partition == _REGION
        assert not isinstance(exc_info.value, PartitionTimeoutError)

    async def test_timeout_raises_partition_timeout(self) -> None:
        client = ScriptedListingClient({_REGION: pages([arn(_REGION, "instance/i-1")])}, delay=0.5)

        with pytest.raises(PartitionTimeoutError) as exc_info:
            await _enumerator(client, timeout_seconds=0.05).enumerate(_REGION)

        assert exc_info.value.partition == _REGION

    def test_invalid_limits_rejected(self) -> None:
        with pytest.raises(ValueError, match="max_page_requests"):
            ResourceEnumerator(ScriptedListingClient(), max_page_requests=0)
        with pytest.raises(ValueError, match="max_empty_pages"):
            ResourceEnumerator(ScriptedListingClient(), max_empty_pages=0)
