"""Tests for identifier parsing and ignore-pattern matching."""

from __future__ import annotations

import pytest

from resource_watcher.filters import filter_identifiers, matches
from resource_watcher.identifiers import MalformedIdentifierError, parse_identifier
from resource_watcher.models.resources import IdentifierParts

_INSTANCE = "arn:aws:ec2:us-east-1:123:instance/i-1"


class TestParseIdentifier:
    def test_six_fields(self) -> None:
        parts = parse_identifier(_INSTANCE)
        assert parts == IdentifierParts("arn", "aws", "ec2", "us-east-1", "123", "instance/i-1")

    def test_extra_colons_stay_in_resource_field(self) -> None:
        parts = parse_identifier("arn:aws:logs:eu-west-1:123:log-group:/aws/lambda/fn")
        assert parts.resource == "log-group:/aws/lambda/fn"
        assert parts.service == "logs"

    def test_empty_fields_are_kept(self) -> None:
        parts = parse_identifier("arn:aws:s3:::my-bucket")
        assert parts.region == ""
        assert parts.account == ""
        assert parts.resource == "my-bucket"

    @pytest.mark.parametrize("value", ["", "arn", "arn:aws:s3::bucket", "not-an-arn"])
    def test_too_few_fields_raise(self, value: str) -> None:
        with pytest.raises(MalformedIdentifierError, match="at least 6"):
            parse_identifier(value)

    def test_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_identifier("arn:aws")


class TestMatches:
    def test_type_wildcard_with_slash(self) -> None:
        assert matches(_INSTANCE, "arn:aws:ec2:*:*:instance/*") is True

    def test_bucket_pattern_does_not_match_instance(self) -> None:
        assert matches(_INSTANCE, "arn:aws:s3:::bucket") is False

    def test_five_field_pattern_never_matches(self) -> None:
        assert matches(_INSTANCE, "arn:aws:ec2:*:instance/*") is False
        assert matches(_INSTANCE, "arn:*:*:*:*") is False

    def test_malformed_identifier_never_matches(self) -> None:
        assert matches("garbage", "arn:*:*:*:*:*") is False

    def test_empty_fields_match_anything(self) -> None:
        assert matches(_INSTANCE, "arn:aws:ec2:::instance/i-1") is True

    def test_service_mismatch(self) -> None:
        assert matches(_INSTANCE, "arn:aws:s3:*:*:*") is False

    def test_region_exact(self) -> None:
        assert matches(_INSTANCE, "arn:aws:ec2:us-east-1:*:*") is True
        assert matches(_INSTANCE, "arn:aws:ec2:eu-west-1:*:*") is False

    def test_account_exact(self) -> None:
        assert matches(_INSTANCE, "arn:aws:ec2:*:123:*") is True
        assert matches(_INSTANCE, "arn:aws:ec2:*:999:*") is False

    def test_bare_star_resource(self) -> None:
        assert matches(_INSTANCE, "arn:aws:ec2:*:*:*") is True

    def test_exact_resource(self) -> None:
        assert matches(_INSTANCE, "arn:aws:ec2:*:*:instance/i-1") is True
        assert matches(_INSTANCE, "arn:aws:ec2:*:*:instance/i-2") is False

    def test_type_wildcard_is_not_a_plain_prefix(self) -> None:
        assert matches("arn:aws:ec2:us-east-1:123:instance-profile/x", "arn:aws:ec2:*:*:instance/*") is False

    def test_colon_type_wildcard(self) -> None:
        log_group = "arn:aws:logs:eu-west-1:123:log-group:/aws/lambda/fn"
        assert matches(log_group, "arn:aws:logs:*:*:log-group:*") is True
        assert matches(log_group, "arn:aws:logs:*:*:log-stream:*") is False

    def test_suffix_forms_are_interchangeable(self) -> None:
        assert matches(_INSTANCE, "arn:aws:ec2:*:*:instance:*") is True
        assert matches("arn:aws:logs:r:1:log-group:x", "arn:aws:logs:*:*:log-group/*") is True

    def test_partition_mismatch(self) -> None:
        assert matches(_INSTANCE, "arn:aws-cn:ec2:*:*:*") is False


class TestFilterIdentifiers:
    def test_empty_patterns_is_noop(self) -> None:
        identifiers = [_INSTANCE, "whatever"]
        assert filter_identifiers(identifiers, []) == identifiers

    def test_drops_identifiers_matching_any_pattern(self) -> None:
        identifiers = [
            "arn:aws:ec2:us-east-1:123:instance/i-1",
            "arn:aws:ec2:us-east-1:123:volume/vol-1",
            "arn:aws:s3:::bucket-a",
        ]
        kept = filter_identifiers(
            identifiers,
            ["arn:aws:ec2:*:*:instance/*", "arn:aws:s3:::*"],
        )
        assert kept == ["arn:aws:ec2:us-east-1:123:volume/vol-1"]

    def test_malformed_identifiers_are_kept(self) -> None:
        kept = filter_identifiers(["broken", _INSTANCE], ["arn:*:*:*:*:*"])
        assert kept == ["broken"]

    def test_malformed_pattern_filters_nothing(self) -> None:
        assert filter_identifiers([_INSTANCE], ["arn:aws:ec2"]) == [_INSTANCE]
