import pytest

from frrk8s.community import (
    BGPCommunityLarge,
    BGPCommunityLegacy,
    CommunityError,
    InvalidCommunityFormatError,
    InvalidCommunityValueError,
    is_large,
    is_legacy,
    parse_community,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("12345:12345", BGPCommunityLegacy(12345, 12345)),
        ("large:12345:12345:12345", BGPCommunityLarge(12345, 12345, 12345)),
    ],
)
def test_parse_valid(text, expected):
    assert parse_community(text) == expected


@pytest.mark.parametrize(
    "text, error, message",
    [
        ("12345", InvalidCommunityFormatError, "invalid community format: 12345"),
        (
            "larg:12345:12345:12345",
            InvalidCommunityValueError,
            "invalid community value: invalid marker for large community",
        ),
        ("large:12345:wrong:12345", InvalidCommunityValueError, "invalid community value: invalid section"),
        ("12345:12345:12345", InvalidCommunityFormatError, "invalid community format: 12345:12345:12345"),
    ],
)
def test_parse_invalid(text, error, message):
    with pytest.raises(error) as info:
        parse_community(text)
    assert message in str(info.value)


@pytest.mark.parametrize("text", ["65536:1", "+1:1", "1: 2", "large:1:2:4294967296"])
def test_parse_rejects_out_of_range_and_signs(text):
    with pytest.raises(InvalidCommunityValueError):
        parse_community(text)


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        parse_community("12345")
    with pytest.raises(CommunityError):
        parse_community("large:x:1:1")


@pytest.mark.parametrize(
    "left, right, expected",
    [
        ("0:1234", "0:2345", True),
        ("large:1234:0:0", "large:1234:0:1", True),
        ("large:1235:0:0", "large:1234:1:0", False),
        ("0:1234", "large:123:456:789", False),
    ],
)
def test_less_than(left, right, expected):
    assert parse_community(left).less_than(parse_community(right)) is expected
    assert (parse_community(left) < parse_community(right)) is expected


@pytest.mark.parametrize("text, output", [("0:1234", "0:1234"), ("large:1:2:3", "1:2:3")])
def test_string(text, output):
    assert str(parse_community(text)) == output


def test_to_uint32():
    community = parse_community("0:1234")
    assert community.to_uint32() == 1234


def test_legacy_sorts_as_large_with_zero_tail():
    legacy = parse_community("0:1234")
    large = parse_community("large:1234:0:0")
    assert not legacy.less_than(large)
    assert not large.less_than(legacy)


def test_kind_predicates():
    legacy = parse_community("12345:12345")
    large = parse_community("large:1:2:3")
    assert is_legacy(legacy) and not is_large(legacy)
    assert is_large(large) and not is_legacy(large)