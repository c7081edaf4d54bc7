"""Resource types of the frrk8s.metallb.io/v1beta1 API group."""

import dataclasses
import re
import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from fractions import Fraction
from functools import lru_cache
from typing import Any, Union, get_args, get_origin

GROUP = "frrk8s.metallb.io"
VERSION = "v1beta1"
API_VERSION = f"{GROUP}/{VERSION}"

# JSON keys of the neighbor credential fields.
PASSWORD = "password"
_CREDENTIAL_REF_JSON = "passwordSecret"


class AllowMode(str, Enum):
    """How the prefixes of a neighbor are handled."""

    ALL = "all"
    FILTERED = "filtered"


class InvalidSelectorError(ValueError):
    """A label selector that cannot be turned into a matcher."""


# --- durations -------------------------------------------------------------

_DURATION_PART = re.compile(r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|\u00b5s|\u03bcs|ms|s|m|h)")
_UNIT_NS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"1m30s"`` (microsecond resolution)."""
    if not isinstance(text, str):
        raise TypeError(f"duration must be a string, got {type(text).__name__}")
    sign, body = (text[0], text[1:]) if text and text[0] in "+-" else ("", text)
    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"invalid duration {text!r}")
    total = Fraction(0)
    pos = 0
    while pos < len(body):
        match = _DURATION_PART.match(body, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        try:
            number = Fraction(Decimal(match.group(1)))
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration {text!r}") from exc
        total += number * _UNIT_NS[match.group(2)]
        pos = match.end()
    micros = round(total / 1000)
    return timedelta(microseconds=-micros if sign == "-" else micros)


def _fraction_text(amount: int, unit: int) -> str:
    whole, rest = divmod(amount, unit)
    if not rest:
        return str(whole)
    digits = str(rest).zfill(len(str(unit)) - 1).rstrip("0")
    return f"{whole}.{digits}"


def format_duration(value: timedelta) -> str:
    """Format a duration the way the API serialises it, e.g. ``"3m0s"``."""
    ns = ((value.days * 86400 + value.seconds) * 1_000_000 + value.microseconds) * 1000
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_fraction_text(ns, 1_000)}\u00b5s"
    if ns < 1_000_000_000:
        return f"{sign}{_fraction_text(ns, 1_000_000)}ms"
    hours, rest = divmod(ns, 3_600_000_000_000)
    minutes, rest = divmod(rest, 60_000_000_000)
    seconds = _fraction_text(rest, 1_000_000_000) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return sign + seconds


# --- field helpers ---------------------------------------------------------


def _opt(key: str, **kwargs: Any) -> Any:
    return field(metadata={"json": key, "omitempty": True}, **kwargs)


def _req(key: str, **kwargs: Any) -> Any:
    return field(metadata={"json": key, "omitempty": False}, **kwargs)


# --- label selectors -------------------------------------------------------

_NAME = re.compile(r"([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]")
_DNS_SUBDOMAIN = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*")
_OPERATORS_WITH_VALUES = {"In", "NotIn"}
_OPERATORS_WITHOUT_VALUES = {"Exists", "DoesNotExist"}


def _check_key(key: str) -> None:
    parts = key.split("/")
    if len(parts) == 1:
        name = key
    elif len(parts) == 2:
        prefix, name = parts
        if not prefix or len(prefix) > 253 or not _DNS_SUBDOMAIN.fullmatch(prefix):
            raise InvalidSelectorError(f"invalid label key {key!r}: prefix must be a DNS subdomain")
    else:
        raise InvalidSelectorError(f"invalid label key {key!r}: too many '/' separators")
    if not name or len(name) > 63 or not _NAME.fullmatch(name):
        raise InvalidSelectorError(f"invalid label key {key!r}: name part is not a valid qualified name")


def _check_value(value: str) -> None:
    if len(value) > 63 or (value and not _NAME.fullmatch(value)):
        raise InvalidSelectorError(f"invalid label value {value!r}")


@dataclass
class LabelSelectorRequirement:
    """A single ``key operator values`` expression of a selector."""

    key: str = _req("key", default="")
    operator: str = _req("operator", default="")
    values: list[str] = _opt("values", default_factory=list)

    def validate(self) -> None:
        _check_key(self.key)
        if self.operator in _OPERATORS_WITH_VALUES:
            if not self.values:
                raise InvalidSelectorError(f"operator {self.operator} requires at least one value")
        elif self.operator in _OPERATORS_WITHOUT_VALUES:
            if self.values:
                raise InvalidSelectorError(f"operator {self.operator} does not take values")
        else:
            raise InvalidSelectorError(f"{self.operator!r} is not a valid label selector operator")
        for value in self.values:
            _check_value(value)

    def matches(self, labels: Mapping[str, str]) -> bool:
        present = self.key in labels
        if self.operator == "In":
            return present and labels[self.key] in self.values
        if self.operator == "NotIn":
            return not present or labels[self.key] not in self.values
        if self.operator == "Exists":
            return present
        return not present


@dataclass
class LabelSelector:
    """Selects objects by their labels; an empty selector matches everything."""

    match_labels: dict[str, str] = _opt("matchLabels", default_factory=dict)
    match_expressions: list[LabelSelectorRequirement] = _opt("matchExpressions", default_factory=list)

    def validate(self) -> None:
        """Raise InvalidSelectorError if the selector is malformed."""
        for key, value in self.match_labels.items():
            _check_key(key)
            _check_value(value)
        for requirement in self.match_expressions:
            requirement.validate()

    def matches(self, labels: Mapping[str, str]) -> bool:
        """Whether the given labels satisfy every term of the selector."""
        self.validate()
        return all(labels.get(k) == v and k in labels for k, v in self.match_labels.items()) and all(
            r.matches(labels) for r in self.match_expressions
        )


# --- resources -------------------------------------------------------------


@dataclass
class ObjectMeta:
    name: str = _opt("name", default="")
    namespace: str = _opt("namespace", default="")
    labels: dict[str, str] = _opt("labels", default_factory=dict)


@dataclass
class SecretReference:
    name: str = _opt("name", default="")
    namespace: str = _opt("namespace", default="")


@dataclass
class RawConfig:
    """Raw FRR configuration appended to the rendered one, by priority."""

    priority: int = _opt("priority", default=0)
    config: str = _opt("rawConfig", default="")


@dataclass
class PrefixSelector:
    prefix: str = _opt("prefix", default="")
    le: int = _opt("le", default=0)
    ge: int = _opt("ge", default=0)


@dataclass
class AllowedInPrefixes:
    prefixes: list[PrefixSelector] = _opt("prefixes", default_factory=list)
    mode: AllowMode | None = _opt("mode", default=None)


@dataclass
class AllowedOutPrefixes:
    prefixes: list[str] = _opt("prefixes", default_factory=list)
    mode: AllowMode | None = _opt("mode", default=None)


@dataclass
class LocalPrefPrefixes:
    prefixes: list[str] = _opt("prefixes", default_factory=list)
    local_pref: int = _opt("localPref", default=0)


@dataclass
class CommunityPrefixes:
    prefixes: list[str] = _opt("prefixes", default_factory=list)
    community: str = _opt("community", default="")


@dataclass
class Advertise:
    allowed: AllowedOutPrefixes = _opt("allowed", default_factory=AllowedOutPrefixes)
    prefixes_with_local_pref: list[LocalPrefPrefixes] = _opt("withLocalPref", default_factory=list)
    prefixes_with_community: list[CommunityPrefixes] = _opt("withCommunity", default_factory=list)


@dataclass
class Receive:
    allowed: AllowedInPrefixes = _opt("allowed", default_factory=AllowedInPrefixes)


@dataclass
class BFDProfile:
    name: str = _req("name", default="")
    receive_interval: int | None = _opt("receiveInterval", default=None)
    transmit_interval: int | None = _opt("transmitInterval", default=None)
    detect_multiplier: int | None = _opt("detectMultiplier", default=None)
    echo_interval: int | None = _opt("echoInterval", default=None)
    echo_mode: bool | None = _opt("echoMode", default=None)
    passive_mode: bool | None = _opt("passiveMode", default=None)
    minimum_ttl: int | None = _opt("minimumTtl", default=None)


@dataclass
class Neighbor:
    asn: int = _req("asn", default=0)
    address: str = _req("address", default="")
    port: int | None = _opt("port", default=None)
    password: str = _opt(PASSWORD, default_factory=str)
    password_secret: SecretReference = _opt(_CREDENTIAL_REF_JSON, default_factory=SecretReference)
    hold_time: timedelta | None = _opt("holdTime", default=None)
    keepalive_time: timedelta | None = _opt("keepaliveTime", default=None)
    connect_time: timedelta | None = _opt("connectTime", default=None)
    ebgp_multi_hop: bool = _opt("ebgpMultiHop", default=False)
    bfd_profile: str = _opt("bfdProfile", default="")
    to_advertise: Advertise = _opt("toAdvertise", default_factory=Advertise)
    to_receive: Receive = _opt("toReceive", default_factory=Receive)


@dataclass
class Router:
    asn: int = _req("asn", default=0)
    id: str = _opt("id", default="")
    vrf: str = _opt("vrf", default="")
    neighbors: list[Neighbor] = _opt("neighbors", default_factory=list)
    prefixes: list[str] = _opt("prefixes", default_factory=list)


@dataclass
class BGPConfig:
    routers: list[Router] = _req("routers", default_factory=list)
    bfd_profiles: list[BFDProfile] = _opt("bfdProfiles", default_factory=list)


@dataclass
class FRRConfigurationSpec:
    bgp: BGPConfig = _opt("bgp", default_factory=BGPConfig)
    raw: RawConfig = _opt("raw", default_factory=RawConfig)
    node_selector: LabelSelector = _opt("nodeSelector", default_factory=LabelSelector)


@dataclass
class FRRConfiguration:
    """A piece of FRR configuration."""

    api_version: str = _req("apiVersion", default=API_VERSION, init=False)
    kind: str = _req("kind", default="FRRConfiguration", init=False)
    metadata: ObjectMeta = _opt("metadata", default_factory=ObjectMeta)
    spec: FRRConfigurationSpec = _opt("spec", default_factory=FRRConfigurationSpec)


@dataclass
class FRRConfigurationList:
    api_version: str = _req("apiVersion", default=API_VERSION, init=False)
    kind: str = _req("kind", default="FRRConfigurationList", init=False)
    items: list[FRRConfiguration] = _req("items", default_factory=list)


@dataclass
class FRRNodeStateStatus:
    running_config: str = _opt("runningConfig", default="")
    last_conversion_result: str = _opt("lastConversionResult", default="")
    last_reload_result: str = _opt("lastReloadResult", default="")


@dataclass
class FRRNodeState:
    """The status of the FRR instance running on a node."""

    api_version: str = _req("apiVersion", default=API_VERSION, init=False)
    kind: str = _req("kind", default="FRRNodeState", init=False)
    metadata: ObjectMeta = _opt("metadata", default_factory=ObjectMeta)
    status: FRRNodeStateStatus = _opt("status", default_factory=FRRNodeStateStatus)


@dataclass
class FRRNodeStateList:
    api_version: str = _req("apiVersion", default=API_VERSION, init=False)
    kind: str = _req("kind", default="FRRNodeStateList", init=False)
    items: list[FRRNodeState] = _req("items", default_factory=list)


# --- serialisation ---------------------------------------------------------


@lru_cache(maxsize=None)
def _hints(cls: type) -> dict[str, Any]:
    return {f.name: f.type for f in dataclasses.fields(cls)}


def _json_key(f: dataclasses.Field) -> str:
    return f.metadata.get("json", f.name)


def _unwrap_optional(tp: Any) -> tuple[Any, bool]:
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return tp, False


def _is_empty(value: Any, tp: Any) -> bool:
    _, optional = _unwrap_optional(tp)
    if optional or value is None:
        return value is None
    if dataclasses.is_dataclass(value):
        return False
    if isinstance(value, bool):
        return value is False
    if isinstance(value, (int, str, list, dict)):
        return not value
    return False


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_dict(value)
    if isinstance(value, timedelta):
        return format_duration(value)
    if isinstance(value, list):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    return value


def to_dict(obj: Any) -> dict[str, Any]:
    """Serialise an API object to its JSON-compatible form."""
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        raise TypeError(f"expected an API object, got {type(obj).__name__}")
    hints = _hints(type(obj))
    out: dict[str, Any] = {}
    for f in dataclasses.fields(obj):
        value = getattr(obj, f.name)
        if f.metadata.get("omitempty", False) and _is_empty(value, hints[f.name]):
            continue
        out[_json_key(f)] = _encode(value)
    return out


def _decode(tp: Any, value: Any, where: str) -> Any:
    tp, optional = _unwrap_optional(tp)
    origin = get_origin(tp)
    if dataclasses.is_dataclass(tp):
        return from_dict(tp, value)
    if origin is list:
        if not isinstance(value, list):
            raise TypeError(f"{where}: expected a list, got {type(value).__name__}")
        (item_type,) = get_args(tp)
        return [_decode(item_type, item, f"{where}[{i}]") for i, item in enumerate(value)]
    if origin is dict:
        if not isinstance(value, Mapping):
            raise TypeError(f"{where}: expected an object, got {type(value).__name__}")
        _, value_type = get_args(tp)
        return {str(k): _decode(value_type, v, f"{where}.{k}") for k, v in value.items()}
    if tp is timedelta:
        return parse_duration(value)
    if isinstance(tp, type) and issubclass(tp, Enum):
        if not isinstance(value, str):
            raise TypeError(f"{where}: expected a string, got {type(value).__name__}")
        if value == "" and optional:
            return None
        try:
            return tp(value)
        except ValueError as exc:
            raise ValueError(f"{where}: invalid value {value!r}") from exc
    if tp is bool:
        if not isinstance(value, bool):
            raise TypeError(f"{where}: expected a boolean, got {type(value).__name__}")
        return value
    if tp is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{where}: expected an integer, got {type(value).__name__}")
        return value
    if tp is str:
        if not isinstance(value, str):
            raise TypeError(f"{where}: expected a string, got {type(value).__name__}")
        return value
    raise TypeError(f"{where}: unsupported field type {tp!r}")


def from_dict(kind: type, data: Mapping[str, Any]) -> Any:
    """Build an API object of class ``kind`` from its JSON-compatible form."""
    if not (isinstance(kind, type) and dataclasses.is_dataclass(kind)):
        raise TypeError(f"{kind!r} is not an API type")
    if not isinstance(data, Mapping):
        raise TypeError(f"expected an object for {kind.__name__}, got {type(data).__name__}")
    hints = _hints(kind)
    values: dict[str, Any] = {}
    for f in dataclasses.fields(kind):
        if not f.init:
            continue
        key = _json_key(f)
        raw = data.get(key)
        if raw is None:
            continue
        values[f.name] = _decode(hints[f.name], raw, f"{kind.__name__}.{key}")
    return kind(**values)