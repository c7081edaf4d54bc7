"""Prometheus metrics of the BGP and BFD sessions of an FRR instance."""

from __future__ import annotations

import ipaddress
import json
import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from .vtysh import Cli, VtyshError, run_vtysh, vrfs

NAMESPACE = "frrk8s"
BGP_SUBSYSTEM = "bgp"
BFD_SUBSYSTEM = "bfd"
LABELS = ("peer", "vrf")


class _Metric(NamedTuple):
    name: str
    help: str


SESSION_UP = _Metric("session_up", "BGP session state (1 is up, 0 is down)")
UPDATES_SENT = _Metric("updates_total", "Number of BGP UPDATE messages sent")
PREFIXES = _Metric("announced_prefixes_total", "Number of prefixes currently being advertised on the BGP session")
RECEIVED_PREFIXES = _Metric("received_prefixes_total", "Number of prefixes currently being received on the BGP session")


class MetricType(str, Enum):
    GAUGE = "gauge"
    COUNTER = "counter"


@dataclass(frozen=True)
class MetricDesc:
    """The fully qualified name, help, type and label names of a metric."""

    name: str
    help: str
    type: MetricType
    labels: tuple[str, ...] = LABELS


@dataclass(frozen=True)
class Sample:
    """One value of a metric for one set of label values."""

    desc: MetricDesc
    value: float
    label_values: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if len(self.label_values) != len(self.desc.labels):
            raise ValueError(
                f"{self.desc.name}: expected {len(self.desc.labels)} label values, got {len(self.label_values)}"
            )


def _desc(subsystem: str, name: str, help_text: str, kind: MetricType) -> MetricDesc:
    return MetricDesc(f"{NAMESPACE}_{subsystem}_{name}", help_text, kind)


_G, _C = MetricType.GAUGE, MetricType.COUNTER

BGP_SESSION_UP = _desc(BGP_SUBSYSTEM, SESSION_UP.name, SESSION_UP.help, _G)
BGP_PREFIXES = _desc(BGP_SUBSYSTEM, PREFIXES.name, PREFIXES.help, _G)
BGP_RECEIVED_PREFIXES = _desc(BGP_SUBSYSTEM, RECEIVED_PREFIXES.name, RECEIVED_PREFIXES.help, _G)

# Message counters, keyed by their field in FRR's "messageStats".
_BGP_COUNTERS: tuple[tuple[MetricDesc, str], ...] = (
    (_desc(BGP_SUBSYSTEM, "opens_sent", "Number of BGP open messages sent", _C), "opensSent"),
    (_desc(BGP_SUBSYSTEM, "opens_received", "Number of BGP open messages received", _C), "opensRecv"),
    (_desc(BGP_SUBSYSTEM, "notifications_sent", "Number of BGP notification messages sent", _C), "notificationsSent"),
    (_desc(BGP_SUBSYSTEM, UPDATES_SENT.name, UPDATES_SENT.help, _C), "updatesSent"),
    (_desc(BGP_SUBSYSTEM, "updates_total_received", "Number of BGP UPDATE messages received", _C), "updatesRecv"),
    (_desc(BGP_SUBSYSTEM, "keepalives_sent", "Number of BGP keepalive messages sent", _C), "keepalivesSent"),
    (_desc(BGP_SUBSYSTEM, "keepalives_received", "Number of BGP keepalive messages received", _C), "keepalivesRecv"),
    (_desc(BGP_SUBSYSTEM, "route_refresh_sent", "Number of BGP route refresh messages sent", _C), "routeRefreshSent"),
    (_desc(BGP_SUBSYSTEM, "total_sent", "Number of total BGP messages sent", _C), "totalSent"),
    (_desc(BGP_SUBSYSTEM, "total_received", "Number of total BGP messages received", _C), "totalRecv"),
)

BFD_SESSION_UP = _desc(BFD_SUBSYSTEM, SESSION_UP.name, "BFD session state (1 is up, 0 is down)", _G)

# Counters, keyed by their field in "show bfd peers counters json".
_BFD_COUNTERS: tuple[tuple[MetricDesc, str], ...] = (
    (_desc(BFD_SUBSYSTEM, "control_packet_input", "Number of received BFD control packets", _C), "control-packet-input"),
    (_desc(BFD_SUBSYSTEM, "control_packet_output", "Number of sent BFD control packets", _C), "control-packet-output"),
    (_desc(BFD_SUBSYSTEM, "echo_packet_input", "Number of received BFD echo packets", _C), "echo-packet-input"),
    (_desc(BFD_SUBSYSTEM, "echo_packet_output", "Number of sent BFD echo packets", _C), "echo-packet-output"),
    (_desc(BFD_SUBSYSTEM, "session_up_events", "Number of BFD session up events", _C), "session-up"),
    (_desc(BFD_SUBSYSTEM, "session_down_events", "Number of BFD session down events", _C), "session-down"),
    (_desc(BFD_SUBSYSTEM, "zebra_notifications", "Number of BFD zebra notifications", _C), "zebra-notifications"),
)


# --- parsing of vtysh output ----------------------------------------------


def _load(text: str, kind: type, what: str) -> Any:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"failed to parse {what}: {exc}") from exc
    if not isinstance(data, kind):
        raise ValueError(f"failed to parse {what}: unexpected {type(data).__name__}")
    return data


def _count(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{what}: expected a number, got {value!r}")
    return int(value)


def _object(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{what}: expected an object")
    return value


@dataclass
class _BGPNeighbor:
    ip: str
    port: int
    connected: bool
    prefix_sent: int
    prefix_received: int
    stats: dict[str, int]


def _parse_neighbors(text: str) -> list[_BGPNeighbor]:
    result = []
    for key, raw in _load(text, dict, "neighbors").items():
        info = _object(raw, f"neighbor {key}")
        families = _object(info.get("addressFamilyInfo", {}), f"neighbor {key}")
        sent = received = 0
        for family in families.values():
            family = _object(family, f"neighbor {key}")
            sent += _count(family.get("sentPrefixCounter", 0), "sentPrefixCounter")
            received += _count(family.get("acceptedPrefixCounter", 0), "acceptedPrefixCounter")
        stats = _object(info.get("messageStats", {}), f"neighbor {key}")
        result.append(
            _BGPNeighbor(
                ip=str(ipaddress.ip_address(key)),
                port=_count(info.get("portForeign", 0), "portForeign"),
                connected=info.get("bgpState") == "Established",
                prefix_sent=sent,
                prefix_received=received,
                stats={field_: _count(stats.get(field_, 0), field_) for _, field_ in _BGP_COUNTERS},
            )
        )
    return result


def _parse_entries(text: str, what: str) -> list[dict[str, Any]]:
    entries = _load(text, list, what)
    for entry in entries:
        _object(entry, what)
        if not isinstance(entry.get("peer"), str):
            raise ValueError(f"{what}: entry without a peer")
    return entries


def _bgp_neighbors(frr_cli: Cli) -> dict[str, list[_BGPNeighbor]]:
    return {vrf: _parse_neighbors(frr_cli(f"show bgp vrf {vrf} neighbors json")) for vrf in vrfs(frr_cli)}


def _bfd_peers(frr_cli: Cli) -> dict[str, list[dict[str, Any]]]:
    return {vrf: _parse_entries(frr_cli(f"show bfd vrf {vrf} peers json"), "bfd peers") for vrf in vrfs(frr_cli)}


def _bfd_counters(frr_cli: Cli) -> dict[str, list[dict[str, Any]]]:
    return {
        vrf: _parse_entries(frr_cli(f"show bfd vrf {vrf} peers counters json"), "bfd peers counters")
        for vrf in vrfs(frr_cli)
    }


# --- collectors -------------------------------------------------------------


class BGPCollector:
    """Metrics of the BGP sessions, one set per neighbor and VRF."""

    def __init__(self, frr_cli: Cli = run_vtysh, logger: logging.Logger | None = None) -> None:
        self.frr_cli = frr_cli
        self.logger = logger or logging.getLogger(f"{__name__}.{BGP_SUBSYSTEM}")

    def describe(self) -> list[MetricDesc]:
        return [BGP_SESSION_UP, BGP_PREFIXES, BGP_RECEIVED_PREFIXES, *(desc for desc, _ in _BGP_COUNTERS)]

    def collect(self) -> Iterator[Sample]:
        try:
            neighbors = _bgp_neighbors(self.frr_cli)
        except (VtyshError, ValueError) as exc:
            self.logger.error("failed to fetch BGP neighbors from FRR: %s", exc)
            return
        for vrf, peers in neighbors.items():
            for n in peers:
                labels = (f"{n.ip}:{n.port}", vrf)
                yield Sample(BGP_SESSION_UP, 1.0 if n.connected else 0.0, labels)
                yield Sample(BGP_PREFIXES, float(n.prefix_sent), labels)
                yield Sample(BGP_RECEIVED_PREFIXES, float(n.prefix_received), labels)
                for desc, key in _BGP_COUNTERS:
                    yield Sample(desc, float(n.stats[key]), labels)


class BFDCollector:
    """Metrics of the BFD sessions, one set per peer and VRF."""

    def __init__(self, frr_cli: Cli = run_vtysh, logger: logging.Logger | None = None) -> None:
        self.frr_cli = frr_cli
        self.logger = logger or logging.getLogger(f"{__name__}.{BFD_SUBSYSTEM}")

    def describe(self) -> list[MetricDesc]:
        return [BFD_SESSION_UP, *(desc for desc, _ in _BFD_COUNTERS)]

    def collect(self) -> Iterator[Sample]:
        try:
            peers = _bfd_peers(self.frr_cli)
        except (VtyshError, ValueError) as exc:
            self.logger.error("failed to fetch BFD peers from FRR: %s", exc)
            return
        for vrf, entries in peers.items():
            for p in entries:
                up = 1.0 if p.get("status") == "up" else 0.0
                yield Sample(BFD_SESSION_UP, up, (p["peer"], vrf))

        try:
            counters = _bfd_counters(self.frr_cli)
        except (VtyshError, ValueError) as exc:
            self.logger.error("failed to fetch BFD peers counters from FRR: %s", exc)
            return
        for vrf, entries in counters.items():
            for p in entries:
                labels = (p["peer"], vrf)
                for desc, key in _BFD_COUNTERS:
                    yield Sample(desc, float(_count(p.get(key, 0), key)), labels)


# --- text exposition --------------------------------------------------------


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _escape_label(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if float(value).is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(float(value))


def render_metrics(samples: Iterable[Sample]) -> str:
    """Render samples in the Prometheus text format, families sorted by name."""
    families: dict[str, tuple[MetricDesc, list[Sample]]] = {}
    for sample in samples:
        desc, members = families.setdefault(sample.desc.name, (sample.desc, []))
        if desc != sample.desc:
            raise ValueError(f"metric {desc.name} described inconsistently")
        members.append(sample)

    lines = []
    for name in sorted(families):
        desc, members = families[name]
        lines.append(f"# HELP {name} {_escape_help(desc.help)}")
        lines.append(f"# TYPE {name} {desc.type.value}")
        for sample in sorted(members, key=lambda s: s.label_values):
            labels = ",".join(
                f'{label}="{_escape_label(value)}"' for label, value in zip(desc.labels, sample.label_values)
            )
            lines.append(f"{name}{{{labels}}} {_format_value(sample.value)}" if labels else
                         f"{name} {_format_value(sample.value)}")
    return "".join(line + "\n" for line in lines)