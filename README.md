# frrk8s

Tools for FRR (FRRouting) BGP configuration resources and monitoring.

| Module | What it holds |
| --- | --- |
| `frrk8s.community` | Parsing and ordering of BGP communities |
| `frrk8s.api` | Dataclasses for the `frrk8s.metallb.io/v1beta1` resources, label selectors, durations, dict conversion |
| `frrk8s.webhook` | `WebhookValidator`, which checks a configuration together with the others that select the same nodes |
| `frrk8s.vtysh` | `run_vtysh` and `vrfs` for talking to FRR's `vtysh` |
| `frrk8s.liveness` | `missing_daemons` and `check_liveness` for the FRR daemons |
| `frrk8s.collector` | `BGPCollector`, `BFDCollector` and `render_metrics` in the Prometheus text format |
| `frrk8s.exporter` | `ExporterApp`, `build_server` and the `frrk8s-metrics-exporter` command |

The package has no third-party dependencies.

## Installation

```
pip install .
```

## BGP communities

```python
from frrk8s.community import parse_community, is_large

c = parse_community("large:1:2:3")
print(c, is_large(c))                          # 1:2:3 True
print(parse_community("0:1234").less_than(c))  # False
```

`parse_community` accepts `<uint16>:<uint16>` (a `BGPCommunityLegacy`) and
`large:<uint32>:<uint32>:<uint32>` (a `BGPCommunityLarge`). Any other shape
raises `InvalidCommunityFormatError`. A bad marker or a bad number raises
`InvalidCommunityValueError`. Both are subclasses of `CommunityError`, which
is a `ValueError`.

For ordering, a legacy community counts as the large community
`<to_uint32()>:0:0`. Communities also support `<`, so they can be sorted.

## Resource types

`frrk8s.api` defines `FRRConfiguration`, `FRRConfigurationList`,
`FRRNodeState` and `FRRNodeStateList`, plus the nested types: `Router`,
`Neighbor`, `BFDProfile`, `Advertise`, `Receive`, `LabelSelector` and others.
`to_dict` and `from_dict` convert them to and from their JSON form. Empty
optional fields are left out. Durations such as `holdTime` appear as strings
like `"3m0s"`, and `parse_duration` and `format_duration` convert those
strings.

```python
from frrk8s.api import FRRConfiguration, from_dict, to_dict

cfg = from_dict(FRRConfiguration, {
    "metadata": {"name": "test", "namespace": "frr-k8s-system"},
    "spec": {"bgp": {"routers": [{"asn": 64512, "neighbors": [
        {"asn": 64512, "address": "192.0.2.1", "holdTime": "90s"}]}]}},
})
print(to_dict(cfg)["spec"]["bgp"]["routers"][0]["neighbors"][0]["holdTime"])  # 1m30s
```

`LabelSelector.validate()` raises `InvalidSelectorError` for malformed keys,
values or operators. `LabelSelector.matches(labels)` returns whether a set of
labels is selected. An empty selector matches every set of labels.

## Validating configurations

You build a `WebhookValidator` from three callables:

- a `validate` function that raises when an `FRRConfigurationList` is not acceptable,
- a function that returns the cluster's nodes as `Node` objects,
- a function that returns the existing configurations.

`validate_create` and `validate_update` collect the configurations that
select each matching node, put the new resource last, and call `validate`
once per node. If the node selector is invalid, or if `validate` raises for
some node, they raise `ValidationError`. `validate_delete` always succeeds.

## Metrics exporter

The exporter runs `/usr/bin/vtysh`, so it has to run on a host or in a
container where FRR runs:

```
frrk8s-metrics-exporter --metrics-bind-address 127.0.0.1 --metrics-port 7573 --metrics-path /metrics
```

The values shown are the defaults. The exporter serves:

- the metrics path: BGP metrics (`frrk8s_bgp_*`) per neighbor (`peer="ip:port"`)
  and VRF, and BFD metrics (`frrk8s_bfd_*`) per peer and VRF;
- `/livez`: the liveness check, with these responses:
  - 200 when `bfdd`, `bgpd`, `staticd`, `watchfrr` and `zebra` are all running;
  - 404 when any of them is missing;
  - 500 when `show daemons` cannot be run.

Any other path returns 404. If vtysh fails while collecting, the error is
logged and the metrics that could not be read are left out.

You can also use the collectors directly with any function that takes a vtysh
command and returns its output:

```python
from frrk8s.collector import BGPCollector, render_metrics

print(render_metrics(BGPCollector(frr_cli=my_vtysh).collect()))
```

## What this package does not do

- It does not render `FRRConfiguration` resources into an FRR configuration file.
- It does not run a controller that reloads FRR or updates `FRRNodeState` status.
- `WebhookValidator` contains no rules of its own about what makes a
  configuration valid. Those rules come from the `validate` callable you pass in.
- It does not serve the webhook over HTTPS and does not talk to a Kubernetes
  API server. Nodes and configurations come from the callables you supply.

## Tests

```
pip install .[test]
pytest
```