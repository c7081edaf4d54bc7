import pytest

from frrk8s.api import (
    FRRConfiguration,
    FRRConfigurationList,
    FRRConfigurationSpec,
    LabelSelector,
    ObjectMeta,
)
from frrk8s.webhook import Node, ValidationError, WebhookValidator

TEST_NAMESPACE = "test-namespace"


def _config(name, selector=None):
    spec = FRRConfigurationSpec(node_selector=selector) if selector else FRRConfigurationSpec()
    return FRRConfiguration(metadata=ObjectMeta(name=name, namespace=TEST_NAMESPACE), spec=spec)


class _Recorder:
    def __init__(self, fail=False):
        self.fail = fail
        self.configs = None
        self.calls = 0

    def __call__(self, configs):
        self.calls += 1
        self.configs = configs
        if self.fail:
            raise ValueError("forced failure")


def _validator(recorder, existing=None, nodes=None):
    existing = [_config("test-config")] if existing is None else existing
    nodes = [Node("testnode", {"mode": "test"})] if nodes is None else nodes
    return WebhookValidator(
        recorder,
        lambda: nodes,
        lambda: FRRConfigurationList(items=list(existing)),
    )


@pytest.mark.parametrize(
    "config, is_new, fail, expected",
    [
        pytest.param(
            _config("test"),
            True,
            False,
            FRRConfigurationList(items=[_config("test-config"), _config("test")]),
            id="second config",
        ),
        pytest.param(
            _config("test-config"),
            False,
            False,
            FRRConfigurationList(items=[_config("test-config")]),
            id="same, update",
        ),
        pytest.param(
            _config("test-config"),
            True,
            True,
            FRRConfigurationList(items=[_config("test-config")]),
            id="same, new",
        ),
    ],
)
def test_validate_configuration(config, is_new, fail, expected):
    recorder = _Recorder(fail)
    validator = _validator(recorder)
    call = validator.validate_create if is_new else (lambda c: validator.validate_update(c, None))
    if fail:
        with pytest.raises(ValidationError, match="resource is invalid for node testnode"):
            call(config)
    else:
        assert call(config) == []
    assert recorder.configs == expected


def test_invalid_node_selector_is_rejected():
    recorder = _Recorder()
    config = _config("test-config1", LabelSelector(match_labels={"app": "@"}))
    with pytest.raises(ValidationError, match="invalid NodeSelector"):
        _validator(recorder).validate_create(config)
    assert recorder.configs is None


def test_non_matching_node_is_not_validated():
    recorder = _Recorder()
    config = _config("test", LabelSelector(match_labels={"mode": "other"}))
    assert _validator(recorder).validate_create(config) == []
    assert recorder.calls == 0


def test_existing_config_for_other_nodes_is_left_out():
    recorder = _Recorder()
    other = _config("elsewhere", LabelSelector(match_labels={"mode": "other"}))
    _validator(recorder, existing=[other]).validate_create(_config("test"))
    assert [c.metadata.name for c in recorder.configs.items] == ["test"]


def test_each_matching_node_is_validated():
    recorder = _Recorder()
    nodes = [Node("a", {"mode": "test"}), Node("b", {"mode": "test"}), Node("c", {})]
    config = _config("test", LabelSelector(match_labels={"mode": "test"}))
    _validator(recorder, nodes=nodes).validate_create(config)
    assert recorder.calls == 2


def test_configs_handed_to_validate_are_copies():
    recorder = _Recorder()
    config = _config("test")
    _validator(recorder).validate_create(config)
    handed = recorder.configs.items[-1]
    assert handed == config
    assert handed is not config


def test_delete_is_always_allowed():
    recorder = _Recorder(fail=True)
    assert _validator(recorder).validate_delete(_config("test-config")) == []
    assert recorder.calls == 0