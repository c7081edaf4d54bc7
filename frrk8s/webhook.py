"""Admission validation of FRRConfiguration resources."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from .api import FRRConfiguration, FRRConfigurationList, InvalidSelectorError

Validate = Callable[[FRRConfigurationList], object]


class ValidationError(ValueError):
    """A resource was rejected by the admission webhook."""


@dataclass
class Node:
    """A cluster node, as far as the webhook cares about it."""

    name: str
    labels: dict[str, str] = field(default_factory=dict)


def _selects(config: FRRConfiguration, labels: Mapping[str, str]) -> bool:
    try:
        return config.spec.node_selector.matches(labels)
    except InvalidSelectorError:
        # Already rejected when it was admitted; ignore it here.
        return False


class WebhookValidator:
    """Checks that a configuration is valid together with the ones already in place.

    For every node the resource applies to, the configurations selecting that
    node are collected together with the resource and handed to ``validate``,
    which raises if the combination is not acceptable.
    """

    def __init__(
        self,
        validate: Validate,
        get_nodes: Callable[[], Sequence[Node]],
        get_configurations: Callable[[], FRRConfigurationList],
        logger: logging.Logger | None = None,
    ) -> None:
        self._validate_fn = validate
        self._get_nodes = get_nodes
        self._get_configurations = get_configurations
        self.logger = logger or logging.getLogger(__name__)

    def validate_create(self, config: FRRConfiguration) -> list[str]:
        """Validate a newly created resource; returns admission warnings."""
        self._log("create", config)
        try:
            self._validate(config)
        finally:
            self._log("end create", config)
        return []

    def validate_update(self, config: FRRConfiguration, old: FRRConfiguration | None) -> list[str]:
        """Validate an updated resource; returns admission warnings."""
        self._log("update", config)
        try:
            self._validate(config)
        finally:
            self._log("end update", config)
        return []

    def validate_delete(self, config: FRRConfiguration) -> list[str]:
        """Deletions are always allowed; records the request and returns no warnings."""
        self._log("delete", config)
        warnings: list[str] = []
        return warnings

    def _log(self, action: str, config: FRRConfiguration) -> None:
        self.logger.debug(
            "webhook=frrconfiguration action=%s name=%s namespace=%s",
            action,
            config.metadata.name,
            config.metadata.namespace,
        )

    def _validate(self, config: FRRConfiguration) -> None:
        selector = config.spec.node_selector
        try:
            selector.validate()
        except InvalidSelectorError as exc:
            raise ValidationError(f"resource contains an invalid NodeSelector: {exc}") from exc

        nodes = self._get_nodes()
        existing = self._get_configurations()

        matching = [node for node in nodes if selector.matches(node.labels)]
        per_node: list[tuple[Node, FRRConfigurationList]] = []
        for node in matching:
            # The resource itself goes last, replacing any older version of it.
            items = [
                copy.deepcopy(cfg)
                for cfg in existing.items
                if cfg.metadata.name != config.metadata.name and _selects(cfg, node.labels)
            ]
            items.append(copy.deepcopy(config))
            per_node.append((node, FRRConfigurationList(items=items)))

        for node, configs in per_node:
            try:
                self._validate_fn(configs)
            except Exception as exc:
                raise ValidationError(f"resource is invalid for node {node.name}: {exc}") from exc