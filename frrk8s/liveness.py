"""Liveness check of the FRR daemons."""

from __future__ import annotations

import logging
from http import HTTPStatus

from .vtysh import Cli

EXPECTED_DAEMONS = frozenset({"bfdd", "bgpd", "staticd", "watchfrr", "zebra"})


def missing_daemons(output: str) -> set[str]:
    """The expected daemons absent from the output of ``show daemons``."""
    running = output.removesuffix("\n").split(" ")
    return set(EXPECTED_DAEMONS.difference(running))


def check_liveness(frr_cli: Cli, logger: logging.Logger | None = None) -> HTTPStatus:
    """The HTTP status of the liveness probe: OK only if every daemon runs."""
    logger = logger or logging.getLogger(__name__)
    try:
        output = frr_cli("show daemons")
    except Exception as exc:
        logger.error("failed to call show daemons: %s", exc)
        return HTTPStatus.INTERNAL_SERVER_ERROR
    missing = missing_daemons(output)
    if missing:
        logger.error("daemons not running. got: %r missing: %s", output, sorted(missing))
        return HTTPStatus.NOT_FOUND
    return HTTPStatus.OK