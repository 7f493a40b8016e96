# conftest.py
from __future__ import annotations

import os
import uuid

import pytest

from wavexpr.core.log import (
    bind_context,
    configure_from_env,
    enable_stdout_logging,
    get_logger,
    log_context,
)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, isolated tests")
    config.addinivalue_line("markers", "lexer: tokenizer")
    config.addinivalue_line("markers", "parser: parser and AST")
    config.addinivalue_line("markers", "evaluator: evaluator and function library")
    config.addinivalue_line("markers", "applicator: grid application and mode dispatch")
    config.addinivalue_line("markers", "library: formula library")
    config.addinivalue_line("markers", "core: config, logging and utilities")


def pytest_addoption(parser):
    parser.addoption(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit wavexpr logs in JSON format during tests",
    )


@pytest.fixture(scope="session", autouse=True)
def _configure_wavexpr_logging(request):
    configure_from_env()
    prefer_json = request.config.getoption("--log-json")
    # stdout logging stays off unless asked for; the engine logs at DEBUG only
    if os.getenv("WAVEXPR_LOG_STDOUT", "").lower() in ("1", "true", "yes", "on") or prefer_json:
        enable_stdout_logging(
            level="DEBUG",
            json_output=prefer_json,
            pretty=not prefer_json,
            route_errors_to_stderr=True,
        )
    bind_context(role="pytest")


@pytest.fixture(scope="session")
def session_run_id():
    return uuid.uuid4().hex[:8]


@pytest.fixture(autouse=True)
def _test_log_context(request, session_run_id):
    log = get_logger("test")
    with log_context(pytest_nodeid=request.node.nodeid, test=request.node.name, test_run=session_run_id):
        log.debug("pytest.test.start", event="pytest.test.start")
        yield


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    rep = outcome.get_result()
    if rep.when == "call":
        log = get_logger("test")
        with log_context(pytest_nodeid=item.nodeid, test=item.name):
            log.debug(
                "pytest.test.finish",
                event="pytest.test.finish",
                outcome=rep.outcome,
                duration=getattr(rep, "duration", None),
            )


@pytest.fixture
def wavexpr_debug_logs(caplog):
    """Capture wavexpr DEBUG records (the package logger defaults to WARNING)."""
    caplog.set_level("DEBUG", logger="wavexpr")
    return caplog
