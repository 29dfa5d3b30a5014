from __future__ import annotations

import json

import pytest

from queuedeck.cli import _profile_from_url, build_parser, main
from queuedeck.container import QueueDeck
from queuedeck.services.crypto_service import CryptoService


def test_parser_jobs_defaults() -> None:
    args = build_parser().parse_args(["jobs", "redis://localhost", "emails"])

    assert args.command == "jobs"
    assert args.category == "latest"
    assert args.start == 0
    assert args.end is None


def test_parser_rollup_takes_several_queues() -> None:
    args = build_parser().parse_args(["rollup", "redis://localhost", "a", "b"])

    assert args.queues == ["a", "b"]


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_profile_from_url_encrypts_password(crypto_service: CryptoService) -> None:
    deck = QueueDeck(crypto_service)

    profile = _profile_from_url(deck, "redis://:hunter2@cache:6380/4")

    assert profile.id == "cli:cache:6380/4"
    assert profile.port == 6380
    assert profile.db == 4
    assert profile.password is not None
    assert "hunter2" not in profile.password
    assert crypto_service.decrypt(profile.password) == "hunter2"


def test_profile_from_url_without_password(crypto_service: CryptoService) -> None:
    profile = _profile_from_url(QueueDeck(crypto_service), "redis://cache")

    assert profile.password is None


def test_probe_command_reports_unreachable(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["probe", "redis://127.0.0.1:1/0"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["reachable"] is False
    assert payload["status"] == "offline"


def test_invalid_url_exits_with_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["probe", "http://localhost"]) == 1

    assert "INVALID_ARGUMENT" in capsys.readouterr().err
