from __future__ import annotations

import pytest

from classipy.domain.model import ClassificationStatus
from classipy.ui import cli as cli_module
from tests.support.classifications import make_classification


def test_reset_command(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []

    def fake_reset() -> int:
        calls.append("reset")
        return 3

    monkeypatch.setattr(cli_module, "reset_classifications", fake_reset)

    cli_module.main(["reset"])

    assert calls == ["reset"]


def test_list_command_prints_one_line_per_classification(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}
    failed = make_classification("job-2", status=ClassificationStatus.FAILED)
    failed.error_message = "Termserver restarted."

    def fake_list(path: str, *, limit: int) -> list[object]:
        captured.update(path=path, limit=limit)
        return [make_classification("job-1"), failed]

    monkeypatch.setattr(cli_module, "list_classifications", fake_list)

    cli_module.main(["list", "--path", "MAIN/PROJECT-A", "--limit", "5"])

    assert captured == {"path": "MAIN/PROJECT-A", "limit": 5}
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split("\t") == [
        "job-1",
        "SCHEDULED",
        "2026-03-01T09:00:00+00:00",
        "org.semanticweb.elk.owlapi.ElkReasonerFactory",
        "alice",
    ]
    assert lines[1].endswith("\tTermserver restarted.")


def test_list_requires_path() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["list"])

    assert excinfo.value.code == 2


def test_list_rejects_non_positive_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "list_classifications", lambda *_a, **_k: [])

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["list", "--path", "MAIN", "--limit", "0"])

    assert excinfo.value.code == 1


def test_failures_exit_with_status_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_reset() -> int:
        raise RuntimeError("database is locked")

    monkeypatch.setattr(cli_module, "reset_classifications", broken_reset)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["reset"])

    assert excinfo.value.code == 1
