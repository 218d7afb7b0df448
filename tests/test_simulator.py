from __future__ import annotations

import allure
import pytest

from gdc_upload.transfer import simulator
from gdc_upload.transfer.classifier import classify_transfer_output
from gdc_upload.transfer.models import Disposition, FailureReason

pytestmark = [
    allure.epic("Transfer Engine"),
    allure.feature("Transfer Simulator"),
]


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(simulator.time, "sleep", lambda _seconds: None)
    monkeypatch.delenv("GDC_UPLOAD_SIM_OUTCOME", raising=False)
    monkeypatch.delenv("GDC_UPLOAD_SIM_SEED", raising=False)


@pytest.mark.parametrize(
    ("outcome", "disposition", "reason"),
    [
        ("success", Disposition.SUCCEEDED, None),
        ("validated", Disposition.FAILED_PERMANENT, FailureReason.ALREADY_AT_DESTINATION),
        ("missing", Disposition.FAILED_PERMANENT, FailureReason.LOCAL_FILE_MISSING),
        ("flaky", Disposition.RETRY, None),
    ],
)
def test_simulated_output_is_understood_by_classifier(
    outcome: str,
    disposition: Disposition,
    reason: FailureReason | None,
) -> None:
    result = classify_transfer_output(
        stdout=simulator.render_output(outcome, "file-1"),
        external_id="file-1",
        attempts=0,
        max_retries=3,
    )
    assert result.disposition == disposition
    assert result.reason == reason


def test_forced_outcome(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setenv("GDC_UPLOAD_SIM_OUTCOME", "flaky")

    exit_code = simulator.main(["file-1", "sub-1", "fast"])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert "upload interrupted" in captured.out
    assert captured.err == "transfer interrupted\n"


def test_seed_makes_outcome_repeatable(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture,
) -> None:
    monkeypatch.setenv("GDC_UPLOAD_SIM_SEED", "7")
    outputs = []
    for _ in range(2):
        simulator.main(["file-1", "sub-1"])
        outputs.append(capsys.readouterr().out)

    assert outputs[0] == outputs[1]


def test_unknown_forced_outcome_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GDC_UPLOAD_SIM_OUTCOME", "explode")

    with pytest.raises(SystemExit) as error:
        simulator.main(["file-1", "sub-1"])
    assert error.value.code == 2
