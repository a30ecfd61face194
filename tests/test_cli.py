from __future__ import annotations

import json

from typer.testing import CliRunner

from adapters.json_exporter import export_batch_json
from cli.main import app
from core.domain.models import AddressOutcome, BatchResult, CheckoutStep
from fakes import request_payload

runner = CliRunner()


def test_invalid_band_rejected_before_login(tmp_path):
    payload = request_payload()
    payload["entrega"]["banda"] = "INVALID"
    request_file = tmp_path / "batch.json"
    request_file.write_text(json.dumps(payload), encoding="utf-8")

    result = runner.invoke(app, ["purchase", str(request_file)])

    assert result.exit_code == 2
    assert "Banda inválida" in result.output


def test_malformed_request_file(tmp_path):
    request_file = tmp_path / "batch.json"
    request_file.write_text("{not json", encoding="utf-8")

    result = runner.invoke(app, ["purchase", str(request_file)])

    assert result.exit_code != 0


def test_export_batch_json(tmp_path):
    result = BatchResult.from_outcomes(
        [
            AddressOutcome.committed(101, "555", attempts=1),
            AddressOutcome.failure(102, "GENERIC_ERROR", step=CheckoutStep.COMMIT_ORDER, attempts=1),
        ]
    )

    path = export_batch_json(result=result, output_path=tmp_path / "out" / "result.json")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["success"] == 1
    assert data["orders"] == ["555"]
    assert data["outcomes"][1]["failed_step"] == "commit_order"
