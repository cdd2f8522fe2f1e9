from typer.testing import CliRunner

from leadsleuth.cli import app

runner = CliRunner()


def test_patterns_command():
    result = runner.invoke(app, ["patterns", "John Smith", "acme.com"])

    assert result.exit_code == 0
    assert "john.smith@acme.com" in result.output
    assert "owner@acme.com" in result.output


def test_breakers_command():
    result = runner.invoke(app, ["breakers"])
    assert result.exit_code == 0


def test_enrich_rejects_empty_request():
    result = runner.invoke(app, ["enrich", ""])

    assert result.exit_code == 1
    assert "Enrichment failed" in result.output


def test_enrich_batch_rejects_unknown_format(tmp_path):
    leads = tmp_path / "leads.csv"
    leads.write_text("name\nAcme HVAC\n", encoding="utf-8")

    result = runner.invoke(app, ["enrich-batch", str(leads), "--format", "xml"])

    assert result.exit_code == 1
    assert "Unknown format" in result.output


def test_enrich_batch_missing_input(tmp_path):
    result = runner.invoke(app, ["enrich-batch", str(tmp_path / "missing.csv")])

    assert result.exit_code == 1
    assert "Could not read" in result.output
