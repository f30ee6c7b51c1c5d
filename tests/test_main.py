from typer.testing import CliRunner

from conftest import SAMPLE_DATA
from fusion_calculator import FusionCalculator
from main import _find_pinned, app

runner = CliRunner()


def test_fusions_lists_top_variants():
    result = runner.invoke(app, ["fusions", "--data", str(SAMPLE_DATA), "--top", "5"])
    assert result.exit_code == 0, result.output
    assert "Top Fusions" in result.output
    assert "Generated" in result.output


def test_fusions_with_filter_and_breakdown():
    result = runner.invoke(app, ["fusions", "--data", str(SAMPLE_DATA), "--roster", "Garchomp,Azumarill",
                                 "--type", "fairy", "--explain"])
    assert result.exit_code == 0, result.output
    assert "SCORING BREAKDOWN" in result.output


def test_unknown_roster_member_is_skipped():
    result = runner.invoke(app, ["fusions", "--data", str(SAMPLE_DATA), "--roster", "Garchomp,Missingno"])
    assert result.exit_code == 0, result.output
    assert "Unknown Pokemon 'Missingno'" in result.output


def test_missing_data_file(tmp_path):
    result = runner.invoke(app, ["fusions", "--data", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1


def test_teams_speed_mode():
    result = runner.invoke(app, ["teams", "--data", str(SAMPLE_DATA), "--mode", "speed", "--teams", "2",
                                 "--species", "40", "--self-fusion", "0", "--pin", "Garchomp+Garchomp"])
    assert result.exit_code == 0, result.output
    assert "Team 1" in result.output


def test_teams_rejects_unknown_mode():
    result = runner.invoke(app, ["teams", "--data", str(SAMPLE_DATA), "--mode", "fastest"])
    assert result.exit_code == 1
    assert "Unknown search mode" in result.output


def test_find_pinned_matches_pair_and_ability(sample_reference):
    calculator = FusionCalculator(sample_reference)
    candidates = calculator.calculate_variants(sample_reference.get_pokemon("garchomp"),
                                               sample_reference.get_pokemon("scizor"))

    assert _find_pinned("garchomp+SCIZOR", candidates) is candidates[0]
    assert _find_pinned("Garchomp+Scizor:technician", candidates).ability == "Technician"
    assert _find_pinned("Scizor+Garchomp", candidates) is None
