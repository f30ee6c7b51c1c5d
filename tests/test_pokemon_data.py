import math

import pytest

from conftest import make_pokemon
from pokemon_data import InvalidPokemonError, Pokemon, ReferenceData, load_reference_data


class TestPokemon:
    @pytest.mark.parametrize("bad", [-1, math.nan, True, "90", None])
    def test_rejects_bad_stat(self, bad):
        stats = {'hp': 80, 'atk': 80, 'def': 80, 'spa': 80, 'spd': 80, 'spe': bad}
        with pytest.raises(InvalidPokemonError):
            make_pokemon("Broken", stats=stats)

    def test_rejects_missing_name_or_type(self):
        with pytest.raises(InvalidPokemonError):
            make_pokemon("  ")
        with pytest.raises(InvalidPokemonError):
            make_pokemon("Typeless", type1="none")

    def test_rejects_too_many_abilities(self):
        with pytest.raises(InvalidPokemonError):
            make_pokemon("Greedy", abilities=("A", "B", "C", "D"))

    def test_invalid_pokemon_is_a_value_error(self):
        assert issubclass(InvalidPokemonError, ValueError)

    def test_bst_and_secondary_type(self):
        mono = make_pokemon("Mono", "Water", "None")
        dual = make_pokemon("Dual", "Water", "Ground")
        assert mono.bst == 480
        assert not mono.has_secondary_type
        assert dual.has_secondary_type


class TestReferenceDefaults:
    def test_missing_entries_fall_back(self):
        data = ReferenceData()
        assert data.ability_score("Wonder Guard") == 0.5
        assert data.type_rank("Ghost/Fairy") == 172
        assert data.moveset_score("Nobody", 120, 80) == 0.6

    def test_type_rank_accepts_swapped_typing(self, tiny_reference):
        assert tiny_reference.type_rank("Fire/Water") == 40
        assert tiny_reference.type_rank("water/fire") == 40
        assert tiny_reference.type_rank(" WATER ") == 60

    def test_moveset_picks_physical_or_special(self, tiny_reference):
        assert tiny_reference.moveset_score("Alpha", 120, 80) == 0.8
        assert tiny_reference.moveset_score("alpha", 80, 80) == 0.5

    def test_lookups_are_case_insensitive(self, tiny_reference):
        assert tiny_reference.get_pokemon("ALPHA").name == "Alpha"
        assert tiny_reference.ability_score("rain dish") == pytest.approx(0.9)

    def test_default_synergy_rules(self):
        data = ReferenceData()
        assert any(rule.ability == "Huge Power" for rule in data.synergy)


class TestLoader:
    def test_sample_data_loads(self, sample_reference):
        assert len(sample_reference.all_pokemon()) == 12
        assert sample_reference.get_pokemon("ferrothorn").abilities[1] is None
        # two-value moveset rows get the neutral third value
        assert sample_reference.movesets["blaziken"] == (0.9, 0.75, 0.4)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_reference_data(tmp_path / "missing.yaml")

    def test_bad_rows_are_skipped(self, tmp_path, capsys):
        path = tmp_path / "data.yaml"
        path.write_text(
            "pokemon:\n"
            "  - name: Good\n"
            "    types: [Water]\n"
            "    stats: {hp: 50, atk: 50, def: 50, spa: 50, spd: 50, spe: 50}\n"
            "    abilities: [Torrent]\n"
            "  - name: Bad\n"
            "    types: [Fire]\n"
            "    stats: {hp: -5, atk: 50, def: 50, spa: 50, spd: 50, spe: 50}\n"
            "abilities:\n"
            "  Torrent: 0.4\n"
            "  Broken: lots\n"
            "type_ranks:\n"
            "  Water: 60\n"
            "movesets:\n"
            "  Good: [0.5]\n"
            "synergies:\n"
            "  - {ability: Torrent, check: weather, value: rain, modifier: 0.1}\n",
            encoding="utf-8",
        )

        data = load_reference_data(path)

        assert [p.name for p in data.all_pokemon()] == ["Good"]
        assert data.abilities == {"torrent": 0.4}
        assert data.movesets == {}
        assert data.synergy == []
        assert "Skipping invalid Pokemon entry" in capsys.readouterr().out

    def test_default_synergy_when_section_absent(self, tmp_path):
        path = tmp_path / "data.yaml"
        path.write_text("pokemon: []\n", encoding="utf-8")
        data = load_reference_data(path)
        assert data.synergy
        assert data.all_pokemon() == []
