from pathlib import Path

import pytest

from fusion_calculator import FusionCandidate, fuse_stats
from pokemon_data import Pokemon, ReferenceData, load_reference_data
from synergy import SynergyRule

SAMPLE_DATA = Path(__file__).resolve().parent.parent / "data" / "sample_reference.yaml"

FLAT_STATS = {'hp': 80, 'atk': 80, 'def': 80, 'spa': 80, 'spd': 80, 'spe': 80}


def make_pokemon(name, type1="Normal", type2=None, stats=None, abilities=("Run Away",)):
    return Pokemon(name, type1, type2, dict(stats or FLAT_STATS), tuple(abilities))


def make_candidate(head, body=None, score=0.5, role="Balanced", typing="Normal", ability="Run Away"):
    """Hand-built candidate for optimizer tests; names may be strings."""
    if isinstance(head, str):
        head = make_pokemon(head)
    if body is None:
        body = head
    elif isinstance(body, str):
        body = make_pokemon(body)
    return FusionCandidate(head=head, body=body, stats=fuse_stats(head, body), typing=typing,
                           ability=ability, score=score, role=role)


@pytest.fixture
def sample_reference():
    return load_reference_data(SAMPLE_DATA)


@pytest.fixture
def tiny_reference():
    pokemon = [
        make_pokemon("Alpha", "Water", None, {'hp': 100, 'atk': 50, 'def': 50, 'spa': 50, 'spd': 50, 'spe': 50},
                     ("Swift Swim", "Torrent", "Rain Dish")),
        make_pokemon("Beta", "Fire", "Flying", {'hp': 50, 'atk': 100, 'def': 100, 'spa': 100, 'spd': 100, 'spe': 100},
                     ("Blaze", None, "Torrent")),
        make_pokemon("Gamma", "Water", None, {'hp': 70, 'atk': 70, 'def': 70, 'spa': 70, 'spd': 70, 'spe': 70},
                     ("Levitate",)),
    ]
    abilities = {"Swift Swim": 0.7, "Torrent": 0.4, "Rain Dish": 0.9, "Blaze": 0.4, "Levitate": 0.8}
    type_ranks = {"Water/Flying": 12, "Fire/Water": 40, "Water": 60}
    movesets = {"Alpha": (0.8, 0.5, 0.4)}
    synergy = [SynergyRule.from_row("Levitate", "type", "Ground", -0.05)]
    return ReferenceData(pokemon, abilities, type_ranks, movesets, synergy)
