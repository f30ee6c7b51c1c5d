import math
from dataclasses import dataclass, field
from pathlib import Path

import yaml

import config as defaultConfig
from synergy import SynergyRule

STAT_KEYS = ("hp", "atk", "def", "spa", "spd", "spe")
NO_TYPE = {"", "none"}


class InvalidPokemonError(ValueError):
    """Raised for creature records that cannot be scored (bad stats, no name)."""


def is_empty_slot(value) -> bool:
    return value is None or str(value).strip().lower() in NO_TYPE


@dataclass(frozen=True, eq=False)
class Pokemon:
    """A base creature from the reference data. Never mutated after loading.

    `abilities` keeps empty slots as None so that index 2 is always the
    hidden ability slot.
    """
    name: str
    type1: str
    type2: str
    stats: dict
    abilities: tuple = field(default_factory=tuple)

    def __post_init__(self):
        if not self.name or not str(self.name).strip():
            raise InvalidPokemonError("Pokemon needs a name")
        if is_empty_slot(self.type1):
            raise InvalidPokemonError(f"{self.name}: primary type is missing")
        if len(self.abilities) > 3:
            raise InvalidPokemonError(f"{self.name}: at most 3 ability slots, got {len(self.abilities)}")
        for key in STAT_KEYS:
            value = self.stats.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidPokemonError(f"{self.name}: stat '{key}' must be a number, got {value!r}")
            if math.isnan(value) or value < 0:
                raise InvalidPokemonError(f"{self.name}: stat '{key}' must be >= 0, got {value}")

    @property
    def bst(self) -> int:
        return sum(self.stats[k] for k in STAT_KEYS)

    @property
    def has_secondary_type(self) -> bool:
        return not is_empty_slot(self.type2)


class ReferenceData:
    """Read-only lookup tables the fusion scorer consumes.

    Every lookup degrades to a documented default when an entry is missing:
    ability score 0.5, type rank 172, moveset triple (0.6, 0.6, 0.4).
    """

    def __init__(self, pokemon=None, abilities=None, type_ranks=None, movesets=None, synergy=None):
        self.pokemon = {}
        for p in pokemon or []:
            self.pokemon[p.name.lower()] = p
        self.abilities = {str(k).strip().lower(): float(v) for k, v in (abilities or {}).items()}
        self.type_ranks = {}
        for typing, rank in (type_ranks or {}).items():
            key = str(typing).strip().lower()
            self.type_ranks[key] = int(rank)
            if "/" in key:
                t1, t2 = key.split("/", 1)
                self.type_ranks.setdefault(f"{t2}/{t1}", int(rank))
        self.movesets = {str(k).strip().lower(): tuple(v) for k, v in (movesets or {}).items()}
        if synergy is None:
            synergy = [SynergyRule.from_row(*row) for row in defaultConfig.DEFAULT_SYNERGY_RULES]
        self.synergy = list(synergy)

    def get_pokemon(self, name: str):
        return self.pokemon.get(name.strip().lower())

    def all_pokemon(self) -> list:
        return list(self.pokemon.values())

    def ability_score(self, ability: str) -> float:
        return self.abilities.get(ability.strip().lower(), defaultConfig.ABILITY_SCORE_DEFAULT)

    def type_rank(self, typing: str) -> int:
        key = typing.strip().lower()
        rank = self.type_ranks.get(key)
        if rank is None and "/" in key:
            t1, t2 = key.split("/", 1)
            rank = self.type_ranks.get(f"{t2}/{t1}")
        return rank if rank is not None else defaultConfig.TYPE_RANK_DEFAULT

    def moveset_score(self, name: str, atk: int, spa: int) -> float:
        """Best-move heuristic of a species: physical entry if atk > spa, else special."""
        scores = self.movesets.get(name.lower(), defaultConfig.MOVESET_DEFAULT)
        return scores[0] if atk > spa else scores[1]

    def summary(self) -> str:
        return (f"{len(self.pokemon)} Pokemon | {len(self.abilities)} Abilities | "
                f"{len(self.type_ranks)} Typings | {len(self.synergy)} Synergy Rules")


def _parse_pokemon(entry: dict) -> Pokemon:
    types = list(entry.get('types') or [])
    type1 = types[0] if types else None
    type2 = types[1] if len(types) > 1 else None
    raw_stats = entry.get('stats') or {}
    stats = {k: raw_stats.get(k) for k in STAT_KEYS}
    abilities = tuple(None if is_empty_slot(a) else str(a).strip() for a in (entry.get('abilities') or []))
    return Pokemon(str(entry.get('name', '')).strip(), type1, type2, stats, abilities)


def _parse_moveset(value) -> tuple:
    scores = [float(v) for v in value]
    if len(scores) == 2:
        scores.append(defaultConfig.MOVESET_DEFAULT[2])
    if len(scores) != 3:
        raise ValueError(f"expected 2 or 3 moveset scores, got {len(scores)}")
    return tuple(scores)


def load_reference_data(path) -> ReferenceData:
    """Load the reference tables from a YAML file.

    Malformed rows are skipped with a warning so one bad entry does not
    take the whole dataset down.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Reference data not found: {path}")
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    pokemon = []
    for entry in raw.get('pokemon') or []:
        try:
            pokemon.append(_parse_pokemon(entry))
        except (InvalidPokemonError, TypeError, AttributeError) as e:
            print(f"Skipping invalid Pokemon entry {entry!r}: {e}")

    abilities = {}
    for name, score in (raw.get('abilities') or {}).items():
        try:
            abilities[name] = float(score)
        except (TypeError, ValueError):
            print(f"Skipping ability '{name}': score {score!r} is not a number")

    type_ranks = {}
    for typing, rank in (raw.get('type_ranks') or {}).items():
        try:
            type_ranks[typing] = int(rank)
        except (TypeError, ValueError):
            print(f"Skipping typing '{typing}': rank {rank!r} is not an integer")

    movesets = {}
    for name, scores in (raw.get('movesets') or {}).items():
        try:
            movesets[name] = _parse_moveset(scores)
        except (TypeError, ValueError) as e:
            print(f"Skipping moveset for '{name}': {e}")

    synergy = None
    if raw.get('synergies') is not None:
        synergy = []
        for row in raw['synergies']:
            try:
                synergy.append(SynergyRule.from_row(row['ability'], row['check'], row['value'], row['modifier']))
            except (KeyError, TypeError, ValueError) as e:
                print(f"Skipping synergy rule {row!r}: {e}")

    data = ReferenceData(pokemon, abilities, type_ranks, movesets, synergy)
    print(f"Loaded {data.summary()}")
    return data
