import asyncio
import math
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType

import config as defaultConfig
from fusion_pool import FusionPool
from pokemon_data import STAT_KEYS, is_empty_slot
from synergy import calculate_synergy


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _normalize(value, low, high) -> float:
    return max(0.0, min((value - low) / (high - low), 1.0))


def fuse_stats(head, body) -> dict:
    """Head dominates hp/spa/spd, body dominates atk/def/spe (2:1 weighting)."""
    h, b = head.stats, body.stats
    return {
        'hp': _round_half_up((h['hp'] * 2 + b['hp']) / 3),
        'atk': _round_half_up((h['atk'] + b['atk'] * 2) / 3),
        'def': _round_half_up((h['def'] + b['def'] * 2) / 3),
        'spa': _round_half_up((h['spa'] * 2 + b['spa']) / 3),
        'spd': _round_half_up((h['spd'] * 2 + b['spd']) / 3),
        'spe': _round_half_up((h['spe'] + b['spe'] * 2) / 3),
    }


def fuse_typing(head, body) -> str:
    """Canonical typing string, "T1" for mono-type or "T1/T2"."""
    t1 = head.type1.strip()
    t2 = body.type2.strip() if body.has_secondary_type else body.type1.strip()
    if t2.lower() == t1.lower():
        t2 = body.type1.strip()
        if t2.lower() == t1.lower():
            return t1
    return f"{t1}/{t2}"


def split_typing(typing: str) -> tuple:
    """Lower-cased types of a canonical typing string.

    Raises ValueError for anything that is not "T1" or "T1/T2".
    """
    if not isinstance(typing, str):
        raise ValueError(f"Malformed typing {typing!r}: expected a string")
    parts = [p.strip().lower() for p in typing.split("/")]
    if len(parts) > 2 or any(not p for p in parts):
        raise ValueError(f"Malformed typing '{typing}': expected 'T1' or 'T1/T2'")
    return tuple(parts)


@lru_cache(maxsize=None)
def weakness_mask(typing: str) -> int:
    """18-bit mask, bit i set when either type is weak to POKEMON_TYPES[i].

    Per-type masks are OR'd, so a resistance on the other type does not
    clear a weakness.
    """
    mask = 0
    for t in split_typing(typing):
        row = defaultConfig.TYPE_CHART.get(t, ())
        for i, multiplier in enumerate(row):
            if multiplier > 1:
                mask |= 1 << i
    return mask


def weakness_names(mask: int) -> list:
    return [t for i, t in enumerate(defaultConfig.POKEMON_TYPES) if mask & (1 << i)]


class ScoringWeights:
    def __init__(self, stat=0.40, type=0.30, ability=0.25, moveset=0.05):
        for name, value in (("stat", stat), ("type", type), ("ability", ability), ("moveset", moveset)):
            if value < 0 or math.isnan(value):
                raise ValueError(f"Scoring weight '{name}' must be >= 0, got {value}")
        self.stat = stat
        self.type = type
        self.ability = ability
        self.moveset = moveset
        if self.total <= 0:
            raise ValueError("At least one scoring weight must be positive")

    @property
    def total(self) -> float:
        return self.stat + self.type + self.ability + self.moveset

    @classmethod
    def from_config(cls, config_data: dict) -> "ScoringWeights":
        return cls(config_data['STAT_WEIGHT'], config_data['TYPE_WEIGHT'],
                   config_data['ABILITY_WEIGHT'], config_data['MOVESET_WEIGHT'])


@dataclass(frozen=True)
class AbilityResult:
    name: str
    score: float        # base score after the hidden penalty, capped at 1
    synergy: float
    total_score: float  # presentation order only
    slot: int


@dataclass(frozen=True, eq=False)
class FusionCandidate:
    """One scored (head, body, ability) fusion.

    Stats and typing are shared by every ability variant of a pair. The
    derived fields (bst, types, species, weakness_mask) are filled in from
    stats and typing on creation, and stats is stored as a read-only view.
    """
    head: object
    body: object
    stats: MappingProxyType
    typing: str
    ability: str
    score: float
    role: str
    rank: int = defaultConfig.TYPE_RANK_DEFAULT
    ability_score: float = defaultConfig.ABILITY_SCORE_DEFAULT
    synergy: float = 0.0
    all_abilities: tuple = ()
    bst: int = field(init=False)
    types: tuple = field(init=False)
    species: frozenset = field(init=False)
    weakness_mask: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'stats', MappingProxyType(dict(self.stats)))
        object.__setattr__(self, 'bst', sum(self.stats[k] for k in STAT_KEYS))
        object.__setattr__(self, 'types', split_typing(self.typing))
        object.__setattr__(self, 'species', frozenset((self.head.name.lower(), self.body.name.lower())))
        object.__setattr__(self, 'weakness_mask', weakness_mask(self.typing))

    @property
    def head_name(self) -> str:
        return self.head.name

    @property
    def body_name(self) -> str:
        return self.body.name

    @property
    def is_self_fusion(self) -> bool:
        return self.head.name.lower() == self.body.name.lower()

    @property
    def pair_key(self) -> tuple:
        return (self.head.name.lower(), self.body.name.lower())

    @property
    def display_name(self) -> str:
        return f"{self.head.name.capitalize()} + {self.body.name.capitalize()}"

    def __str__(self):
        return (f"{self.display_name} [{self.ability}]\n"
                f"Typing: {self.typing} (rank {self.rank})\n"
                f"Stats: {dict(self.stats)} (BST {self.bst})\n"
                f"Role: {self.role}\n"
                f"Score: {self.score:.3f}")


class FusionCalculator:
    def __init__(self, reference, config_data: dict = None):
        self.reference = reference
        self.config_data = config_data or defaultConfig.as_dict()
        self.avg_atk = self.avg_spa = self.avg_spe = self.avg_bulk = 0
        self._calculate_stat_baselines()

    def _calculate_stat_baselines(self):
        """Role thresholds come from the whole database, not the active roster."""
        everyone = self.reference.all_pokemon()
        count = len(everyone)
        if count == 0:
            return
        total_atk = sum(p.stats['atk'] for p in everyone)
        total_spa = sum(p.stats['spa'] for p in everyone)
        total_spe = sum(p.stats['spe'] for p in everyone)
        total_bulk = sum(p.stats['hp'] + p.stats['def'] + p.stats['spd'] for p in everyone)
        self.avg_atk = int((total_atk // count) * self.config_data['ROLE_ATK_MULTIPLIER'])
        self.avg_spa = int((total_spa // count) * self.config_data['ROLE_SPA_MULTIPLIER'])
        self.avg_spe = int((total_spe // count) * self.config_data['ROLE_SPE_MULTIPLIER'])
        self.avg_bulk = int((total_bulk // count) * self.config_data['ROLE_BULK_MULTIPLIER'])

    def ability_results(self, head, body, stats: dict, typing: str, hidden_penalty: bool) -> list:
        """Distinct usable abilities of head then body, best first."""
        results = []
        seen = set()
        for pokemon in (head, body):
            for slot, ability in enumerate(pokemon.abilities):
                if is_empty_slot(ability):
                    continue
                ability = ability.strip()
                if ability.lower() in seen:
                    continue
                seen.add(ability.lower())

                score = self.reference.ability_score(ability)
                if hidden_penalty and slot == 2:
                    score *= self.config_data['HIDDEN_ABILITY_FACTOR']
                synergy = calculate_synergy(self.reference.synergy, ability, typing, stats)
                total = score + synergy * self.config_data['SYNERGY_ORDER_FACTOR']
                results.append(AbilityResult(ability, min(1.0, score), synergy, total, slot))

        results.sort(key=lambda r: r.total_score, reverse=True)
        return results

    def calculate_variants(self, head, body, weights: ScoringWeights = None, hidden_penalty: bool = False) -> list:
        """One FusionCandidate per distinct usable ability of the pair.

        Returns an empty list when neither creature has a usable ability.
        """
        weights = weights or ScoringWeights.from_config(self.config_data)
        cfg = self.config_data

        stats = fuse_stats(head, body)
        bst = sum(stats.values())
        typing = fuse_typing(head, body)
        rank = self.reference.type_rank(typing)
        abilities = self.ability_results(head, body, stats, typing, hidden_penalty)
        shared_abilities = tuple(abilities)

        move_score = (self.reference.moveset_score(head.name, stats['atk'], stats['spa']) +
                      self.reference.moveset_score(body.name, stats['atk'], stats['spa'])) / 2.0
        stat_score = _normalize(bst, cfg['BST_MIN'], cfg['BST_MAX'])
        type_score = 1.0 - _normalize(rank, 1, cfg['TYPE_RANK_MAX'])
        stat_bonus = self._stat_bonus(stats, bst)

        variants = []
        for ab in abilities:
            ability_score = min(1.0, ab.score)
            base_score = (stat_score * weights.stat +
                          type_score * weights.type +
                          ability_score * weights.ability +
                          move_score * weights.moveset) / weights.total
            raw_score = base_score + ab.synergy * cfg['SYNERGY_SCORE_FACTOR'] + stat_bonus

            variants.append(FusionCandidate(
                head=head, body=body, stats=dict(stats), typing=typing,
                ability=ab.name, score=self.finalize_score(raw_score),
                role=self.classify_role(stats, ability_score),
                rank=rank, ability_score=ability_score, synergy=ab.synergy,
                all_abilities=shared_abilities,
            ))
        return variants

    def finalize_score(self, raw_score: float) -> float:
        """Compress the excess above the threshold, clamp to [0, 1], round to 3 places."""
        start = self.config_data['SCORE_COMPRESSION_START']
        if raw_score > start:
            raw_score = start + (raw_score - start) * self.config_data['SCORE_COMPRESSION_FACTOR']
        score = max(0.0, min(raw_score, 1.0))
        return math.floor(score * 1000 + 0.5) / 1000

    def _stat_bonus(self, stats: dict, bst: int) -> float:
        bonus = 0.0
        if stats['spe'] >= 135:
            bonus += 0.04
        elif stats['spe'] >= 120:
            bonus += 0.02

        max_offense = max(stats['atk'], stats['spa'])
        if max_offense >= 145:
            bonus += 0.04
        elif max_offense >= 135:
            bonus += 0.02

        if stats['hp'] > 110 and stats['def'] > 110 and stats['spd'] > 110:
            bonus += 0.03
        if bst < 400:
            bonus -= 0.05
        return bonus

    def classify_role(self, stats: dict, ability_score: float) -> str:
        # First match wins
        if ability_score >= self.config_data['ABILITY_CARRY_THRESHOLD']:
            return "Ability Carry"

        higher_offense = max(stats['atk'], stats['spa'])
        bulk = stats['hp'] + stats['def'] + stats['spd']

        if stats['spe'] > self.avg_spe and higher_offense > self.avg_atk:
            return "Sweeper"
        if bulk > self.avg_bulk:
            return "Wall/Tank"
        if higher_offense > self.avg_atk * 1.15:
            return "Wallbreaker"
        if stats['atk'] > self.avg_atk and stats['spa'] > self.avg_spa:
            return "Mixed Attacker"
        if stats['spe'] < self.avg_spe * 0.8 and higher_offense > self.avg_atk:
            return "Slow Pivot"
        if stats['spe'] > self.avg_spe and bulk > self.avg_bulk * 0.9:
            return "Fast Support"
        return "Balanced"

    async def score_all_pairs(self, roster, weights: ScoringWeights = None, hidden_penalty: bool = None,
                              task=None, progress_callback=None, pool: FusionPool = None) -> FusionPool:
        """Score every ordered (head, body) pair of the roster, self-fusions included.

        Head rows are scored in worker threads, at most MAX_CONCURRENT_SCORERS
        at a time. A cancelled task stops the remaining pairs and the partial
        pool is returned.
        """
        weights = weights or ScoringWeights.from_config(self.config_data)
        if hidden_penalty is None:
            hidden_penalty = self.config_data['HIDDEN_ABILITY_PENALTY']
        if pool is None:
            pool = FusionPool()

        total = len(roster) * len(roster)
        batch_size = self.config_data['PROGRESS_BATCH_SIZE']
        semaphore = asyncio.Semaphore(self.config_data['MAX_CONCURRENT_SCORERS'])
        completed = 0
        last_reported = 0

        print(f"--- Scoring {total} fusion pairs for a roster of {len(roster)} ---")

        def score_row(head):
            variants = []
            scored = 0
            for body in roster:
                if task and task.is_cancelled():
                    break
                variants.extend(self.calculate_variants(head, body, weights, hidden_penalty))
                scored += 1
            pool.extend(variants)
            return scored

        async def tracked_row(head):
            nonlocal completed, last_reported
            async with semaphore:
                if task and task.is_cancelled():
                    return
                scored = await asyncio.to_thread(score_row, head)
            completed += scored
            if progress_callback and (completed - last_reported >= batch_size or completed == total):
                last_reported = completed
                progress_callback(completed, total)

        await asyncio.gather(*(tracked_row(head) for head in roster))

        if task and task.is_cancelled():
            print(f"Scoring cancelled after {completed}/{total} pairs.")
        print(f"Generated {pool.size()} fusion variants.")
        return pool

    def get_detailed_breakdown(self, fusion: FusionCandidate, weights: ScoringWeights = None) -> str:
        weights = weights or ScoringWeights.from_config(self.config_data)
        cfg = self.config_data
        lines = ["=== SCORING BREAKDOWN ===",
                 f"Fusion: {fusion.display_name}",
                 f"Role: {fusion.role}",
                 ""]

        stat_score = _normalize(fusion.bst, cfg['BST_MIN'], cfg['BST_MAX'])
        lines.append(f"Base Stat Score: {stat_score:.3f} (BST: {fusion.bst})")
        type_score = 1.0 - _normalize(fusion.rank, 1, cfg['TYPE_RANK_MAX'])
        lines.append(f"Type Score: {type_score:.3f} (Rank: {fusion.rank} - {fusion.typing})")

        chosen = next((a for a in fusion.all_abilities if a.name == fusion.ability), None)
        if chosen is not None:
            synergy_bonus = chosen.synergy * cfg['SYNERGY_ORDER_FACTOR']
            ability_total = min(1.0, chosen.score + synergy_bonus)
            lines.append(f"Ability Score: {ability_total:.3f} ({fusion.ability})")
            lines.append(f"   Base: {chosen.score:.2f} | Synergy Bonus: {synergy_bonus:+.2f}")

        weaknesses = weakness_names(fusion.weakness_mask)
        lines.append(f"Weak to: {', '.join(weaknesses) if weaknesses else 'nothing'}")
        lines.append(f"Weights: stat {weights.stat:.2f} | type {weights.type:.2f} | "
                     f"ability {weights.ability:.2f} | moveset {weights.moveset:.2f}")
        lines.append("")
        lines.append(f"Total Score: {fusion.score}")
        return "\n".join(lines)


class FusionFilter:
    """Narrows a candidate list before team building.

    Type and ability constraints are case-insensitive substring matches;
    stat minimums of 0 are ignored.
    """

    def __init__(self, type_constraint=None, ability_constraint=None, min_stats=None, min_bst=0):
        self.type_constraint = (type_constraint or "").strip().lower()
        self.ability_constraint = (ability_constraint or "").strip().lower()
        self.min_stats = {k: v for k, v in (min_stats or {}).items() if v}
        self.min_bst = min_bst

    def accepts(self, fusion: FusionCandidate) -> bool:
        for stat, minimum in self.min_stats.items():
            if fusion.stats[stat] < minimum:
                return False
        if self.min_bst and fusion.bst < self.min_bst:
            return False
        if self.type_constraint and self.type_constraint not in fusion.typing.lower():
            return False
        if self.ability_constraint and self.ability_constraint not in fusion.ability.lower():
            return False
        return True

    def apply(self, fusions) -> list:
        return [f for f in fusions if self.accepts(f)]
