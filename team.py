import threading
from enum import Enum

import config as defaultConfig


class ConstraintMode(Enum):
    DISABLED = "disabled"
    SOFT = "soft"
    HARD = "hard"


class ConstraintRule:
    """A team rule that is off, a weighted penalty, or a hard requirement."""

    def __init__(self, mode: ConstraintMode = ConstraintMode.DISABLED, weight: float = 0.0):
        if weight < 0:
            raise ValueError(f"Constraint weight must be >= 0, got {weight}")
        self.mode = mode
        self.weight = weight

    @classmethod
    def from_slider(cls, value: int, divisor: float = defaultConfig.CLAUSE_WEIGHT_DIVISOR,
                    hard_value: int = defaultConfig.CLAUSE_HARD_VALUE) -> "ConstraintRule":
        """0 = off, 1..99 = soft with weight value/divisor, 100 = hard."""
        if value < 0 or value > hard_value:
            raise ValueError(f"Clause value must be between 0 and {hard_value}, got {value}")
        if value == 0:
            return cls(ConstraintMode.DISABLED)
        if value == hard_value:
            return cls(ConstraintMode.HARD)
        return cls(ConstraintMode.SOFT, value / divisor)

    @property
    def is_hard(self) -> bool:
        return self.mode is ConstraintMode.HARD

    @property
    def is_soft(self) -> bool:
        return self.mode is ConstraintMode.SOFT

    def __repr__(self):
        if self.is_soft:
            return f"ConstraintRule(soft, weight={self.weight:.2f})"
        return f"ConstraintRule({self.mode.value})"


class SearchMode(Enum):
    GREEDY = "speed"
    LOCAL_SEARCH = "balanced"
    BEAM = "quality"
    EXHAUSTIVE = "maximum"

    @classmethod
    def from_index(cls, index: int) -> "SearchMode":
        """0=Speed, 1=Balanced, 2=Quality, 3=Maximum."""
        modes = list(cls)
        if not 0 <= index < len(modes):
            raise ValueError(f"Search mode index must be 0..{len(modes) - 1}, got {index}")
        return modes[index]

    @classmethod
    def parse(cls, value) -> "SearchMode":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls.from_index(value)
        text = str(value).strip().lower()
        for mode in cls:
            if text in (mode.value, mode.name.lower()):
                return mode
        raise ValueError(f"Unknown search mode '{value}'")


def _as_rule(value) -> ConstraintRule:
    if isinstance(value, ConstraintRule):
        return value
    return ConstraintRule.from_slider(value)


class TeamBuildConfig:
    """Per-run choices for the team builder: rules, algorithm and output size."""

    def __init__(self, species_clause=defaultConfig.SPECIES_CLAUSE, type_clause=defaultConfig.TYPE_CLAUSE,
                 self_fusion_clause=defaultConfig.SELF_FUSION_CLAUSE, mode=defaultConfig.ALGORITHM_MODE,
                 num_teams=defaultConfig.NUM_TEAMS, weakness_overlap_penalty=defaultConfig.WEAKNESS_OVERLAP_CHECK,
                 beam_width=defaultConfig.BEAM_WIDTH):
        if num_teams < 1:
            raise ValueError(f"num_teams must be >= 1, got {num_teams}")
        if beam_width < 1:
            raise ValueError(f"beam_width must be >= 1, got {beam_width}")
        self.species_clause = _as_rule(species_clause)
        self.type_clause = _as_rule(type_clause)
        self.self_fusion_clause = _as_rule(self_fusion_clause)
        self.mode = SearchMode.parse(mode)
        self.num_teams = num_teams
        self.weakness_overlap_penalty = weakness_overlap_penalty
        self.beam_width = beam_width

    @classmethod
    def from_config(cls, config_data: dict) -> "TeamBuildConfig":
        return cls(config_data['SPECIES_CLAUSE'], config_data['TYPE_CLAUSE'], config_data['SELF_FUSION_CLAUSE'],
                   config_data['ALGORITHM_MODE'], config_data['NUM_TEAMS'],
                   config_data['WEAKNESS_OVERLAP_CHECK'], config_data['BEAM_WIDTH'])


class TaskController:
    """Cooperative cancellation flag shared by the caller and every worker."""

    def __init__(self):
        self._cancelled = threading.Event()

    def cancel(self):
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()


class Team:
    def __init__(self, members=None):
        self.members = list(members or [])
        self.delta = 0.0
        self.total_score = 0.0

    def recalculate(self, evaluator) -> "Team":
        """Total score = sum of member scores + delta."""
        self.delta = evaluator.delta(self.members)
        self.total_score = self.base_score + self.delta
        return self

    @property
    def base_score(self) -> float:
        return sum(m.score for m in self.members)

    def __len__(self):
        return len(self.members)

    def __str__(self):
        lines = [f"Team (score {self.total_score:.3f}, delta {self.delta:+.2f})"]
        for m in sorted(self.members, key=lambda f: f.score, reverse=True):
            lines.append(f"  {m.display_name:<30} {m.typing:<18} {m.ability:<16} {m.role:<15} {m.score:.3f}")
        return "\n".join(lines)


class TeamEvaluator:
    """Validity predicate and score adjustment (delta) for a team under a config."""

    def __init__(self, config: TeamBuildConfig, config_data: dict = None):
        self.config = config
        self.config_data = config_data or defaultConfig.as_dict()
        self.max_shared_type = self.config_data['MAX_SHARED_TYPE']

    def type_counts(self, members) -> dict:
        counts = {}
        for m in members:
            for t in m.types:
                counts[t] = counts.get(t, 0) + 1
        return counts

    def is_valid(self, members, candidate) -> bool:
        """Can `candidate` join `members` without breaking a hard rule?"""
        if self.config.species_clause.is_hard:
            for m in members:
                if m.species & candidate.species:
                    return False

        if self.config.type_clause.is_hard:
            counts = self.type_counts(members)
            for t in candidate.types:
                if counts.get(t, 0) >= self.max_shared_type:
                    return False
        return True

    def delta(self, members) -> float:
        cfg = self.config_data
        delta = 0.0

        if self.config.species_clause.is_soft:
            # Head then body, every name already seen is one duplicate
            seen = set()
            dupes = 0
            for m in members:
                for name in m.pair_key:
                    if name in seen:
                        dupes += 1
                    seen.add(name)
            delta -= dupes * self.config.species_clause.weight

        if self.config.type_clause.is_soft:
            violations = sum(max(0, c - self.max_shared_type) for c in self.type_counts(members).values())
            delta -= violations * self.config.type_clause.weight

        if self.config.self_fusion_clause.is_soft:
            self_fusions = sum(1 for m in members if m.is_self_fusion)
            delta -= self_fusions * self.config.self_fusion_clause.weight

        roles = {m.role for m in members}
        if len(roles) >= 5:
            delta += cfg['ROLE_BONUS_FIVE_ROLES']
        elif len(roles) >= 4:
            delta += cfg['ROLE_BONUS_FOUR_ROLES']

        if self.config.weakness_overlap_penalty:
            for bit in range(len(cfg['POKEMON_TYPES'])):
                weak = sum(1 for m in members if m.weakness_mask & (1 << bit))
                if weak > cfg['WEAKNESS_OVERLAP_LIMIT']:
                    delta -= cfg['WEAKNESS_OVERLAP_PENALTY']
        return delta

    def total(self, members) -> float:
        return sum(m.score for m in members) + self.delta(members)

    def max_delta(self) -> float:
        """Largest positive delta any team can reach. Every other term is a penalty."""
        return max(0.0, self.config_data['ROLE_BONUS_FIVE_ROLES'], self.config_data['ROLE_BONUS_FOUR_ROLES'])
