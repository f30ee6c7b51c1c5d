from dataclasses import dataclass
from enum import Enum


class SynergyCheck(Enum):
    TYPE = "type"
    STAT_ATK = "stat_atk"
    STAT_SPA = "stat_spa"
    STAT_SPE = "stat_spe"
    BULK = "bulk"   # def + spd


@dataclass(frozen=True)
class SynergyRule:
    """One (ability, condition, modifier) row of the synergy table.

    Threshold values are written ">100" or "<60". A bare number such as
    "100" is accepted and means "at least" (stat >= 100) instead of never
    matching. TYPE rules compare against each type of the fused typing.
    """
    ability: str
    check: SynergyCheck
    value: str
    modifier: float

    def __post_init__(self):
        if not self.ability:
            raise ValueError("Synergy rule needs an ability name")
        if self.check is not SynergyCheck.TYPE:
            _parse_threshold(self.value)

    @classmethod
    def from_row(cls, ability, check, value, modifier) -> "SynergyRule":
        try:
            check = SynergyCheck(str(check).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown synergy check '{check}' for {ability}") from None
        return cls(str(ability).strip(), check, str(value).strip(), float(modifier))

    def matches(self, types, stats: dict) -> bool:
        if self.check is SynergyCheck.TYPE:
            return self.value.lower() in types
        if self.check is SynergyCheck.STAT_ATK:
            stat = stats['atk']
        elif self.check is SynergyCheck.STAT_SPA:
            stat = stats['spa']
        elif self.check is SynergyCheck.STAT_SPE:
            stat = stats['spe']
        else:
            stat = stats['def'] + stats['spd']
        op, threshold = _parse_threshold(self.value)
        if op == ">":
            return stat > threshold
        if op == "<":
            return stat < threshold
        return stat >= threshold


def _parse_threshold(value: str):
    text = str(value).strip()
    op = text[:1] if text[:1] in "<>" else ""
    number = text[1:] if op else text
    try:
        return op, float(number)
    except ValueError:
        raise ValueError(f"Malformed synergy threshold '{value}'") from None


def calculate_synergy(rules, ability: str, typing: str, stats: dict) -> float:
    """Sum the modifiers of every rule for `ability` that the fusion triggers.

    All matching rules accumulate; there is no conflict resolution.
    """
    ability_key = ability.lower()
    types = [t.strip().lower() for t in typing.split("/")]
    bonus = 0.0
    for rule in rules:
        if rule.ability.lower() != ability_key:
            continue
        if rule.matches(types, stats):
            bonus += rule.modifier
    return bonus
