# config.py

# --- Scoring Weights ---
# These weights control how much each component contributes to the base
# score of a fusion. They are normalized by their sum, so only the ratios
# between them matter.

# How much does the fused **base stat total** matter?
# **Higher Value**: Favors raw power. Big BST fusions float to the top.
STAT_WEIGHT = 0.40

# How much does the **typing** matter (via the type-rank table)?
# **Higher Value**: Favors fusions with strong defensive/offensive typings,
# even when their stats are mediocre.
TYPE_WEIGHT = 0.30

# How much does the chosen **ability** matter?
# **Higher Value**: Ability variants of the same fusion spread further apart.
ABILITY_WEIGHT = 0.25

# How much does the **moveset** heuristic matter?
# **Lower Value**: The moveset table is coarse, keep it a tiebreaker.
MOVESET_WEIGHT = 0.05

# If True, abilities that sit in the hidden slot (slot 3) are scored at
# 80% of their base value, because they are harder to obtain.
HIDDEN_ABILITY_PENALTY = False
HIDDEN_ABILITY_FACTOR = 0.8

# --- Score Shaping ---
# Normalization range for the fused BST. Anything at or below the minimum
# scores 0 for stats, anything at or above the maximum scores 1.
BST_MIN = 250
BST_MAX = 680

# Type ranks run from 1 (best) to TYPE_RANK_MAX. Unknown typings get
# TYPE_RANK_DEFAULT, which is one worse than the worst ranked typing.
TYPE_RANK_MAX = 171
TYPE_RANK_DEFAULT = 172

# Missing reference entries fall back to these values instead of failing.
ABILITY_SCORE_DEFAULT = 0.5
MOVESET_DEFAULT = (0.6, 0.6, 0.4)

# Multipliers applied to the synergy sum: one for the ability ordering,
# one for the bonus added on top of the base score.
SYNERGY_ORDER_FACTOR = 0.1
SYNERGY_SCORE_FACTOR = 0.08

# Scores above this value are compressed so a handful of outliers cannot
# dominate every team.
# **Higher Value**: Less compression, top fusions pull further ahead.
SCORE_COMPRESSION_START = 0.85
SCORE_COMPRESSION_FACTOR = 0.3

# --- Role Classification ---
# Roster-wide stat averages are scaled up by these multipliers so the role
# thresholds sit in the upper half of the distribution.
ROLE_ATK_MULTIPLIER = 1.2
ROLE_SPA_MULTIPLIER = 1.2
ROLE_SPE_MULTIPLIER = 1.1
ROLE_BULK_MULTIPLIER = 1.2

# Ability score needed to label a fusion "Ability Carry".
ABILITY_CARRY_THRESHOLD = 0.95

# --- Team Constraints ---
# Every clause uses the same slider scale:
#   0       -> rule disabled
#   1..99   -> soft penalty, weight = value / 20 (so 0.05 .. 4.95 per violation)
#   100     -> hard requirement, violating teams are never built
SPECIES_CLAUSE = 100
TYPE_CLAUSE = 40
SELF_FUSION_CLAUSE = 100
CLAUSE_HARD_VALUE = 100
CLAUSE_WEIGHT_DIVISOR = 20.0

# Maximum number of members that may share a single type before the type
# clause kicks in.
MAX_SHARED_TYPE = 2

# Role diversity bonus. A team with at least 5 distinct roles gets the
# first value, one with 4 distinct roles gets the second.
ROLE_BONUS_FIVE_ROLES = 1.5
ROLE_BONUS_FOUR_ROLES = 0.8

# Penalty per attacking type that more than WEAKNESS_OVERLAP_LIMIT members
# are weak to. Only applied when the weakness check is switched on.
WEAKNESS_OVERLAP_PENALTY = 0.5
WEAKNESS_OVERLAP_LIMIT = 2
WEAKNESS_OVERLAP_CHECK = False

# --- Team Builder Parameters ---

TEAM_SIZE = 6

# How many teams the non-exhaustive modes build. Candidates used by one team
# are removed before the next team is built.
NUM_TEAMS = 5

# The default algorithm. One of "speed", "balanced", "quality", "maximum".
# **speed**: Greedy. Fast, good results.
# **balanced**: Greedy followed by hill-climbing swaps.
# **quality**: Beam search. Slower, great results.
# **maximum**: Parallel branch-and-bound. Slowest, optimal on its working set.
ALGORITHM_MODE = "balanced"

# Greedy looks only at the best GREEDY_SLICE candidates at each step.
# **Higher Value**: Finds better synergies, each step takes longer.
GREEDY_SLICE = 200

# During hill-climbing, how many pool candidates are tried per team slot.
LOCAL_SEARCH_CANDIDATES = 150

# Number of partial teams kept alive after each beam expansion.
# **Higher Value**: Closer to optimal, memory and time grow linearly.
BEAM_WIDTH = 50

# Candidate slice each partial team is expanded over.
BEAM_SLICE = 150

# Size of the working set the exhaustive mode searches. Pools larger than
# this are pre-filtered down to it.
# **Higher Value**: Explores more, but the search grows combinatorially.
SEARCH_POOL_LIMIT = 120

# Candidates at or above this score always make the working set.
HIGH_SCORE_THRESHOLD = 0.8

# Candidates bringing a not-yet-seen ability need at least this score to be
# added for ability diversity.
ABILITY_DIVERSITY_MIN_SCORE = 0.6

# Largest positive delta any team can realize. Used by the branch-and-bound
# upper bound, it must stay >= ROLE_BONUS_FIVE_ROLES or pruning can drop
# the true optimum. The team builder refuses to run if it does not.
MAX_POSSIBLE_DELTA = 1.5

# --- Concurrency ---

# How many head rows are scored at the same time.
MAX_CONCURRENT_SCORERS = 8

# How many root branches of the exhaustive search run at the same time.
MAX_SEARCH_WORKERS = 8

# Progress is reported after this many scored pairs.
PROGRESS_BATCH_SIZE = 1000

# --- Type Data ---

POKEMON_TYPES = [
    "normal", "fire", "water", "electric", "grass", "ice", "fighting",
    "poison", "ground", "flying", "psychic", "bug", "rock", "ghost",
    "dragon", "dark", "steel", "fairy"
]

# Defensive chart: TYPE_CHART[defending][i] is the multiplier taken from an
# attack of type POKEMON_TYPES[i]. 2 = weakness, 0.5 = resistance, 0 = immunity.
TYPE_CHART = {
    #            Nor  Fir  Wat  Ele  Gra  Ice  Fig  Poi  Gro  Fly  Psy  Bug  Roc  Gho  Dra  Dar  Ste  Fai
    "normal":   [1,   1,   1,   1,   1,   1,   2,   1,   1,   1,   1,   1,   1,   0,   1,   1,   1,   1],
    "fire":     [1,   0.5, 2,   1,   0.5, 0.5, 1,   1,   2,   1,   1,   0.5, 2,   1,   1,   1,   0.5, 0.5],
    "water":    [1,   0.5, 0.5, 2,   2,   0.5, 1,   1,   1,   1,   1,   1,   1,   1,   1,   1,   0.5, 1],
    "electric": [1,   1,   1,   0.5, 1,   1,   1,   1,   2,   0.5, 1,   1,   1,   1,   1,   1,   0.5, 1],
    "grass":    [1,   2,   0.5, 0.5, 0.5, 2,   1,   2,   0.5, 2,   1,   2,   1,   1,   1,   1,   1,   1],
    "ice":      [1,   2,   1,   1,   1,   0.5, 2,   1,   1,   1,   1,   1,   2,   1,   1,   1,   2,   1],
    "fighting": [1,   1,   1,   1,   1,   1,   1,   1,   1,   2,   2,   0.5, 0.5, 1,   1,   0.5, 1,   2],
    "poison":   [1,   1,   1,   1,   0.5, 1,   0.5, 0.5, 2,   1,   2,   0.5, 1,   1,   1,   1,   1,   0.5],
    "ground":   [1,   1,   2,   0,   2,   2,   1,   0.5, 1,   1,   1,   1,   0.5, 1,   1,   1,   1,   1],
    "flying":   [1,   1,   1,   2,   0.5, 2,   0.5, 1,   0,   1,   1,   0.5, 2,   1,   1,   1,   1,   1],
    "psychic":  [1,   1,   1,   1,   1,   1,   0.5, 1,   1,   1,   0.5, 2,   1,   2,   1,   2,   1,   1],
    "bug":      [1,   2,   1,   1,   0.5, 1,   0.5, 1,   0.5, 2,   1,   1,   2,   1,   1,   1,   1,   1],
    "rock":     [0.5, 0.5, 2,   1,   2,   1,   2,   0.5, 2,   0.5, 1,   1,   1,   1,   1,   1,   2,   1],
    "ghost":    [0,   1,   1,   1,   1,   1,   0,   0.5, 1,   1,   1,   0.5, 1,   2,   1,   2,   1,   1],
    "dragon":   [1,   0.5, 0.5, 0.5, 0.5, 2,   1,   1,   1,   1,   1,   1,   1,   1,   2,   1,   1,   2],
    "dark":     [1,   1,   1,   1,   1,   1,   2,   1,   1,   1,   0,   2,   1,   0.5, 1,   0.5, 1,   2],
    "steel":    [0.5, 2,   1,   1,   0.5, 0.5, 2,   0,   2,   0.5, 0.5, 0.5, 0.5, 1,   0.5, 1,   0.5, 0.5],
    "fairy":    [1,   1,   1,   1,   1,   1,   0.5, 2,   1,   1,   1,   0.5, 1,   1,   0,   0.5, 2,   1],
}

# --- Synergy Rules ---
# Used when the reference data ships no synergy table, so scoring works
# out of the box. Format: (ability, check, value, modifier).
DEFAULT_SYNERGY_RULES = [
    ("Levitate", "type", "Ground", -0.05),
    ("Huge Power", "stat_atk", ">100", 0.20),
    ("Pure Power", "stat_atk", ">100", 0.20),
    ("Speed Boost", "stat_spe", ">90", 0.15),
    ("Adaptability", "stat_spa", ">110", 0.10),
    ("Regenerator", "bulk", ">200", 0.10),
]


def as_dict() -> dict:
    """Snapshot of every tunable in this module, keyed by constant name."""
    return {name: value for name, value in globals().items() if name.isupper()}
