import asyncio
import random
from itertools import combinations

import pytest

import config as defaultConfig
from conftest import make_candidate
from team import SearchMode, TaskController, TeamBuildConfig, TeamEvaluator
from team_builder import TeamBuilder
from team_search import BranchAndBoundSearch

ROLES = ["Sweeper", "Wall/Tank", "Wallbreaker", "Mixed Attacker", "Slow Pivot", "Fast Support", "Balanced"]
TYPINGS = ["Water", "Fire", "Water/Flying", "Grass", "Fire/Ground", "Normal", "Steel/Fairy", "Rock/Dark"]
ALL_MODES = list(SearchMode)


def random_pool(seed, size, species_count=16):
    rng = random.Random(seed)
    names = [f"Mon{i}" for i in range(species_count)]
    pool = []
    for _ in range(size):
        head, body = rng.sample(names, 2)
        pool.append(make_candidate(head, body, score=round(rng.uniform(0.3, 0.95), 3),
                                   role=rng.choice(ROLES), typing=rng.choice(TYPINGS)))
    return pool


def distinct_pool(size, score=0.6):
    """Candidates that never share a species with each other."""
    return [make_candidate(f"Head{i}", f"Body{i}", score=round(score - i * 0.01, 3), role=ROLES[i % len(ROLES)])
            for i in range(size)]


def brute_force_best(pool, evaluator, team_size=6):
    best = None
    for combo in combinations(pool, team_size):
        members = []
        for c in combo:
            if not evaluator.is_valid(members, c):
                break
            members.append(c)
        else:
            score = evaluator.total(members)
            if best is None or score > best:
                best = score
    return best


def build(candidates, pinned=None, task=None, progress_callback=None, **settings):
    return asyncio.run(TeamBuilder().build_teams(candidates, pinned, TeamBuildConfig(**settings),
                                                 task, progress_callback))


def shares_species(team):
    for a, b in combinations(team.members, 2):
        if a.species & b.species:
            return True
    return False


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
@pytest.mark.parametrize("species, types", [(100, 100), (100, 40), (40, 0), (0, 100)])
def test_exhaustive_matches_brute_force(seed, species, types):
    pool = random_pool(seed, 13)
    settings = dict(species_clause=species, type_clause=types, self_fusion_clause=0, mode="maximum", num_teams=1)
    evaluator = TeamEvaluator(TeamBuildConfig(**settings), defaultConfig.as_dict())

    expected = brute_force_best(pool, evaluator)
    teams = build(pool, **settings)

    if expected is None:
        assert teams == []
    else:
        assert len(teams) == 1
        assert teams[0].total_score == pytest.approx(expected)
        assert len(teams[0]) == 6


def test_exhaustive_finds_a_team_without_hard_rules():
    pool = random_pool(9, 12)
    teams = build(pool, species_clause=20, type_clause=20, self_fusion_clause=0, mode="maximum")
    evaluator = TeamEvaluator(TeamBuildConfig(species_clause=20, type_clause=20, self_fusion_clause=0))
    assert teams[0].total_score == pytest.approx(brute_force_best(pool, evaluator))


@pytest.mark.parametrize("mode", ALL_MODES)
def test_hard_species_clause_holds_in_every_mode(mode):
    # overlapping candidates score higher, the distinct tail keeps a team reachable
    candidates = random_pool(11, 18, species_count=20) + distinct_pool(8, score=0.35)

    teams = build(candidates, species_clause=100, self_fusion_clause=0, mode=mode, num_teams=3)

    assert teams
    for team in teams:
        assert len(team) == 6
        assert not shares_species(team)


@pytest.mark.parametrize("mode", ALL_MODES)
def test_six_pinned_are_returned_unchanged(mode):
    pinned = distinct_pool(6)
    others = [make_candidate(f"X{i}", f"Y{i}", score=0.99) for i in range(10)]

    teams = build(others, pinned, mode=mode)

    assert len(teams) == 1
    assert teams[0].members == pinned
    evaluator = TeamEvaluator(TeamBuildConfig(mode=mode))
    assert teams[0].total_score == pytest.approx(sum(p.score for p in pinned) + evaluator.delta(pinned))


@pytest.mark.parametrize("mode", ALL_MODES)
def test_pinned_members_in_every_team(mode):
    pool = distinct_pool(30)
    pinned = pool[10:12]

    teams = build(pool, pinned, mode=mode, num_teams=3)

    assert teams
    for team in teams:
        assert team.members[:2] == pinned
        assert len(team) == 6
        assert len(set(map(id, team.members))) == 6


@pytest.mark.parametrize("mode", [SearchMode.GREEDY, SearchMode.LOCAL_SEARCH, SearchMode.BEAM])
def test_later_teams_do_not_reuse_a_pair(mode):
    best = make_candidate("Shared", "Pair", score=0.99, ability="Intimidate")
    variant = make_candidate("Shared", "Pair", score=0.98, ability="Moxie")
    pool = [best, variant] + distinct_pool(20)

    teams = build(pool, mode=mode, num_teams=3)

    assert len(teams) == 3
    seen = [m.pair_key for team in teams for m in team.members]
    assert seen.count(("shared", "pair")) == 1


def test_teams_sorted_best_first():
    teams = build(distinct_pool(30), mode="speed", num_teams=4)
    scores = [t.total_score for t in teams]
    assert scores == sorted(scores, reverse=True)


def test_hard_self_fusion_clause_drops_self_fusions():
    pool = [make_candidate(f"Solo{i}", score=0.99) for i in range(6)] + distinct_pool(6, score=0.4)
    teams = build(pool, species_clause=100, self_fusion_clause=100, mode="balanced", num_teams=1)
    assert teams
    assert not any(m.is_self_fusion for m in teams[0].members)


def test_too_few_candidates_is_not_fatal():
    assert build(distinct_pool(3), mode="maximum") == []
    assert build(distinct_pool(3), distinct_pool(2), mode="speed") == []


@pytest.mark.parametrize("mode", ALL_MODES)
def test_cancelled_before_start_returns_nothing(mode):
    task = TaskController()
    task.cancel()
    assert build(distinct_pool(20), task=task, mode=mode) == []


def test_cancel_mid_search_returns_valid_partial_result():
    pool = random_pool(5, 40, species_count=30)
    task = TaskController()
    calls = []

    def cancel_after_first_branch(completed, total):
        calls.append(completed)
        task.cancel()

    teams = build(pool, task=task, progress_callback=cancel_after_first_branch,
                  species_clause=100, type_clause=100, mode="maximum")

    assert task.is_cancelled()
    assert len(calls) < len(pool)
    evaluator = TeamEvaluator(TeamBuildConfig(species_clause=100, type_clause=100))
    for team in teams:
        assert len(team) == 6
        members = []
        for m in team.members:
            assert evaluator.is_valid(members, m)
            members.append(m)


def test_unsound_delta_bound_is_rejected():
    config_data = dict(defaultConfig.as_dict(), MAX_POSSIBLE_DELTA=1.0)
    builder = TeamBuilder(config_data)
    with pytest.raises(ValueError, match="MAX_POSSIBLE_DELTA"):
        asyncio.run(builder.build_teams(distinct_pool(10), config=TeamBuildConfig(mode="maximum")))


def test_working_set_keeps_high_scorers_and_every_typing():
    rare = ["Bug", "Ghost/Ice", "Dragon"]
    pool = []
    for i in range(200):
        typing = rare[i - 197] if i >= 197 else TYPINGS[i % len(TYPINGS)]
        pool.append(make_candidate(f"Head{i}", f"Body{i}", score=round(0.95 - i * 0.00375, 5),
                                   typing=typing, ability=f"Ability{i % 12}"))
    limit = defaultConfig.SEARCH_POOL_LIMIT

    selected = BranchAndBoundSearch(TeamBuildConfig(), defaultConfig.as_dict()).working_set(pool)

    assert len(selected) <= limit
    kept = {id(c) for c in selected}
    assert all(id(c) in kept for c in pool if c.score >= defaultConfig.HIGH_SCORE_THRESHOLD)
    assert {c.typing.lower() for c in selected} == {c.typing.lower() for c in pool}
    # the rare typings sit far below the score cut
    assert all(id(c) in kept for c in pool[197:])
    assert [c.score for c in selected] == sorted((c.score for c in selected), reverse=True)


def test_working_set_leaves_small_pools_alone():
    pool = [make_candidate(f"Head{i}", f"Body{i}", score=0.5) for i in range(defaultConfig.SEARCH_POOL_LIMIT)]
    assert BranchAndBoundSearch(TeamBuildConfig(), defaultConfig.as_dict()).working_set(pool) == pool


def test_local_search_ends_at_a_local_optimum():
    pool = random_pool(21, 40, species_count=20) + distinct_pool(10, score=0.35)
    settings = dict(species_clause=100, type_clause=40, self_fusion_clause=0, mode="balanced", num_teams=1)
    evaluator = TeamEvaluator(TeamBuildConfig(**settings), defaultConfig.as_dict())

    teams = build(pool, **settings)

    assert len(teams) == 1
    members = teams[0].members
    current = evaluator.total(members)
    assert teams[0].total_score == pytest.approx(current)
    for pos in range(len(members)):
        others = members[:pos] + members[pos + 1:]
        for candidate in pool:
            if candidate in members or not evaluator.is_valid(others, candidate):
                continue
            assert evaluator.total(others + [candidate]) <= current + 1e-9


def test_wider_beam_beats_width_one():
    # A blocks both B and C, which together are worth more
    a = make_candidate("X", "Y", score=0.95)
    b = make_candidate("X", "P", score=0.9)
    c = make_candidate("Y", "Q", score=0.9)
    fillers = [make_candidate(f"Head{i}", f"Body{i}", score=round(0.3 - i * 0.01, 3)) for i in range(10)]
    settings = dict(species_clause=100, type_clause=0, self_fusion_clause=0, mode="quality", num_teams=1)

    narrow = build([a, b, c] + fillers, beam_width=1, **settings)
    wide = build([a, b, c] + fillers, beam_width=50, **settings)

    assert narrow[0].total_score == pytest.approx(2.35)
    assert wide[0].total_score == pytest.approx(2.94)
    assert narrow[0].total_score < wide[0].total_score
    assert a in narrow[0].members
    assert b in wide[0].members and c in wide[0].members
