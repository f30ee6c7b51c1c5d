import asyncio
import math
import threading

from team import Team

# Minimum gain for a hill-climbing swap to count as an improvement
IMPROVEMENT_EPSILON = 1e-9


class SharedBest:
    """Best complete team found so far, shared by every search branch.

    Replacement needs a strictly greater score, so ties keep whichever team
    arrived first.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.score = -math.inf
        self.team = None

    def offer(self, score: float, members, delta: float) -> bool:
        with self._lock:
            if score <= self.score:
                return False
            team = Team(members)
            team.delta = delta
            team.total_score = score
            self.score = score
            self.team = team
            return True


class SearchStrategy:
    """Common interface of the four team search algorithms.

    `pool` arrives sorted by score (best first), with pinned members and
    hard-banned self-fusions already removed.
    """

    def __init__(self, config, config_data: dict):
        self.config = config
        self.config_data = config_data
        self.team_size = config_data['TEAM_SIZE']

    async def search(self, pool, pinned, evaluator, task, progress_callback=None) -> list:
        raise NotImplementedError


class GreedySearch(SearchStrategy):
    """Fill each slot with the candidate that lifts the running team score most."""

    def slice_size(self) -> int:
        return self.config_data['GREEDY_SLICE']

    async def search(self, pool, pinned, evaluator, task, progress_callback=None) -> list:
        teams = []
        remaining = list(pool)
        num_teams = self.config.num_teams
        for n in range(num_teams):
            if task.is_cancelled():
                break
            team = self.build_one(remaining, pinned, evaluator, task)
            if team is None:
                if not teams:
                    print("No valid team could be completed.")
                break
            teams.append(team)
            # Next team may not reuse any fusion pair from this one
            used_pairs = {m.pair_key for m in team.members[len(pinned):]}
            remaining = [c for c in remaining if c.pair_key not in used_pairs]
            if progress_callback:
                progress_callback(n + 1, num_teams)
            await asyncio.sleep(0)
        return teams

    def build_one(self, pool, pinned, evaluator, task):
        return self.greedy_team(pool, pinned, evaluator, task)

    def greedy_team(self, pool, pinned, evaluator, task):
        members = list(pinned)
        candidates = pool[:self.slice_size()]
        while len(members) < self.team_size:
            if task.is_cancelled():
                return None
            best = None
            best_score = -math.inf
            for candidate in candidates:
                if candidate in members or not evaluator.is_valid(members, candidate):
                    continue
                score = evaluator.total(members + [candidate])
                if score > best_score:
                    best = candidate
                    best_score = score
            if best is None:
                return None
            members.append(best)
        return Team(members).recalculate(evaluator)


class LocalSearch(GreedySearch):
    """Greedy construction followed by hill-climbing single-slot swaps."""

    def build_one(self, pool, pinned, evaluator, task):
        team = self.greedy_team(pool, pinned, evaluator, task)
        if team is None:
            return None
        members = list(team.members)
        current = evaluator.total(members)
        swap_pool = pool[:self.config_data['LOCAL_SEARCH_CANDIDATES']]

        improved = True
        while improved:
            improved = False
            for pos in range(len(pinned), len(members)):
                if task.is_cancelled():
                    return Team(members).recalculate(evaluator)
                others = members[:pos] + members[pos + 1:]
                best = None
                best_score = current
                for candidate in swap_pool:
                    if candidate in members or not evaluator.is_valid(others, candidate):
                        continue
                    score = evaluator.total(others + [candidate])
                    if score > best_score + IMPROVEMENT_EPSILON:
                        best = candidate
                        best_score = score
                if best is not None:
                    members = members[:pos] + [best] + members[pos + 1:]
                    current = best_score
                    improved = True
        return Team(members).recalculate(evaluator)


class BeamSearch(GreedySearch):
    """Keep the best `beam_width` partial teams, growing them one slot at a time."""

    def build_one(self, pool, pinned, evaluator, task):
        candidates = pool[:self.config_data['BEAM_SLICE']]
        width = self.config.beam_width
        beam = [(evaluator.total(pinned), tuple(pinned))]

        for _ in range(self.team_size - len(pinned)):
            expansions = {}
            for _, members in beam:
                if task.is_cancelled():
                    return None
                for candidate in candidates:
                    if candidate in members or not evaluator.is_valid(members, candidate):
                        continue
                    grown = members + (candidate,)
                    key = frozenset(id(m) for m in grown)
                    if key in expansions:
                        continue
                    expansions[key] = (evaluator.total(grown), grown)
            if not expansions:
                return None
            beam = sorted(expansions.values(), key=lambda e: e[0], reverse=True)[:width]

        return Team(beam[0][1]).recalculate(evaluator)


class BranchAndBoundSearch(SearchStrategy):
    """Exact search over a working set: combinations of the sorted list,
    pruned by an upper bound, root branches explored in parallel.
    """

    def __init__(self, config, config_data: dict):
        super().__init__(config, config_data)
        self.max_delta = config_data['MAX_POSSIBLE_DELTA']

    def working_set(self, pool) -> list:
        """Cut large pools down to SEARCH_POOL_LIMIT candidates.

        Order of admission: every high scorer, the best candidate of each
        typing not yet covered, high-scoring candidates with an unseen
        ability, then the best of the rest.
        """
        limit = self.config_data['SEARCH_POOL_LIMIT']
        if len(pool) <= limit:
            return list(pool)

        selected = []
        chosen = set()

        def take(candidate):
            if id(candidate) not in chosen:
                chosen.add(id(candidate))
                selected.append(candidate)

        for c in pool:
            if len(selected) >= limit or c.score < self.config_data['HIGH_SCORE_THRESHOLD']:
                break
            take(c)

        covered = {c.typing.lower() for c in selected}
        for c in pool:
            if len(selected) >= limit:
                break
            if c.typing.lower() not in covered:
                covered.add(c.typing.lower())
                take(c)

        abilities = {c.ability.lower() for c in selected}
        for c in pool:
            if len(selected) >= limit or c.score < self.config_data['ABILITY_DIVERSITY_MIN_SCORE']:
                break
            if c.ability.lower() not in abilities:
                abilities.add(c.ability.lower())
                take(c)

        for c in pool:
            if len(selected) >= limit:
                break
            take(c)

        selected.sort(key=lambda f: f.score, reverse=True)
        return selected

    def seed_lower_bound(self, pool, pinned, evaluator, best):
        """Top-down greedy fill so pruning has a target from the first node."""
        members = list(pinned)
        for c in pool:
            if len(members) >= self.team_size:
                break
            if evaluator.is_valid(members, c):
                members.append(c)
        if len(members) == self.team_size:
            delta = evaluator.delta(members)
            best.offer(sum(m.score for m in members) + delta, members, delta)

    def can_prune(self, current: float, last_index: int, slots: int, prefix: list, best) -> bool:
        end = last_index + 1 + slots
        if end >= len(prefix):
            return True
        future = prefix[end] - prefix[last_index + 1]
        return current + future + self.max_delta <= best.score

    def solve_branch(self, pool, members, current, last_index, prefix, evaluator, task, best):
        if task.is_cancelled():
            return
        if len(members) == self.team_size:
            delta = evaluator.delta(members)
            best.offer(current + delta, members, delta)
            return

        slots = self.team_size - len(members)
        if self.can_prune(current, last_index, slots, prefix, best):
            return

        for i in range(last_index + 1, len(pool)):
            if task.is_cancelled():
                return
            # Bound only shrinks as i grows on a sorted pool
            if self.can_prune(current, i - 1, slots, prefix, best):
                return
            candidate = pool[i]
            if not evaluator.is_valid(members, candidate):
                continue
            members.append(candidate)
            self.solve_branch(pool, members, current + candidate.score, i, prefix, evaluator, task, best)
            members.pop()

    def solve_root(self, pool, pinned, index, prefix, evaluator, task, best):
        if task.is_cancelled():
            return
        candidate = pool[index]
        if not evaluator.is_valid(pinned, candidate):
            return
        current = sum(p.score for p in pinned) + candidate.score
        if self.can_prune(current, index, self.team_size - len(pinned) - 1, prefix, best):
            return
        members = list(pinned) + [candidate]
        self.solve_branch(pool, members, current, index, prefix, evaluator, task, best)

    async def search(self, pool, pinned, evaluator, task, progress_callback=None) -> list:
        if task.is_cancelled():
            return []
        pool = self.working_set(pool)
        prefix = [0.0]
        for c in pool:
            prefix.append(prefix[-1] + c.score)

        best = SharedBest()
        self.seed_lower_bound(pool, pinned, evaluator, best)
        print(f"--- Starting Branch and Bound over {len(pool)} candidates "
              f"(lower bound {best.score:.3f}) ---")

        semaphore = asyncio.Semaphore(self.config_data['MAX_SEARCH_WORKERS'])
        completed = 0
        total = len(pool)

        async def run_root(index):
            nonlocal completed
            async with semaphore:
                if task.is_cancelled():
                    return
                await asyncio.to_thread(self.solve_root, pool, pinned, index, prefix, evaluator, task, best)
            completed += 1
            if progress_callback:
                progress_callback(completed, total)

        await asyncio.gather(*(run_root(i) for i in range(total)))

        if task.is_cancelled():
            print(f"Search cancelled after {completed}/{total} root branches.")
        if best.team is None:
            print("Warning: No valid team found!")
            return []
        return [best.team]
