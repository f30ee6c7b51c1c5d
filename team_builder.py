import time

import config as defaultConfig
from team import SearchMode, TaskController, Team, TeamBuildConfig, TeamEvaluator
from team_search import BeamSearch, BranchAndBoundSearch, GreedySearch, LocalSearch

STRATEGIES = {
    SearchMode.GREEDY: GreedySearch,
    SearchMode.LOCAL_SEARCH: LocalSearch,
    SearchMode.BEAM: BeamSearch,
    SearchMode.EXHAUSTIVE: BranchAndBoundSearch,
}


class TeamBuilder:
    def __init__(self, config_data: dict = None):
        self.config_data = config_data or defaultConfig.as_dict()

    def create_strategy(self, config: TeamBuildConfig):
        return STRATEGIES[config.mode](config, self.config_data)

    async def build_teams(self, candidates, pinned=None, config: TeamBuildConfig = None,
                          task: TaskController = None, progress_callback=None) -> list:
        """Best team(s) for the candidate list under `config`.

        Pinned candidates appear in every team. Returns an empty list when no
        team can be completed or the task is cancelled before one is found.
        """
        config = config or TeamBuildConfig.from_config(self.config_data)
        task = task or TaskController()
        evaluator = TeamEvaluator(config, self.config_data)
        team_size = self.config_data['TEAM_SIZE']

        if self.config_data['MAX_POSSIBLE_DELTA'] < evaluator.max_delta():
            raise ValueError(f"MAX_POSSIBLE_DELTA ({self.config_data['MAX_POSSIBLE_DELTA']}) is below the "
                             f"largest achievable delta ({evaluator.max_delta()}); pruning would be unsound")

        print(f"--- Starting {config.mode.value.capitalize()} team search ---")
        print(f"Constraints: species={config.species_clause}, types={config.type_clause}, "
              f"self-fusion={config.self_fusion_clause}")
        start = time.perf_counter()

        pinned_list = list(dict.fromkeys(pinned or []))
        if len(pinned_list) >= team_size:
            team = Team(pinned_list[:team_size]).recalculate(evaluator)
            print(f"Team fully pinned. Score: {team.total_score:.3f}")
            return [team]

        pinned_set = set(pinned_list)
        pool = [c for c in candidates if c not in pinned_set]
        if config.self_fusion_clause.is_hard:
            pool = [c for c in pool if not c.is_self_fusion]
        pool.sort(key=lambda f: f.score, reverse=True)

        slots = team_size - len(pinned_list)
        if len(pool) < slots:
            print(f"Warning: {slots} open slots but only {len(pool)} candidates available. No team built.")
            return []

        strategy = self.create_strategy(config)
        teams = await strategy.search(pool, pinned_list, evaluator, task, progress_callback)
        teams.sort(key=lambda t: t.total_score, reverse=True)

        elapsed = (time.perf_counter() - start) * 1000
        if teams:
            print(f"Search finished in {elapsed:.0f}ms. Best Score: {teams[0].total_score:.3f}")
        else:
            print(f"Search finished in {elapsed:.0f}ms. No valid teams found.")
        return teams
