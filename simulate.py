"""
Simulate many Hanabi games and report score statistics.

Usage:
    python simulate.py -n 1000 -p 3 -s 0
    python simulate.py -n 10000 -p 4 -s 0 --threads 8 --progress 1000
    python simulate.py -n 10 -s 0 --json-output "replays/game_%s.json" --losses-only
"""

from __future__ import annotations

import argparse
import logging
import time

from agents import AgentParams, RandomAgent, RefSieveAgent
from core.elimination import DEFAULT_MAX_GROUP_SIZE
from core.game_state import GameOptions
from envs.hanabi_env import HanabiEnv
from experiments import HanabiExperiment, ReplayTracker, SummaryTracker
from utils.device import get_device_name

logger = logging.getLogger(__name__)

AGENT_TYPES = {
    "ref_sieve": RefSieveAgent,
    "random": RandomAgent,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Simulate Hanabi games with convention agents.")
    parser.add_argument("-n", "--ntrials", type=int, default=1, help="Number of games to simulate")
    parser.add_argument("-s", "--seed", type=int, default=None, help="Seed of the first game")
    parser.add_argument("-p", "--players", type=int, default=2, help="Number of players (2-5)")
    parser.add_argument("-a", "--agent", choices=sorted(AGENT_TYPES), default="ref_sieve",
                        help="Agent used for every seat")
    parser.add_argument("-l", "--loglevel", default="info",
                        choices=["debug", "info", "warning", "error"], help="Log level")
    parser.add_argument("-g", "--max-group-size", type=int, default=DEFAULT_MAX_GROUP_SIZE,
                        help="Largest elimination group searched (0 for no bound)")
    parser.add_argument("-j", "--json-output", default=None,
                        help="Write a hanab.live replay per game; %%s is replaced by the seed")
    parser.add_argument("--losses-only", action="store_true",
                        help="With --json-output, skip games with a perfect score")
    parser.add_argument("--abort-on-error", action="store_true",
                        help="Stop at the first inconsistent belief instead of skipping the game")
    parser.add_argument("-t", "--threads", type=int, default=1, help="Games played at once")
    parser.add_argument("--progress", type=int, default=0,
                        help="Log progress every N games (0 = off)")
    return parser


def seat_params(seed: int | None, seat: int, max_group_size: int | None) -> AgentParams:
    """Parameters for one seat; every seat draws from its own random stream."""
    return AgentParams(seed=None if seed is None else seed + seat, max_group_size=max_group_size)


def main(argv: list[str] | None = None) -> dict:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.loglevel.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )

    options = GameOptions(num_players=args.players)
    agent_cls = AGENT_TYPES[args.agent]
    max_group_size = args.max_group_size or None

    def make_policy_map() -> dict:
        agents = [agent_cls(p, seat_params(args.seed, p, max_group_size)) for p in range(options.num_players)]
        return {f"player_{p}": agent.act for p, agent in enumerate(agents)}

    seed = args.seed if args.seed is not None else int(time.time())
    tracker = SummaryTracker()
    if args.json_output:
        tracker = ReplayTracker(tracker, args.json_output, seed, losses_only=args.losses_only)

    experiment = HanabiExperiment(
        env_factory=lambda game_seed: HanabiEnv(options, seed=game_seed),
        abort_on_error=args.abort_on_error,
        n_workers=args.threads,
        progress_every=args.progress,
    )

    logger.info(
        f"Simulating {args.ntrials} games with {options.num_players} {args.agent} agents "
        f"on {get_device_name()} with {args.threads} thread(s)"
    )
    start = time.time()
    results = experiment.run_games(make_policy_map=make_policy_map, n_games=args.ntrials, seed=seed, tracker=tracker)
    elapsed = time.time() - start

    print("=" * 60)
    print(f"Score histogram: {results['histogram']}")
    print(f"Average score: {results['average_score']:.3f} ± {results['stdev_of_average']:.3f}")
    print(f"Perfect games: {results['perfect_rate'] * 100:.1f}%")
    print(f"Average lives left: {results['avg_lives']:.2f}")
    print(f"Aborted games: {results['aborted_games']}")
    if results["first_imperfect_seed"] is not None:
        print(f"Example seed with non-perfect score: {results['first_imperfect_seed']}")
    print(f"Time: {elapsed:.1f}s ({args.ntrials / max(elapsed, 1e-9):.1f} games/sec)")
    print("=" * 60)
    return results


if __name__ == "__main__":
    main()
