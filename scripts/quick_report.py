from __future__ import annotations

import argparse
from pathlib import Path

from gallery_bandit.logging_utils import JsonlInteractionLogger
from gallery_bandit.metrics import TIMEFRAME_DAYS, compute_bandit_analytics

DEFAULT_LOG = Path(__file__).resolve().parent.parent / "logs" / "bandit_interactions.jsonl"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarise bandit interaction logs")
    parser.add_argument("--log", type=Path, default=DEFAULT_LOG)
    parser.add_argument("--user", default=None, help="restrict to a single user id")
    parser.add_argument("--timeframe", choices=sorted(TIMEFRAME_DAYS), default="week")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if not args.log.exists():
        print(f"No interaction log found at {args.log}")
        return

    records = JsonlInteractionLogger(args.log).read()
    summary = compute_bandit_analytics(records, args.user, args.timeframe)
    if summary.total_interactions == 0:
        print("No interactions in the selected window")
        return

    scope = args.user or "all users"
    print(f"Interactions ({scope}, last {args.timeframe}): {summary.total_interactions}")
    print(f"Average reward: {summary.average_reward:.3f}")
    print(f"Exploration rate: {summary.exploration_rate:.2%}")
    print(f"Exploitation rate: {summary.exploitation_rate:.2%}")

    actions: dict[str, int] = {}
    for record in records:
        if args.user and record.get("user_id") != args.user:
            continue
        action = str(record.get("action", "unknown"))
        actions[action] = actions.get(action, 0) + 1
    if actions:
        print("Actions (all time):")
        for action, count in sorted(actions.items(), key=lambda x: x[1], reverse=True):
            print(f"  {action}: {count}")


if __name__ == "__main__":
    main()
