"""Attention engine CLI — inspect policy, score events, and manage watch progress.

Usage:
    python -m attention.cli status
    python -m attention.cli check-invariants
    python -m attention.cli tier --score 42.5
    python -m attention.cli route --kind watch --duration 10 --score 1
    python -m attention.cli simulate-accrual --seconds 30 --speed 1.25
    python -m attention.cli progress list
    python -m attention.cli progress show --video v1
    python -m attention.cli progress clear --video v1

ATTENTION_CONFIG_DIR and ATTENTION_DATA_DIR (environment or .env) override
the default config/ and data/ directories.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from attention.boundary import JsonFileKeyValueStore
from attention.earning.accrual import AccrualEngine
from attention.earning.progress import WatchProgressLedger
from attention.models.attention import EventKind
from attention.policy.resolver import AttentionPolicy
from attention.scheduling import VirtualScheduler
from attention.trust.router import EventRouter
from attention.trust.store import TrustScoreStore
from attention.trust.tiers import trust_tier


DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"
DEFAULT_DATA = Path(__file__).resolve().parents[2] / "data"
PROGRESS_FILE = "progress.json"


def _load_policy(config_dir: Path) -> AttentionPolicy:
    """Use the config dir if it has params, otherwise the built-in defaults."""
    try:
        return AttentionPolicy.from_config_dir(config_dir)
    except FileNotFoundError:
        return AttentionPolicy.default()


def _make_ledger(data_dir: Path) -> WatchProgressLedger:
    return WatchProgressLedger(JsonFileKeyValueStore(data_dir / PROGRESS_FILE))


def cmd_status(args: argparse.Namespace) -> int:
    policy = _load_policy(args.config)
    print(json.dumps(policy.params, indent=2, sort_keys=True))
    return 0


def cmd_check_invariants(args: argparse.Namespace) -> int:
    try:
        policy = AttentionPolicy.from_config_dir(args.config)
    except (OSError, ValueError) as exc:
        print(f"Failed: cannot load policy: {exc}", file=sys.stderr)
        return 1
    errors = policy.validate()
    if errors:
        for error in errors:
            print(f"Failed: {error}", file=sys.stderr)
        return 1
    print("All attention policy invariants hold.")
    return 0


def cmd_tier(args: argparse.Namespace) -> int:
    policy = _load_policy(args.config)
    print(trust_tier(args.score, policy).value)
    return 0


def cmd_route(args: argparse.Namespace) -> int:
    policy = _load_policy(args.config)
    scheduler = VirtualScheduler()
    store = TrustScoreStore(policy, clock=scheduler.now, initial=args.score)
    router = EventRouter(store, policy)
    previous = store.read()
    new_score = router.route(
        args.kind,
        duration=args.duration,
        verified=not args.unverified,
        risk=args.risk,
    )
    print(json.dumps({
        "kind": args.kind,
        "previous_score": previous,
        "new_score": new_score,
        "trust_state": trust_tier(new_score, policy).value,
    }, indent=2))
    return 0


def cmd_simulate_accrual(args: argparse.Namespace) -> int:
    """Play content for a fixed time on a virtual clock and report the reward."""
    policy = _load_policy(args.config)
    scheduler = VirtualScheduler()
    emitted: list[float] = []
    with AccrualEngine(emitted.append, scheduler, policy.accrual_config(),
                       playback_speed=args.speed) as engine:
        engine.start()
        scheduler.advance(args.seconds)
        whole_units = sum(emitted)
        remainder = engine.flush()
        indicator = engine.speed_indicator()
    print(json.dumps({
        "seconds": args.seconds,
        "speed": indicator.speed,
        "modifier": indicator.modifier,
        "whole_units": whole_units,
        "flushed": remainder,
        "total": whole_units + remainder,
    }, indent=2))
    return 0


def cmd_progress(args: argparse.Namespace) -> int:
    ledger = _make_ledger(args.data)

    if args.action == "list":
        for video_id in ledger.video_ids():
            print(video_id)
        return 0

    if not args.video:
        print("Failed: --video is required", file=sys.stderr)
        return 1

    if args.action == "clear":
        ledger.clear_progress(args.video)
        print(f"Cleared progress: {args.video}")
        return 0

    record = ledger.get_progress(args.video)
    if record is None:
        print(f"Failed: no progress for {args.video}", file=sys.stderr)
        return 1
    print(json.dumps(record.to_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="attention",
        description="Attention engine — trust score and reward accrual CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(os.environ.get("ATTENTION_CONFIG_DIR", DEFAULT_CONFIG)),
        help="Path to config directory (default: config/)",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=Path(os.environ.get("ATTENTION_DATA_DIR", DEFAULT_DATA)),
        help="Path to data directory (default: data/)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # status
    sub.add_parser("status", help="Show the resolved policy")

    # check-invariants
    sub.add_parser("check-invariants", help="Validate the policy parameters")

    # tier
    p_tier = sub.add_parser("tier", help="Show the trust tier for a score")
    p_tier.add_argument("--score", type=float, required=True)

    # route
    p_route = sub.add_parser("route", help="Apply one attention event to a score")
    p_route.add_argument("--kind", required=True, choices=[k.value for k in EventKind])
    p_route.add_argument("--duration", type=float, default=1.0, help="Watch seconds (default: 1)")
    p_route.add_argument("--unverified", action="store_true", help="Treat the event as unverified")
    p_route.add_argument("--risk", type=float, default=0.0, help="Risk score (default: 0)")
    p_route.add_argument("--score", type=float, default=None, help="Starting score (default: policy initial)")

    # simulate-accrual
    p_sim = sub.add_parser("simulate-accrual", help="Simulate reward accrual on a virtual clock")
    p_sim.add_argument("--seconds", type=float, required=True, help="Playback time in seconds")
    p_sim.add_argument("--speed", type=float, default=1.0, help="Playback speed (default: 1)")

    # progress
    p_prog = sub.add_parser("progress", help="Inspect or clear stored watch progress")
    p_prog.add_argument("action", choices=["list", "show", "clear"])
    p_prog.add_argument("--video", help="Video ID")

    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "status": cmd_status,
        "check-invariants": cmd_check_invariants,
        "tier": cmd_tier,
        "route": cmd_route,
        "simulate-accrual": cmd_simulate_accrual,
        "progress": cmd_progress,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
