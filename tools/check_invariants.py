#!/usr/bin/env python3
"""Attention policy invariant checks against config/attention_params.json."""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from attention.policy.resolver import AttentionPolicy  # noqa: E402

CONFIG_DIR = ROOT / "config"


def check() -> int:
    policy = AttentionPolicy.from_config_dir(CONFIG_DIR)
    errors = policy.validate()

    if errors:
        print("Invariant check FAILED:")
        for error in errors:
            print(f"  - {error}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(check())
