from __future__ import annotations

"""CLI for DogDog: a text-mode driver for the progression core."""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..analytics import AnalyticsConfig, load_and_prepare, path_summary
from ..config.config import load_config, validate_config
from ..models.enums import Checkpoint, FallbackAction, PathType, PowerUpType, parse_enum
from ..policy.rewards import RewardTable
from ..stats.history import export_ndjson
from ..storage.backends import JsonFileBackend, MemoryBackend
from ..storage.store import ProgressStore
from ..util.randomness import seed_if_needed
from .events import CHECKPOINT_REACHED, EventBus
from .session_manager import SessionManager, build_session_manager

POWER_UP_KEYS = {
    "f": PowerUpType.FIFTY_FIFTY,
    "h": PowerUpType.HINT,
    "t": PowerUpType.EXTRA_TIME,
    "s": PowerUpType.SKIP,
    "c": PowerUpType.SECOND_CHANCE,
}


def _setup(args: argparse.Namespace) -> Dict[str, Any]:
    cfg = validate_config(load_config(getattr(args, "config", None)))
    logging.basicConfig(
        level=getattr(logging, cfg["logging"]["level"]),
        format="%(levelname)s %(name)s: %(message)s",
    )
    if getattr(args, "explain", False):
        from .explain import enable as explain_enable
        explain_enable(True)
    return cfg


def _store_from_config(cfg: Dict[str, Any]) -> ProgressStore:
    storage = cfg["storage"]
    if storage["backend"] == "memory":
        return ProgressStore(MemoryBackend())
    return ProgressStore(JsonFileBackend(Path(storage["data_path"])))


def _print_question(sm: SessionManager, locale: str, inform: Callable[[str], None]) -> None:
    snap = sm.snapshot()
    q = snap.current_question
    if q is None:
        return
    inform("")
    inform(f"[{snap.path.display_name}] lives {snap.lives_remaining}/3 | score {snap.score} | {snap.segment_display}")
    inform(f"({q.difficulty.value}, {q.points} pts) {q.text_for(locale)}")
    for i, answer in enumerate(q.answers_for(locale), start=1):
        inform(f"  {i}. {answer}")
    inv = ", ".join(f"{k}={snap.power_ups[t]}" for k, t in POWER_UP_KEYS.items())
    inform(f"Power-ups [{inv}]  q=quit")


async def _play(args: argparse.Namespace, cfg: Dict[str, Any], ask: Callable[[str], str], inform: Callable[[str], None]) -> int:
    if args.locale:
        cfg["game"]["default_locale"] = args.locale
    locale = cfg["game"]["default_locale"]
    bus = EventBus()
    bus.subscribe(
        CHECKPOINT_REACHED,
        lambda p: inform(f"*** Checkpoint {Checkpoint(p['checkpoint']).display_name} reached! Rewards: {p['rewards']}"),
    )
    sm = build_session_manager(cfg, bus=bus, seed=args.seed)
    await sm.initialize()

    snap = await sm.resume_session() if args.resume else None
    if snap is None:
        snap = await sm.start_session(parse_enum(PathType, args.path))
    if snap.lives_remaining == 0:
        result = await sm.on_lives_exhausted()
        inform(result.message)

    while True:
        q = sm.current_question()
        if q is None:
            inform("No more new questions on this path for now.")
            break
        _print_question(sm, locale, inform)
        raw = ask("> ").strip().lower()
        if raw == "q":
            break
        if raw in POWER_UP_KEYS:
            out = await sm.use_power_up(POWER_UP_KEYS[raw])
            if not out.success:
                inform(out.message)
            elif out.removed_answer_indices:
                inform("Removed answers: " + ", ".join(str(i + 1) for i in out.removed_answer_indices))
            elif out.hint:
                inform(f"Hint: {out.hint}")
            elif out.extra_seconds:
                inform(f"+{out.extra_seconds} seconds")
            continue
        if not raw.isdigit() or not 1 <= int(raw) <= q.answer_count:
            inform("Please enter an answer number or a power-up key.")
            continue
        outcome = await sm.submit_answer(q.id, int(raw) - 1)
        if outcome.correct:
            inform(f"Correct! +{outcome.points}")
        else:
            correct = q.answers_for(locale)[outcome.correct_answer_index]
            inform(f"Wrong, the answer was: {correct}")
        if outcome.fun_fact:
            inform(outcome.fun_fact)
        if outcome.path_completed:
            inform(f"You completed the {q.category.display_name} path!")
        if outcome.game_over:
            result = await sm.on_lives_exhausted()
            inform(result.message)
            if result.action is FallbackAction.ERROR:
                break

    summary = await sm.end_session()
    inform("\nSession Summary:")
    inform(json.dumps(summary, indent=2))
    return 0


async def _stats(args: argparse.Namespace, cfg: Dict[str, Any], inform: Callable[[str], None]) -> int:
    store = _store_from_config(cfg)
    await store.migrate()
    stats = await store.load_global_stats()
    inform("Global stats:")
    inform(json.dumps(stats.model_dump(mode="json", by_alias=True), indent=2))
    progress = await store.load_all()
    for path, p in progress.items():
        inform(
            f"{path.display_name}: {p.correct_answers}/{p.total_questions} correct, "
            f"checkpoint {p.current_checkpoint.display_name if p.current_checkpoint else '-'}, "
            f"power-ups {sum(p.power_up_inventory.values())}"
        )
    history_dir = Path(cfg["stats"]["history_dir"])
    acfg = AnalyticsConfig.from_config(cfg)
    df = load_and_prepare(history_dir, acfg)
    summary = path_summary(df, acfg)
    if summary:
        inform("Trends:")
        inform(json.dumps(summary, indent=2))
    if args.export:
        export_ndjson(df, Path(args.export))
        inform(f"History exported to {args.export}")
    return 0


async def _reset(args: argparse.Namespace, cfg: Dict[str, Any], ask: Callable[[str], str], inform: Callable[[str], None]) -> int:
    if not args.yes and ask("Delete all saved progress? [y/N] ").strip().lower() != "y":
        inform("Aborted.")
        return 1
    await _store_from_config(cfg).clear_all()
    inform("All progress cleared.")
    return 0


def _validate_rewards(cfg: Dict[str, Any], inform: Callable[[str], None]) -> int:
    table = RewardTable.from_config(cfg)
    for cp in Checkpoint:
        preview = table.preview_bundles(cp)
        inform(f"{cp.display_name:16} base {preview['base'].to_json()} bonus {preview['bonus'].total}")
    ok = table.validate_distribution()
    inform("Reward distribution OK" if ok else "Reward distribution INVALID")
    return 0 if ok else 1


def main(
    argv: list[str] | None = None,
    *,
    ask: Optional[Callable[[str], str]] = None,
    inform: Optional[Callable[[str], None]] = None,
) -> int:
    ask = ask or input
    inform = inform or print

    p = argparse.ArgumentParser(prog="dogdog")
    sub = p.add_subparsers(dest="cmd", required=True)

    pp = sub.add_parser("play")
    pp.add_argument("--config", default=None)
    pp.add_argument("--path", default=PathType.DOG_BREEDS.value, choices=[t.value for t in PathType])
    pp.add_argument("--locale", default=None)
    pp.add_argument("--resume", action="store_true", help="Continue an interrupted session if one is saved")
    pp.add_argument("--seed", type=int, default=None)
    pp.add_argument("--explain", action="store_true")

    sp = sub.add_parser("stats")
    sp.add_argument("--config", default=None)
    sp.add_argument("--export", default=None, help="Write the session history as NDJSON")

    rp = sub.add_parser("reset")
    rp.add_argument("--config", default=None)
    rp.add_argument("--yes", action="store_true")

    vp = sub.add_parser("validate-rewards")
    vp.add_argument("--config", default=None)

    args = p.parse_args(argv)
    cfg = _setup(args)

    if args.cmd == "play":
        seed_if_needed(args.seed)
        return asyncio.run(_play(args, cfg, ask, inform))
    if args.cmd == "stats":
        return asyncio.run(_stats(args, cfg, inform))
    if args.cmd == "reset":
        return asyncio.run(_reset(args, cfg, ask, inform))
    if args.cmd == "validate-rewards":
        return _validate_rewards(cfg, inform)
    return 2
