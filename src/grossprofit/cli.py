from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional

from grossprofit.config import configure_logging, get_settings
from grossprofit.errors import CalculationError
from grossprofit.orchestrator import calculate_with_aggregate
from grossprofit.presets import sample_request
from grossprofit.reporting import print_results
from grossprofit.storage import MAX_DAYS_IN_MONTH, load_request, results_path, save_results

logger = logging.getLogger("grossprofit.cli")


def _cmd_calc(args: argparse.Namespace) -> int:
    cfg = get_settings()
    try:
        data, settings, days_in_month = load_request(Path(args.request))
    except (OSError, json.JSONDecodeError, CalculationError) as e:
        print(f"読み込み失敗: {e}")
        return 2

    if args.days is not None:
        days_in_month = max(0, min(MAX_DAYS_IN_MONTH, int(args.days)))

    workers = args.workers if args.workers is not None else cfg.max_workers
    results, aggregate = calculate_with_aggregate(
        data,
        settings,
        days_in_month,
        max_workers=workers,
        require_all_inventory=bool(args.require_all_inventory),
    )
    if args.no_aggregate:
        aggregate = None

    names = {sid: info.name for sid, info in data.stores.items()}
    print_results(results, aggregate, settings, names=names)

    logger.info("calculated %d stores from %s", len(results), args.request)

    if args.out is not None:
        target = Path(args.out) if args.out else results_path(cfg.data_dir)
        out = save_results(results, target, aggregate=aggregate)
        print(f"\n保存: {out}")
    return 0


def _cmd_sample(args: argparse.Namespace) -> int:
    payload = sample_request(stores=int(args.stores), days=int(args.days), seed=int(args.seed))
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    print(f"wrote: {out}")
    print(f"stores: {len(payload['data']['stores'])}  daysInMonth: {payload['daysInMonth']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="grossprofit", description="Monthly store gross profit calculation")
    ap.add_argument("--log-level", default=None, help="Override GROSSPROFIT_LOG_LEVEL")
    sub = ap.add_subparsers(dest="command", required=True)

    calc = sub.add_parser("calc", help="Calculate every store in a request file")
    calc.add_argument("request", help="JSON file with {data, settings, daysInMonth}")
    calc.add_argument("--days", type=int, default=None, help="Override daysInMonth")
    calc.add_argument(
        "--out",
        nargs="?",
        const="",
        default=None,
        help="Write results JSON (default path when given without a value)",
    )
    calc.add_argument("--workers", type=int, default=None, help="Threads for the per-store stage")
    calc.add_argument("--no-aggregate", action="store_true", help="Skip the all-stores aggregate")
    calc.add_argument(
        "--require-all-inventory",
        action="store_true",
        help="Aggregate inventory only when every store has physical counts",
    )
    calc.set_defaults(func=_cmd_calc)

    sample = sub.add_parser("sample", help="Generate a synthetic request file")
    sample.add_argument("--stores", type=int, default=3)
    sample.add_argument("--days", type=int, default=0, help="Days with data (0 = whole month)")
    sample.add_argument("--seed", type=int, default=20260101)
    sample.add_argument("--out", required=True)
    sample.set_defaults(func=_cmd_sample)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or get_settings().log_level)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
