import argparse
import json
from pathlib import Path

import sys

# Make `src/` importable when running as a script.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from grossprofit.presets import sample_request
from grossprofit.storage import request_from_dict


def main() -> int:
    ap = argparse.ArgumentParser(description="Generate a calculate request with many stores for load testing")
    ap.add_argument("--stores", type=int, default=60)
    ap.add_argument("--days", type=int, default=0, help="days with imported data (0 = whole month)")
    ap.add_argument("--seed", type=int, default=20260129)
    ap.add_argument("--year", type=int, default=2026)
    ap.add_argument("--month", type=int, default=1)
    ap.add_argument("--data-end-day", type=int, default=None)
    ap.add_argument(
        "--out",
        type=str,
        default=str(ROOT / "data" / "request_test_60.json"),
    )
    args = ap.parse_args()

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)

    req = sample_request(
        stores=max(1, int(args.stores)),
        days=int(args.days),
        seed=int(args.seed),
        year=int(args.year),
        month=int(args.month),
        data_end_day=args.data_end_day,
    )
    out.write_text(json.dumps(req, ensure_ascii=False, indent=2), encoding="utf-8")

    # Decode once so a broken generator fails here rather than in the service.
    data, _settings, days_in_month = request_from_dict(req)
    no_counts = sum(1 for inv in data.inventory.values() if inv.opening_inventory is None)
    print(f"wrote: {out}")
    print(f"stores: {len(data.stores)}  days: {days_in_month}  without inventory counts: {no_counts}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
