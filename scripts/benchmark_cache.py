from __future__ import annotations

import argparse
import statistics
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from jsonwalk import Configuration, ParseContext
from jsonwalk.cache import LRUPathCache, NoopPathCache, PathCache, UnboundedPathCache


Workload = Callable[[ParseContext], int]


@dataclass(frozen=True)
class Case:
    name: str
    kind: str
    workload: Workload


@dataclass(frozen=True)
class CaseResult:
    name: str
    kind: str
    cache: str
    calls: int
    mean_seconds: float
    median_seconds: float
    stdev_seconds: float


def _make_read_data(size: int = 500) -> dict[str, Any]:
    items = [
        {
            "id": i,
            "value": i * 3,
            "meta": {"enabled": i % 2 == 0, "score": i % 13},
        }
        for i in range(size)
    ]
    return {"root": {"items": items}}


def _make_write_data(size: int = 500) -> dict[str, Any]:
    items: list[dict[str, Any]] = []
    for i in range(size):
        item: dict[str, Any] = {
            "id": i,
            "value": i,
            "flags": {"enabled": False, "debug": True},
        }
        for j in range(40):
            item[f"scratch{j}"] = j
        items.append(item)
    return {"root": {"items": items}}


def case_unique_paths_read(context: ParseContext) -> int:
    document = context.parse(_make_read_data())
    paths = [f"$.root.items[{i}].meta.enabled" for i in range(500)]
    for path in paths:
        document.read(path)
    return len(paths)


def case_repeated_filter_read(context: ParseContext) -> int:
    document = context.parse(_make_read_data())
    path = "$.root.items[?(@.id >= 250)].value"
    calls = 300
    for _ in range(calls):
        document.read(path)
    return calls


def case_repeated_function_read(context: ParseContext) -> int:
    document = context.parse(_make_read_data())
    path = "$.root.items[?(@.meta.enabled == true)].meta.score.avg()"
    calls = 300
    for _ in range(calls):
        document.read(path)
    return calls


def case_limited_read(context: ParseContext) -> int:
    document = context.parse(_make_read_data())
    path = "$..value"
    calls = 2000
    for _ in range(calls):
        document.limit(5).read(path)
    return calls


def case_filter_set(context: ParseContext) -> int:
    document = context.parse(_make_write_data())
    paths = [f"$.root.items[?(@.id > 250)].new_key_{i}" for i in range(40)]
    for i, path in enumerate(paths):
        document.put("$.root.items[?(@.id > 250)]", f"new_key_{i}", i)
        document.set(path, -i)
    return len(paths) * 2


def case_filter_delete(context: ParseContext) -> int:
    document = context.parse(_make_write_data())
    paths = [f"$.root.items[?(@.id > 250)].scratch{i}" for i in range(40)]
    for path in paths:
        document.delete(path)
    return len(paths)


def run_case(
    case: Case,
    cache_name: str,
    cache_factory: Callable[[], PathCache],
    *,
    repeats: int,
    warmup: int,
) -> CaseResult:
    configuration = Configuration.default()
    for _ in range(warmup):
        case.workload(ParseContext(configuration, cache_factory()))

    timings: list[float] = []
    calls = 0
    for _ in range(repeats):
        context = ParseContext(configuration, cache_factory())
        start = time.perf_counter()
        calls = case.workload(context)
        end = time.perf_counter()
        timings.append(end - start)

    stdev = statistics.stdev(timings) if len(timings) > 1 else 0.0
    return CaseResult(
        name=case.name,
        kind=case.kind,
        cache=cache_name,
        calls=calls,
        mean_seconds=statistics.mean(timings),
        median_seconds=statistics.median(timings),
        stdev_seconds=stdev,
    )


_COLUMNS = ("cache", "mean ms", "median ms", "stdev ms", "calls", "ops/s")


def _group(results: list[CaseResult]) -> dict[str, list[CaseResult]]:
    grouped: dict[str, list[CaseResult]] = {}
    for result in results:
        grouped.setdefault(f"{result.kind}: {result.name}", []).append(result)
    return grouped


def _cells(row: CaseResult) -> tuple[str, ...]:
    ops_per_second = row.calls / row.mean_seconds if row.mean_seconds else 0.0
    return (
        row.cache,
        f"{row.mean_seconds * 1000:.3f}",
        f"{row.median_seconds * 1000:.3f}",
        f"{row.stdev_seconds * 1000:.3f}",
        str(row.calls),
        f"{ops_per_second:.1f}",
    )


def _cache_gain(rows: list[CaseResult]) -> str | None:
    by_cache = {row.cache: row.mean_seconds for row in rows}
    uncached = by_cache.get("none")
    cached = by_cache.get("lru")
    if uncached is None or not cached:
        return None
    return f"lru is {uncached / cached:.2f}x the speed of no cache"


def print_results(results: list[CaseResult]) -> None:
    print(f"\npath cache timings (python {sys.version.split()[0]})\n")
    for title, rows in _group(results).items():
        table = [_COLUMNS] + [_cells(row) for row in rows]
        widths = [max(len(line[i]) for line in table) for i in range(len(_COLUMNS))]
        print(title)
        for line in table:
            print("  ".join(cell.rjust(width) for cell, width in zip(line, widths)))
        gain = _cache_gain(rows)
        if gain is not None:
            print(gain)
        print()


def append_markdown_log(
    results: list[CaseResult],
    *,
    repeats: int,
    warmup: int,
    description: str,
    log_file: Path,
) -> None:
    lines: list[str] = []
    if not log_file.exists():
        lines.append("# Path cache benchmarks\n")

    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
    lines.append(f"## {timestamp}\n")
    if description.strip():
        lines.append(f"{description.strip()}\n")
    lines.append(
        f"Python `{sys.version.split()[0]}`, {repeats} repeats, {warmup} warmup runs.\n"
    )
    for title, rows in _group(results).items():
        lines.append(f"### {title}\n")
        lines.append("| " + " | ".join(_COLUMNS) + " |")
        lines.append("|---" + "|---:" * (len(_COLUMNS) - 1) + "|")
        lines.extend("| " + " | ".join(_cells(row)) + " |" for row in rows)
        gain = _cache_gain(rows)
        lines.append(f"\n{gain}\n" if gain is not None else "")

    log_file.parent.mkdir(parents=True, exist_ok=True)
    with log_file.open("a", encoding="utf-8") as handle:
        handle.write("\n".join(lines) + "\n")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Time jsonwalk workloads with the lru, unbounded and no-op path caches."
    )
    parser.add_argument(
        "--repeats", type=int, default=7, help="Timed runs of each workload per cache."
    )
    parser.add_argument(
        "--warmup", type=int, default=2, help="Untimed runs before timing starts."
    )
    parser.add_argument(
        "--description",
        default="",
        help="Note recorded with this run in the markdown log.",
    )
    parser.add_argument(
        "--log-file",
        default="benchmarks.md",
        help="Markdown file the results are appended to.",
    )
    parser.add_argument(
        "--no-log",
        action="store_true",
        help="Print results without appending them to the log file.",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    caches: list[tuple[str, Callable[[], PathCache]]] = [
        ("lru", LRUPathCache),
        ("unbounded", UnboundedPathCache),
        ("none", NoopPathCache),
    ]

    cases = [
        Case("read_unique_paths", "parse-heavy", case_unique_paths_read),
        Case("read_repeated_filter_path", "read-heavy", case_repeated_filter_read),
        Case("read_repeated_function_path", "read-heavy", case_repeated_function_read),
        Case("read_limited_deep_scan", "read-heavy", case_limited_read),
        Case("put_and_set_filter_writes", "write-heavy", case_filter_set),
        Case("delete_filter_writes", "write-heavy", case_filter_delete),
    ]

    results: list[CaseResult] = []
    for case in cases:
        for cache_name, cache_factory in caches:
            results.append(
                run_case(
                    case,
                    cache_name,
                    cache_factory,
                    repeats=args.repeats,
                    warmup=args.warmup,
                )
            )

    print_results(results)
    if not args.no_log:
        append_markdown_log(
            results,
            repeats=args.repeats,
            warmup=args.warmup,
            description=args.description,
            log_file=Path(args.log_file),
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
