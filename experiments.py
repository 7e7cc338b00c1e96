"""
Huffman benchmark harness

Times the encoder (and the decoder, to check every run round-trips) on
synthetic inputs, then writes the numbers and charts

Outputs (in --outdir):
  - metrics.csv     (raw row per run per configuration)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp2_step_kb 4 --exp2_steps 32
  python experiments.py --outdir results --exp1_generators alphanumeric,zipf128,english_like --no_exp2

Pipelines:
  serial   - frequency table counted in one pass
  chunked  - frequency table counted per chunk and merged
"""

from __future__ import annotations

import argparse
import csv
import random
import statistics
import string
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple, Callable

import matplotlib.pyplot as plt

import huffman as huff


PIPELINES = ("serial", "chunked")


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


# Synthetic dataset generators

ALPHANUMERIC = (string.ascii_uppercase + string.ascii_lowercase + string.digits).encode("ascii")

# relative letter weights for text-like input
ENGLISH_WEIGHTS: Dict[str, float] = {" ": 13.0, "\n": 1.5}
ENGLISH_WEIGHTS.update(dict.fromkeys("etaoinshrdlu", 6.0))
ENGLISH_WEIGHTS.update(dict.fromkeys("cmfwgypbvk", 2.5))
ENGLISH_WEIGHTS.update(dict.fromkeys("jxq", 1.2))
ENGLISH_WEIGHTS.update({ch.upper(): w / 4 for ch, w in list(ENGLISH_WEIGHTS.items()) if ch.isalpha()})

def _sample_weighted(rng: random.Random, symbols: List[int], weights: List[float], size: int) -> bytes:
    return bytes(rng.choices(symbols, weights=weights, k=size))

def gen_alphanumeric(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.choice(ALPHANUMERIC) for _ in range(size))

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rank_weights = [(rank + 1) ** -s for rank in range(alphabet)]
    return _sample_weighted(random.Random(seed), list(range(alphabet)), rank_weights, size)

def gen_english_like(size: int, seed: int = 0) -> bytes:
    symbols = [ord(ch) for ch in ENGLISH_WEIGHTS]
    return _sample_weighted(random.Random(seed), symbols, list(ENGLISH_WEIGHTS.values()), size)

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "alphanumeric": lambda size, seed: gen_alphanumeric(size, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, seed=seed),
    "zipf32": lambda size, seed: gen_zipf_like(size, alphabet=32, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> Tuple[str, bytes]:
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        raise ValueError(f"unknown generator {name!r}, choose from: {', '.join(sorted(GENERATOR_REGISTRY))}")
    return name, fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    pipeline: str  # "serial" or "chunked"
    unique_symbols: int

    count_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float
    throughput_mb_s: float

    compressed_bytes: int
    bit_length: int
    pad_bits: int
    compression_ratio: float
    mean_code_length: float

    correctness_ok: int  # 1 or 0


def run_one(data: bytes, pipeline: str, chunk_size: int = 64 * 1024) -> MetricRow:
    # frequency counting
    t0 = now_ns()
    if pipeline == "serial":
        ft = huff.count_frequencies(data)
    elif pipeline == "chunked":
        ft = huff.count_frequencies_chunked(data, chunk_size=chunk_size)
    else:
        raise ValueError("pipeline must be 'serial' or 'chunked'")
    t1 = now_ns()
    count_ms = ns_to_ms(t1 - t0)

    # tree + codes + packing
    t2 = now_ns()
    encoded = huff.huffman_encode(data, frequency_table=ft)
    t3 = now_ns()
    encode_ms = ns_to_ms(t3 - t2)

    # decode with the decode table, bounded by the valid bit count
    t4 = now_ns()
    decoded = huff.huffman_decode(encoded.data, encoded.decode_table, bit_length=encoded.bit_length)
    t5 = now_ns()
    decode_ms = ns_to_ms(t5 - t4)

    correctness_ok = 1 if decoded == data else 0
    comp_bytes = len(encoded.data)
    ratio = comp_bytes / max(1, len(data))
    mean_code_length = encoded.bit_length / max(1, len(data))
    encode_total_ms = count_ms + encode_ms
    throughput = (len(data) / 1_000_000.0) / (encode_total_ms / 1000.0) if encode_total_ms > 0 else 0.0

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        pipeline=pipeline,
        unique_symbols=len(ft),
        count_ms=count_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=count_ms + encode_ms + decode_ms,
        throughput_mb_s=throughput,
        compressed_bytes=comp_bytes,
        bit_length=encoded.bit_length,
        pad_bits=encoded.pad_bits,
        compression_ratio=ratio,
        mean_code_length=mean_code_length,
        correctness_ok=correctness_ok
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


SUMMARY_METRICS = (
    "compression_ratio",
    "mean_code_length",
    "count_ms",
    "encode_ms",
    "decode_ms",
    "total_ms",
    "throughput_mb_s",
)

def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes, pipeline and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int, str], List[MetricRow]] = {}
    for r in rows:
        key = (r.exp_name, r.dataset_name, r.file_size_bytes, r.pipeline)
        key_to.setdefault(key, []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "pipeline", "n_runs"]
    for metric in SUMMARY_METRICS:
        summary_fields += [f"{metric}_mean", f"{metric}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for key, items in sorted(key_to.items()):
            exp_name, dataset_name, size_b, pipeline = key
            out = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "pipeline": pipeline,
                "n_runs": len(items),
            }
            for metric in SUMMARY_METRICS:
                m, s = mean_stdev([getattr(x, metric) for x in items])
                out[f"{metric}_mean"] = m
                out[f"{metric}_stdev"] = s
            out["correctness_ok_rate"] = sum(x.correctness_ok for x in items) / len(items)
            w.writerow(out)



# Plotting

def _mean_of(rows: List[MetricRow], field: str) -> float:
    vals = [getattr(r, field) for r in rows]
    return statistics.mean(vals) if vals else float("nan")

def _line_chart(path: Path, title: str, ylabel: str, xs, series: Dict[str, List[float]],
                xlabel: str | None = None, xtick_labels: List[str] | None = None) -> None:
    fig, ax = plt.subplots()
    for label, ys in series.items():
        ax.plot(xs, ys, marker="o", label=label)
    if xtick_labels is not None:
        ax.set_xticks(xs)
        ax.set_xticklabels(xtick_labels, rotation=20, ha="right")
    if xlabel:
        ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.set_title(title)
    ax.legend()
    fig.tight_layout()
    fig.savefig(path, dpi=200)
    plt.close(fig)

EXP1_CHARTS = (
    ("compression_ratio", "Compressed / original bytes", "compression ratio", "exp1_compression_ratio.png"),
    ("encode_ms", "Encode time (ms)", "encode time", "exp1_encode_time.png"),
    ("total_ms", "Count + encode + decode (ms)", "total runtime", "exp1_total_time.png"),
)

EXP2_CHARTS = (
    ("encode_ms", "Encode time (ms)", "encode time", "exp2_encode_time"),
    ("throughput_mb_s", "Encode throughput (MB/s)", "throughput", "exp2_throughput"),
    ("compression_ratio", "Compressed / original bytes", "compression ratio", "exp2_compression_ratio"),
)

def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted({r.dataset_name for r in exp_rows})
    xs = list(range(len(datasets)))
    for field, ylabel, what, filename in EXP1_CHARTS:
        series = {
            p: [_mean_of([r for r in exp_rows if r.dataset_name == d and r.pipeline == p], field) for d in datasets]
            for p in PIPELINES
        }
        _line_chart(outdir / filename, f"Experiment 1: {what} per dataset", ylabel, xs, series,
                    xtick_labels=datasets)


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]

    for dist in sorted({r.dataset_name for r in exp_rows}):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted({r.file_size_bytes for r in dist_rows})
        for field, ylabel, what, stem in EXP2_CHARTS:
            series = {
                p: [_mean_of([r for r in dist_rows if r.file_size_bytes == s and r.pipeline == p], field) for s in sizes]
                for p in PIPELINES
            }
            _line_chart(outdir / f"{stem}_{dist}.png", f"Experiment 2: {what} by input size ({dist})", ylabel,
                        sizes, series, xlabel="Input size (bytes)")



# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Benchmark the Huffman encoder")
    ap.add_argument("--outdir", default="results", help="where metrics.csv, summary.csv and the charts go")
    ap.add_argument("--runs", type=int, default=5, help="repeats of every configuration")
    ap.add_argument("--seed", type=int, default=123, help="seed the generated inputs start from")
    ap.add_argument("--chunk_kb", type=int, default=64, help="chunk size (KiB) of the chunked pipeline")
    ap.add_argument("--no_plots", action="store_true", help="write the CSV files only")

    ap.add_argument("--no_exp1", action="store_true", help="skip the per-dataset comparison")
    ap.add_argument("--exp1_size_kb", type=int, default=32, help="input size (KiB) of the per-dataset comparison")
    ap.add_argument("--exp1_generators", default="alphanumeric,zipf32,english_like",
                    help="datasets compared, comma separated: " + ",".join(GENERATOR_REGISTRY))

    ap.add_argument("--no_exp2", action="store_true", help="skip the size scaling run")
    ap.add_argument("--exp2_step_kb", type=int, default=1, help="size increment (KiB) between scaling points")
    ap.add_argument("--exp2_steps", type=int, default=20, help="number of scaling points")
    ap.add_argument("--exp2_generators", default="alphanumeric", help="datasets for the scaling run, comma separated")
    return ap

def run_experiments(args: argparse.Namespace) -> List[MetricRow]:
    rows: List[MetricRow] = []
    chunk_size = max(1, args.chunk_kb) * 1024

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            for run_id in range(1, args.runs + 1):
                dataset_name, data = generate_dataset(gen_name, fixed_size, args.seed + run_id)
                for pipeline in PIPELINES:
                    row = run_one(data, pipeline, chunk_size)
                    row.exp_name = "exp1_distribution"
                    row.dataset_name = dataset_name
                    row.run_id = run_id
                    rows.append(row)

    # Experiment 2: size scaling (step, 2*step, ... steps*step)
    if not args.no_exp2:
        step = max(1, args.exp2_step_kb) * 1024
        sizes = [step * i for i in range(1, max(1, args.exp2_steps) + 1)]
        for gen_name in parse_csv_list(args.exp2_generators):
            for size_b in sizes:
                for run_id in range(1, args.runs + 1):
                    dataset_name, data = generate_dataset(gen_name, size_b, args.seed + 10_000 + size_b + run_id)
                    for pipeline in PIPELINES:
                        row = run_one(data, pipeline, chunk_size)
                        row.exp_name = "exp2_size_scaling"
                        row.dataset_name = dataset_name
                        row.run_id = run_id
                        rows.append(row)

    return rows

def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows = run_experiments(args)

    # Write raw and summary
    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    if not args.no_plots:
        plot_experiment_1(rows, outdir)
        plot_experiment_2(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    if not args.no_plots:
        print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
