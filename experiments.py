"""
Huffman code-table experiments

Runs the full pipeline over synthetic datasets, with repeated runs:
build tree -> save/reload code table -> encode -> translate

Outputs (in --outdir):
  - metrics.csv     (raw row per run)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --size_kb 256 --generators uniform256,zipf128
  python experiments.py --outdir results --no_scaling --max_mb 4

Notes:
  "reloaded" decodes with the tree rebuilt from the saved table, "built"
  decodes with the tree straight from the frequencies. Both must agree.
"""

from __future__ import annotations

import argparse
import csv
import io
import math
import random
import statistics
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

import huffman as huff
from bitio import BitReader, BitWriter


def entropy_bits(ft: Dict[int, int]) -> float:
    """Shannon lower bound on the encoded size, in bits"""
    total = sum(ft.values())
    return -sum(c * math.log2(c / total) for c in ft.values() if c)


# Synthetic dataset generators

def _sample_cdf(rng: random.Random, cdf: List[float]) -> int:
    r = rng.random()
    lo, hi = 0, len(cdf) - 1
    while lo < hi:
        mid = (lo + hi) // 2
        if r <= cdf[mid]:
            hi = mid
        else:
            lo = mid + 1
    return lo

def _cdf(weights: List[float]) -> List[float]:
    total = sum(weights)
    cdf = []
    acc = 0.0
    for w in weights:
        acc += w / total
        cdf.append(acc)
    return cdf

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    other_symbols = [i for i in range(256) if i != dominant]
    return bytes(dominant if rng.random() < dom_frac else rng.choice(other_symbols) for _ in range(size))

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    cdf = _cdf([1.0 / ((i + 1) ** s) for i in range(alphabet)])
    return bytes(_sample_cdf(rng, cdf) for _ in range(size))

def gen_english_like(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    chars = " etaoinshrdlcumwfgypbvkjxqETAOINSHRDLCUMWFGYPBVKJXQ\n"
    weights = []
    for ch in chars:
        if ch == ' ':
            weights.append(13.0)
        elif ch == '\n':
            weights.append(1.5)
        elif ch.lower() in "etaoinshrdlu":
            weights.append(6.0)
        elif ch.lower() in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)
    cdf = _cdf(weights)
    return bytes(ord(chars[_sample_cdf(rng, cdf)]) for _ in range(size))

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> bytes:
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        raise ValueError(f"unknown generator {name!r}, expected one of {sorted(GENERATOR_REGISTRY)}")
    return fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    pipeline: str  # "built" or "reloaded"
    unique_symbols: int

    build_ms: float
    table_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    table_bytes: int
    compressed_bytes: int
    pad_bits: int
    compression_ratio: float

    encoded_bits: int
    entropy_bits: float
    bits_per_symbol: float
    correctness_ok: int  # 1 or 0


def run_one(data: bytes, pipeline: str) -> MetricRow:
    if pipeline not in ("built", "reloaded"):
        raise ValueError("pipeline must be 'built' or 'reloaded'")
    ft = huff.freq_table(data)

    t0 = time.perf_counter()
    root = huff.build_huffman_tree(ft)
    t1 = time.perf_counter()

    # save, and for "reloaded" parse the table back into the decoding tree
    table_io = io.StringIO()
    huff.write_code_table(root, table_io)
    table_text = table_io.getvalue()
    decode_root = root
    if pipeline == "reloaded":
        decode_root = huff.read_code_table(io.StringIO(table_text))
    t2 = time.perf_counter()

    code_map = huff.generate_huffman_codes(root)
    writer = BitWriter()
    encoded_bits = huff.huffman_encode(data, code_map, writer)
    packed, pad_bits = writer.getvalue()
    t3 = time.perf_counter()

    decoded = bytearray()
    huff.translate(decode_root, BitReader(packed, pad_bits), decoded)
    t4 = time.perf_counter()

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        pipeline=pipeline,
        unique_symbols=len(ft),
        build_ms=(t1 - t0) * 1000.0,
        table_ms=(t2 - t1) * 1000.0,
        encode_ms=(t3 - t2) * 1000.0,
        decode_ms=(t4 - t3) * 1000.0,
        total_ms=(t4 - t0) * 1000.0,
        table_bytes=len(table_text.encode("ascii")),
        compressed_bytes=len(packed),
        pad_bits=pad_bits,
        compression_ratio=len(packed) / max(1, len(data)),
        encoded_bits=encoded_bits,
        entropy_bits=entropy_bits(ft),
        bits_per_symbol=encoded_bits / max(1, len(data)),
        correctness_ok=1 if bytes(decoded) == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


SUMMARY_METRICS = ("compression_ratio", "bits_per_symbol", "build_ms", "table_ms", "encode_ms", "decode_ms", "total_ms")

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

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "pipeline", "n_runs", "table_bytes"]
    for m in SUMMARY_METRICS:
        summary_fields += [f"{m}_mean", f"{m}_stdev"]
    summary_fields += ["overhead_vs_entropy", "correctness_ok_rate"]

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
                "table_bytes": statistics.mean(x.table_bytes for x in items),
            }
            for m in SUMMARY_METRICS:
                out[f"{m}_mean"], out[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            # Huffman stays within 1 bit per symbol of the entropy
            out["overhead_vs_entropy"] = statistics.mean(
                (x.encoded_bits - x.entropy_bits) / max(1, x.file_size_bytes) for x in items
            )
            out["correctness_ok_rate"] = sum(x.correctness_ok for x in items) / len(items)
            w.writerow(out)


# Plotting

def _save_plot(outdir: Path, name: str) -> None:
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / name, dpi=200)
    plt.close()

def plot_distribution(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, pipeline: str, field: str) -> float:
        vals = [getattr(r, field) for r in exp_rows if r.dataset_name == dataset and r.pipeline == pipeline]
        return statistics.mean(vals) if vals else float("nan")

    plt.figure()
    y = [mean_for(d, "built", "bits_per_symbol") for d in datasets]
    plt.plot(x, y, marker="o", label="huffman")
    y = [
        statistics.mean(r.entropy_bits / max(1, r.file_size_bytes) for r in exp_rows if r.dataset_name == d)
        for d in datasets
    ]
    plt.plot(x, y, marker="x", linestyle="--", label="entropy")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Bits per Symbol")
    plt.title("Code Length vs Entropy by Distribution")
    _save_plot(outdir, "distribution_bits_per_symbol.png")

    plt.figure()
    for p in ("built", "reloaded"):
        y = [mean_for(d, p, "total_ms") for d in datasets]
        plt.plot(x, y, marker="o", label=p)
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Total Time (ms) (build + table + encode + decode)")
    plt.title("Total Runtime by Distribution")
    _save_plot(outdir, "distribution_total_time.png")


def plot_scaling(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "size_scaling" and r.pipeline == "reloaded"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        plt.figure()
        for field, label in (("encode_ms", "encode"), ("decode_ms", "translate")):
            y = [statistics.mean(getattr(r, field) for r in dist_rows if r.file_size_bytes == s) for s in sizes]
            plt.plot(sizes, y, marker="o", label=label)
        plt.xlabel("File Size (bytes)")
        plt.ylabel("Time (ms)")
        plt.title(f"Encode / Translate Time vs Size ({dist})")
        _save_plot(outdir, f"scaling_time_{dist}.png")


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--no_distribution", action="store_true", help="Disable the fixed-size distribution experiment")
    ap.add_argument("--no_scaling", action="store_true", help="Disable the size scaling experiment")
    ap.add_argument("--size_kb", type=int, default=256, help="Fixed file size in KB for the distribution experiment")
    ap.add_argument("--generators", type=str, default="uniform256,zipf128,repetitive90,english_like",
                    help="Comma-separated dataset generator names")
    ap.add_argument("--min_kb", type=int, default=4, help="Scaling min size in KB (power-of-two growth)")
    ap.add_argument("--max_mb", type=int, default=2, help="Scaling max size in MB (power-of-two growth)")
    args = ap.parse_args()

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    gen_names = parse_csv_list(args.generators)

    rows: List[MetricRow] = []

    def collect(exp_name: str, gen_name: str, size_b: int, seed: int, run_id: int) -> None:
        data = generate_dataset(gen_name, size_b, seed)
        for pipeline in ("built", "reloaded"):
            row = run_one(data, pipeline)
            row.exp_name = exp_name
            row.dataset_name = gen_name
            row.run_id = run_id
            rows.append(row)

    if not args.no_distribution:
        fixed_size = max(1, args.size_kb) * 1024
        for gen_name in gen_names:
            for run_id in range(1, args.runs + 1):
                collect("distribution", gen_name, fixed_size, args.seed + run_id, run_id)

    if not args.no_scaling:
        sizes: List[int] = []
        s = max(1, args.min_kb) * 1024
        while s <= max(1, args.max_mb) * 1024 * 1024:
            sizes.append(s)
            s *= 2
        for gen_name in gen_names:
            for size_b in sizes:
                for run_id in range(1, args.runs + 1):
                    collect("size_scaling", gen_name, size_b, args.seed + 10_000 + size_b + run_id, run_id)

    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    plot_distribution(rows, outdir)
    plot_scaling(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
