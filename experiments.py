"""
Compression experiments for the zap Huffman coder

Runs the full pipeline (count -> build tree -> codes -> encode -> pack ->
unpack -> decode) over synthetic datasets, with repeated runs, and records
how close the code gets to the entropy bound.

Outputs (in --outdir):
  - metrics.csv     (raw row per run)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --size_kb 256 --generators uniform256,english_like
  python experiments.py --outdir results --no_plots
"""

from __future__ import annotations

import argparse
import csv
import math
import random
import statistics
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt

import bitio
import huffman as huff


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def shannon_entropy(ft: Dict[int, int]) -> float:
    """Bits per symbol a perfect entropy coder would need"""
    total = sum(ft.values())
    if total == 0:
        return 0.0
    return -sum((c / total) * math.log2(c / total) for c in ft.values())

def average_code_length(ft: Dict[int, int], code_map: Dict[int, str]) -> float:
    total = sum(ft.values())
    if total == 0:
        return 0.0
    return sum(ft[s] * len(code_map[s]) for s in ft) / total


# Synthetic dataset generators

def _sample(symbols: Sequence[int], weights: Sequence[float], size: int, seed: int) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.choices(symbols, weights=weights, k=size))

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    others = [i for i in range(256) if i != dominant]
    weights = [dom_frac] + [(1.0 - dom_frac) / len(others)] * len(others)
    return _sample([dominant] + others, weights, size, seed)

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    weights = [1.0 / ((rank + 1) ** s) for rank in range(alphabet)]
    return _sample(list(range(alphabet)), weights, size, seed)

def gen_english_like(size: int, seed: int = 0) -> bytes:
    chars = " etaoinshrdlcumwfgypbvkjxq\n.,"
    weights = []
    for ch in chars:
        if ch == ' ':
            weights.append(13.0)
        elif ch in "\n.,":
            weights.append(1.5)
        elif ch in "etaoinshrdlu":
            weights.append(6.0)
        elif ch in "cmfwgypbvk":
            weights.append(2.5)
        else:
            weights.append(1.2)
    return _sample([ord(ch) for ch in chars], weights, size, seed)

def gen_single_symbol(size: int, seed: int = 0) -> bytes:
    return bytes([ord('a') + seed % 26]) * size

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform16": lambda size, seed: gen_uniform(size, alphabet=16, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
    "single_symbol": lambda size, seed: gen_single_symbol(size, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> bytes:
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        raise ValueError(f"unknown generator {name!r} (known: {', '.join(sorted(GENERATOR_REGISTRY))})")
    return fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    unique_symbols: int

    build_tree_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    tree_bytes: int
    payload_bytes: int
    pad_bits: int
    compression_ratio: float  # (tree + payload) / original

    entropy_bits: float
    avg_code_bits: float
    correctness_ok: int  # 1 or 0


def run_one(data: bytes) -> MetricRow:
    if not data:
        raise ValueError("experiments need non-empty data")

    # Tree + codes
    t0 = now_ns()
    ft = huff.count_frequencies(data)
    root = huff.build_huffman_tree(ft)
    code_map = huff.generate_huffman_codes(root)
    serialized_tree = huff.serialize_tree(root)
    t1 = now_ns()

    # Encode and pack, as the compressor writes them
    bit_string = huff.huffman_encode(data, code_map)
    packed, pad_bits = bitio.pack_bits(bit_string)
    t2 = now_ns()

    # Unpack, rebuild the tree from its serialized form, decode
    restored_bits = bitio.unpack_bits(packed, pad_bits)
    decoded = huff.decompress(serialized_tree, restored_bits)
    t3 = now_ns()

    build_tree_ms = ns_to_ms(t1 - t0)
    encode_ms = ns_to_ms(t2 - t1)
    decode_ms = ns_to_ms(t3 - t2)

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        unique_symbols=len(ft),
        build_tree_ms=build_tree_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=build_tree_ms + encode_ms + decode_ms,
        tree_bytes=len(serialized_tree),
        payload_bytes=len(packed),
        pad_bits=pad_bits,
        compression_ratio=(len(serialized_tree) + len(packed)) / len(data),
        entropy_bits=shannon_entropy(ft),
        avg_code_bits=average_code_length(ft, code_map),
        correctness_ok=1 if decoded == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    fields = list(MetricRow.__dataclass_fields__.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in fields})


SUMMARY_METRICS = ("compression_ratio", "avg_code_bits", "entropy_bits", "encode_ms", "decode_ms", "total_ms")

def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes and compute mean/stdev
    """
    key_to: Dict[Tuple[str, str, int], List[MetricRow]] = {}
    for r in rows:
        key_to.setdefault((r.exp_name, r.dataset_name, r.file_size_bytes), []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "n_runs"]
    for m in SUMMARY_METRICS:
        summary_fields += [f"{m}_mean", f"{m}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for (exp_name, dataset_name, size_b), items in sorted(key_to.items()):
            out = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "n_runs": len(items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for m in SUMMARY_METRICS:
                out[f"{m}_mean"], out[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            w.writerow(out)


# Plotting

def plot_distribution(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, field: str) -> float:
        return statistics.mean(getattr(r, field) for r in exp_rows if r.dataset_name == dataset)

    plt.figure()
    plt.plot(x, [mean_for(d, "avg_code_bits") for d in datasets], marker="o", label="Huffman avg code length")
    plt.plot(x, [mean_for(d, "entropy_bits") for d in datasets], marker="s", linestyle="--", label="Shannon entropy")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Bits per Symbol")
    plt.title("Code Length vs Entropy by Distribution")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp1_code_length.png", dpi=200)
    plt.close()

    plt.figure()
    plt.bar(x, [mean_for(d, "compression_ratio") for d in datasets])
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("(Tree + Payload Bytes) / Original Bytes")
    plt.title("Compression Ratio by Distribution")
    plt.tight_layout()
    plt.savefig(outdir / "exp1_compression_ratio.png", dpi=200)
    plt.close()


def plot_size_scaling(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        def mean_size(size: int, field: str) -> float:
            return statistics.mean(getattr(r, field) for r in dist_rows if r.file_size_bytes == size)

        plt.figure()
        for field, label in (("encode_ms", "encode"), ("decode_ms", "decode"), ("build_tree_ms", "build tree")):
            plt.plot(sizes, [mean_size(s, field) for s in sizes], marker="o", label=label)
        plt.xscale("log", base=2)
        plt.xlabel("File Size (bytes)")
        plt.ylabel("Time (ms)")
        plt.title(f"Runtime vs Size ({dist})")
        plt.legend()
        plt.tight_layout()
        plt.savefig(outdir / f"exp2_time_{dist}.png", dpi=200)
        plt.close()


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def run_experiments(generators: List[str], size_kb: int, min_kb: int, max_kb: int,
                    runs: int, seed: int) -> List[MetricRow]:
    rows: List[MetricRow] = []

    # Experiment 1: distributions at a fixed size
    fixed_size = max(1, size_kb) * 1024
    for gen_name in generators:
        for run_id in range(1, runs + 1):
            row = run_one(generate_dataset(gen_name, fixed_size, seed + run_id))
            row.exp_name = "exp1_distribution"
            row.dataset_name = gen_name
            row.run_id = run_id
            rows.append(row)

    # Experiment 2: size scaling, powers of 2
    sizes: List[int] = []
    s = max(1, min_kb) * 1024
    while s <= max(1, max_kb) * 1024:
        sizes.append(s)
        s *= 2

    for gen_name in generators:
        for size_b in sizes:
            for run_id in range(1, runs + 1):
                row = run_one(generate_dataset(gen_name, size_b, seed + 10_000 + size_b + run_id))
                row.exp_name = "exp2_size_scaling"
                row.dataset_name = gen_name
                row.run_id = run_id
                rows.append(row)

    return rows

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Measure the zap Huffman coder on synthetic data")
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")
    ap.add_argument("--size_kb", type=int, default=256, help="Fixed file size in KB for the distribution experiment")
    ap.add_argument("--min_kb", type=int, default=4, help="Smallest size in KB for the scaling experiment")
    ap.add_argument("--max_kb", type=int, default=1024, help="Largest size in KB for the scaling experiment")
    ap.add_argument("--generators", type=str, default="uniform256,zipf128,repetitive90,english_like,single_symbol",
                    help="Comma-separated dataset generator names")
    ap.add_argument("--no_plots", action="store_true", help="Only write the CSV files")
    args = ap.parse_args(argv)

    generators = parse_csv_list(args.generators)
    unknown = [g for g in generators if g not in GENERATOR_REGISTRY]
    if unknown:
        ap.error(f"unknown generators: {', '.join(unknown)}")

    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows = run_experiments(generators, args.size_kb, args.min_kb, args.max_kb, args.runs, args.seed)

    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    if not args.no_plots:
        plot_distribution(rows, outdir)
        plot_size_scaling(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    if not args.no_plots:
        print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
