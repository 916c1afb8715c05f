"""
Compilation Benchmark Harness

Compiles Haar-random unitaries for a sweep of qubit counts and reports
gate counts, CNOT counts, reconstruction error and wall-clock time.
Writes one CSV row per compiled unitary and, optionally, a plot of the
CNOT count against the qubit count.

Usage:
    python -m unitary_synth.experiments.benchmark_compile
    python -m unitary_synth.experiments.benchmark_compile --qubits 1 2 3 --trials 3 --seed 7
"""

import argparse
import csv
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
from scipy.stats import unitary_group

from unitary_synth.circuit.program import phase_aligned_error
from unitary_synth.config import CompilerConfig
from unitary_synth.synthesis.compiler import UnitaryCompiler

CNOT_NAME = "CXGate"


def run_benchmark(
    qubits: List[int] = None,
    trials: int = 3,
    seed: Optional[int] = None,
    config: Optional[CompilerConfig] = None,
    output_dir: Optional[str] = None,
) -> Dict[int, List[dict]]:
    """Compile random unitaries and collect statistics.

    Parameters
    ----------
    qubits : list of int
        Qubit counts to sweep. Default: [1, 2, 3, 4].
    trials : int
        Unitaries per qubit count.
    seed : int, optional
        Seed for the Haar sampler.
    config : CompilerConfig, optional
        Compiler settings.
    output_dir : str, optional
        Directory for ``benchmark_compile.csv``; nothing is written when
        omitted.

    Returns
    -------
    dict
        Mapping from qubit count to one record per trial.
    """
    if qubits is None:
        qubits = [1, 2, 3, 4]
    rng = np.random.default_rng(seed)
    compiler = UnitaryCompiler(config)
    results = {}

    for n in qubits:
        print(f"\n{'='*60}")
        print(f"Compiling {trials} random {n}-qubit unitaries")
        print(f"{'='*60}")
        records = []
        for trial in range(trials):
            U = unitary_group.rvs(2 ** n, random_state=rng)
            t0 = time.time()
            program = compiler.compile(U, n)
            elapsed = time.time() - t0
            error = phase_aligned_error(program.matrix(), U)
            counts = program.gate_counts()
            records.append({
                "qubits": n,
                "trial": trial,
                "gates": len(program),
                "cnots": counts.get(CNOT_NAME, 0),
                "error": error,
                "seconds": elapsed,
            })
            print(
                f"  n={n} trial={trial} gates={len(program):5d} "
                f"cnots={counts.get(CNOT_NAME, 0):5d} error={error:.2e} "
                f"({elapsed:.3f}s)"
            )
        results[n] = records

    if output_dir is not None:
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        csv_path = output_path / "benchmark_compile.csv"
        with open(csv_path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["qubits", "trial", "gates", "cnots", "error", "seconds"])
            for records in results.values():
                for r in records:
                    writer.writerow([
                        r["qubits"], r["trial"], r["gates"], r["cnots"],
                        f"{r['error']:.3e}", f"{r['seconds']:.4f}",
                    ])
        print(f"\nResults: {csv_path}")

    return results


def plot_cnot_counts(
    results: Dict[int, List[dict]],
    output_path: str = "benchmark_results/cnot_counts.png",
):
    """Plot the mean CNOT count against the qubit count.

    Parameters
    ----------
    results : dict
        Output of run_benchmark().
    output_path : str
        Path for the PNG figure.
    """
    import matplotlib.pyplot as plt

    ns = sorted(results)
    means = [np.mean([r["cnots"] for r in results[n]]) for n in ns]

    fig, ax = plt.subplots(figsize=(6, 4))
    ax.plot(ns, means, "o-", label="compiled")
    ax.plot(ns, [4 ** n / 4 for n in ns], "--", label="4^n / 4")
    ax.set_yscale("log")
    ax.set_xlabel("Qubits")
    ax.set_ylabel("CNOT count")
    ax.legend()
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(output_path, dpi=150)
    plt.close(fig)
    print(f"CNOT plot saved: {output_path}")


def main():
    parser = argparse.ArgumentParser(
        description="Compile Haar-random unitaries and report gate statistics"
    )
    parser.add_argument(
        "--qubits", nargs="+", type=int, default=[1, 2, 3, 4],
        help="Qubit counts to sweep (default: 1 2 3 4)"
    )
    parser.add_argument(
        "--trials", type=int, default=3,
        help="Unitaries per qubit count (default: 3)"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed (default: none)"
    )
    parser.add_argument(
        "--single-qubit", choices=["matrix", "zyz"], default="matrix",
        help="Single-qubit emission mode (default: matrix)"
    )
    parser.add_argument(
        "--output", default=None,
        help="Output directory for CSV results (default: none)"
    )
    parser.add_argument(
        "--plot", action="store_true",
        help="Plot CNOT counts (needs --output)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    results = run_benchmark(
        qubits=args.qubits,
        trials=args.trials,
        seed=args.seed,
        config=CompilerConfig(single_qubit=args.single_qubit),
        output_dir=args.output,
    )

    if args.plot and args.output:
        plot_cnot_counts(results, f"{args.output}/cnot_counts.png")

    print("\nBenchmark complete.")


if __name__ == "__main__":
    main()
