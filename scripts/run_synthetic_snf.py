#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

import numpy as np

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from snfclust.config import PAMConfig, PipelineConfig, SNFConfig, load_config, save_config  # noqa: E402
from snfclust.pipeline import run_snf_pam  # noqa: E402
from snfclust.synthetic import generate_multiview_clusters  # noqa: E402


MEAN_LEVELS = (0.0, 3.0, 6.0)
RESULTS_ROOT = REPO_ROOT / "Results" / "snf"

log = logging.getLogger("run_synthetic_snf")


@dataclass(frozen=True)
class Scenario:
    name: str
    n_samples: int
    view_features: Sequence[int]
    noise_scales: Sequence[float]
    noise_seed: int
    label_seed: int
    means: Sequence[float] = MEAN_LEVELS


def build_scenarios() -> List[Scenario]:
    """Return the catalog of synthetic multi-view scenarios."""
    scenarios: list[Scenario] = []
    for n_samples in (60, 150, 300):
        scenarios.append(
            Scenario(
                name=f"clean_n{n_samples}",
                n_samples=n_samples,
                view_features=(20, 50),
                noise_scales=(1.0, 1.0),
                noise_seed=100 + n_samples,
                label_seed=200 + n_samples,
            )
        )
        # one informative view and one view drowned in noise
        scenarios.append(
            Scenario(
                name=f"noisy_view_n{n_samples}",
                n_samples=n_samples,
                view_features=(20, 50),
                noise_scales=(1.0, 6.0),
                noise_seed=300 + n_samples,
                label_seed=400 + n_samples,
            )
        )
        scenarios.append(
            Scenario(
                name=f"three_views_n{n_samples}",
                n_samples=n_samples,
                view_features=(10, 30, 100),
                noise_scales=(2.0, 2.5, 3.0),
                noise_seed=500 + n_samples,
                label_seed=600 + n_samples,
            )
        )
    return scenarios


def run_scenario(scenario: Scenario, config: PipelineConfig, *, overwrite: bool) -> None:
    """Fuse and cluster one scenario, writing results under ``RESULTS_ROOT``."""
    target_dir = RESULTS_ROOT / scenario.name
    summary_path = target_dir / "summary.json"
    if summary_path.exists() and not overwrite:
        log.info("[skip] %s (results exist)", scenario.name)
        return

    data, truth = generate_multiview_clusters(
        n_samples=scenario.n_samples,
        view_features=scenario.view_features,
        means=scenario.means,
        noise_scale=scenario.noise_scales,
        noise_seed=scenario.noise_seed,
        label_seed=scenario.label_seed,
    )

    log.info("[run]  %s -> %r", scenario.name, data)
    result = run_snf_pam(data, config)

    target_dir.mkdir(parents=True, exist_ok=True)
    save_config(config, target_dir / "config.json")
    np.save(target_dir / "fused.npy", result.fusion.fused)

    assignments = result.assignments()
    assignments["component"] = truth
    assignments.to_csv(target_dir / "assignments.csv", index=False)

    summary = {
        "name": scenario.name,
        "n_samples": scenario.n_samples,
        "view_features": list(scenario.view_features),
        "noise_scales": list(scenario.noise_scales),
        "noise_seed": scenario.noise_seed,
        "label_seed": scenario.label_seed,
        "n_iter": result.fusion.n_iter,
        "medoids": [int(idx) for idx in result.clustering.medoids],
        "cost": result.clustering.cost,
        "n_swaps": result.clustering.n_swaps,
        "converged": result.clustering.converged,
    }
    summary_path.write_text(json.dumps(summary, indent=2))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate synthetic multi-view datasets and cluster them with SNF + PAM."
    )
    parser.add_argument(
        "--scenario",
        action="append",
        dest="scenarios",
        help="Run only the named scenario (can be provided multiple times).",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List available scenarios and exit.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="JSON pipeline configuration; overrides the individual parameters below.",
    )
    parser.add_argument("--k", type=int, default=3, help="Number of PAM clusters (default: 3).")
    parser.add_argument("--knn", type=int, default=20, help="SNF neighbourhood size (default: 20).")
    parser.add_argument("--mu", type=float, default=0.5, help="Affinity bandwidth (default: 0.5).")
    parser.add_argument("--iters", type=int, default=20, help="SNF iterations (default: 20).")
    parser.add_argument(
        "--max-swaps",
        type=int,
        default=100,
        help="Cap on PAM swaps (default: 100).",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Re-run scenarios even if a summary exists.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    scenarios = build_scenarios()

    if args.list:
        print("Available scenarios:")
        for scenario in scenarios:
            print(f"  {scenario.name:>24}  (n={scenario.n_samples}, views={tuple(scenario.view_features)})")
        return

    if args.scenarios:
        wanted = set(args.scenarios)
        scenarios = [scenario for scenario in scenarios if scenario.name in wanted]
    if not scenarios:
        raise SystemExit("No scenarios selected. Use --list to inspect available names.")

    if args.config is not None:
        config = load_config(args.config)
    else:
        config = PipelineConfig(
            pam=PAMConfig(n_clusters=args.k, max_swaps=args.max_swaps),
            snf=SNFConfig(n_neighbors=args.knn, mu=args.mu, n_iter=args.iters),
        )

    for scenario in scenarios:
        run_scenario(scenario, config, overwrite=args.overwrite)


if __name__ == "__main__":
    main()
