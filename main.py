#!/usr/bin/env python3
"""
Mixed-Bias Mesh MAC Queue Simulator - Main Entry Point

This is the main CLI interface for the mesh queue simulator.
It provides options for:
- Single simulation runs
- Repeated runs comparing bias modes
- Configuration display

Usage:
    python main.py --single --mode adaptive
    python main.py --batch --repeats 10
    python main.py --config
"""

import argparse
import os
import sys
import time

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import REPEATS, TOTAL_TIME, RESULTS_CSV


MODE_NAMES = {
    'off': 'DISABLED',
    'static': 'STATIC',
    'adaptive': 'ADAPTIVE',
}


def run_single_simulation(args):
    """Run a single simulation with specified parameters."""
    from simulation.simulator import MeshQueueSimulator, SimulatorConfig
    from src.bias.controller import BiasMode
    from src.utils.logger import LogLevel

    config = SimulatorConfig(
        mode=BiasMode[MODE_NAMES[args.mode]],
        seed=args.seed,
        total_time=args.time,
        carry_over_parameters=args.carry_over,
        log_level=LogLevel.INFO if args.verbose else LogLevel.WARNING
    )

    print("=" * 60)
    print("MIXED BIAS MESH QUEUE SIMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Bias mode: {config.mode.name}")
    print(f"  Grid: {config.grid_x} x {config.grid_y}")
    print(f"  Simulated time: {config.total_time:.1f} s")
    print(f"  Packet interval: {config.packet_interval * 1000:.1f} ms")
    print(f"  Seed: {config.seed}")

    print("\nRunning simulation...")

    sim = MeshQueueSimulator(config)
    start_time = time.time()
    results = sim.run()
    elapsed = time.time() - start_time

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)
    print(f"\n  PDR: {results['pdr']:.4f}  DELAY: {results['mean_delay']:.4f}s")
    print(f"  Received: {results['received']}  Lost: {results['lost']}")
    print(f"  Events: {results['events_processed']}  Real Time: {elapsed:.2f} s")

    print(f"\nSource Queues:")
    for address, node in results['nodes'].items():
        queue = node['queue']
        bias = queue.get('bias', {})
        print(f"  {address} ({node['hops']} hops): "
              f"generated={node['packets_generated']}, "
              f"delayed={bias.get('delayed_packets', 0)}, "
              f"dropped={queue['drop_events']}, "
              f"expired={queue['expired_packets']}")
        search = bias.get('search')
        if search:
            print(f"    tabu cycles={search['cycles']}, best={search['best']}, "
                  f"utility={search['best_utility']:.4f}")

    return results


def run_batch(args):
    """Run repeated simulations for each bias mode."""
    from simulation.runner import BatchRunner
    from src.bias.controller import BiasMode

    modes = [BiasMode[MODE_NAMES[m]] for m in args.modes]
    output = args.output or RESULTS_CSV

    runner = BatchRunner(
        modes=modes,
        repeats=args.repeats,
        total_time=args.time,
        seed_base=args.seed,
        output_file=output
    )

    print("=" * 60)
    print("BATCH RUN")
    print("=" * 60)
    print(f"\n  Modes: {[m.name for m in modes]}")
    print(f"  Repeats: {args.repeats}")
    print(f"  Total simulations: {runner.total_runs}")
    print(f"  Output: {output}")

    results = runner.run()
    runner.save_results()

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(runner.summarize())

    failed = [r for r in results if r.get('error')]
    if failed:
        print(f"\n{len(failed)} run(s) failed, first error: {failed[0]['error']}")

    return results


def show_config(args):
    """Display current configuration."""
    import config as cfg

    print("=" * 60)
    print("SIMULATOR CONFIGURATION")
    print("=" * 60)

    print(f"\nMAC Queue:")
    print(f"  Max Size: {cfg.MAX_QUEUE_SIZE} packets")
    print(f"  Max Delay: {cfg.MAX_QUEUE_DELAY} s")

    print(f"\nMixed Bias:")
    print(f"  A={cfg.DEFAULT_ALPHA}, B1={cfg.DEFAULT_BETA1}, B2={cfg.DEFAULT_BETA2}")
    print(f"  Bias Delay: {cfg.BIAS_DELAY} s")

    print(f"\nTabu Search:")
    print(f"  Packet Reset: {cfg.PACKET_RESET}")
    print(f"  Tabu Reset: {cfg.TABU_RESET}")
    print(f"  Tabu Life: {cfg.TABU_LIFE} s")

    print(f"\nStatic bias probability per hop count:")
    for hops in range(1, cfg.calculate_max_hops() + 1):
        print(f"  {hops} hops: R = {cfg.calculate_static_bias_probability(hops):.4f}")


def main():
    parser = argparse.ArgumentParser(
        description="Mixed-Bias Mesh MAC Queue Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Single simulation:
    python main.py --single --mode adaptive

  Compare all bias modes over 10 repeats:
    python main.py --batch --repeats 10

  Show configuration:
    python main.py --config
        """
    )

    # Mode selection
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument('--single', action='store_true',
                        help='Run single simulation')
    action.add_argument('--batch', action='store_true',
                        help='Run repeated simulations per bias mode')
    action.add_argument('--config', action='store_true',
                        help='Show configuration')

    # Simulation options
    parser.add_argument('--mode', '-m', choices=sorted(MODE_NAMES), default='static',
                        help='Bias mode for --single (default: static)')
    parser.add_argument('--modes', nargs='+', choices=sorted(MODE_NAMES),
                        default=['off', 'static', 'adaptive'],
                        help='Bias modes for --batch')
    parser.add_argument('--seed', '-s', type=int, default=42,
                        help='Random seed (default: 42)')
    parser.add_argument('--time', '-t', type=float, default=TOTAL_TIME,
                        help=f'Simulated seconds (default: {TOTAL_TIME})')
    parser.add_argument('--carry-over', action='store_true',
                        help='Keep current parameters for rejected tabu moves')

    # Batch options
    parser.add_argument('--repeats', '-r', type=int, default=REPEATS,
                        help=f'Runs per mode (default: {REPEATS})')

    # Output options
    parser.add_argument('--output', '-o', type=str,
                        help='Output CSV path')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    args = parser.parse_args()

    if args.single:
        run_single_simulation(args)
    elif args.batch:
        run_batch(args)
    elif args.config:
        show_config(args)


if __name__ == "__main__":
    main()
