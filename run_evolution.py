#!/usr/bin/env python3
"""
Membrane Evolution - Terminal driver

Runs classical and quantum membrane evolution side by side and prints a
status panel every generation. Plays the role of the timer: one step()
per tick.

Usage:
    python run_evolution.py
    python run_evolution.py --generations 200 --seed 7 --save runs/latest.membranes.json
    python run_evolution.py --load runs/latest.membranes.json --interval 0
"""

import argparse
import time

from membrane import (
    EvolutionController,
    PopulationKind,
    create_config,
    load_evolution,
    save_evolution,
)


class Colors:
    """ANSI color codes for terminal output"""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    MAGENTA = '\033[95m'
    CYAN = '\033[96m'


def make_bar(value: float, width: int = 20, filled: str = '█', empty: str = '░') -> str:
    """Create a progress bar for a value in [0, 1]"""
    value = max(0.0, min(1.0, value))
    filled_count = int(value * width)
    return filled * filled_count + empty * (width - filled_count)


def print_generation(controller: EvolutionController) -> None:
    """Print best fitness of both populations, scaled to the best seen so far"""
    stats = controller.get_stats()
    history = controller.get_fitness_history()
    top = max(history['classical'] + history['quantum'] + [1.0])

    print(f"{Colors.BOLD}Gen {stats['generation']:4d}{Colors.RESET}", end='')
    for kind, color in ((PopulationKind.CLASSICAL, Colors.BLUE), (PopulationKind.QUANTUM, Colors.MAGENTA)):
        pop = stats[kind.value]
        bar = make_bar(pop['best_fitness'] / top, width=15)
        print(f"  {color}{kind.value:9}{Colors.RESET} [{bar}] {pop['best_fitness']:7.2f}", end='')
        if kind.use_quantum:
            print(f" {Colors.DIM}q={pop['best_coherence']:.2f}{Colors.RESET}", end='')
    print()


def print_summary(controller: EvolutionController) -> None:
    """Print the best organism of each population"""
    print(f"\n{Colors.BOLD}{'=' * 60}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}  BEST MEMBRANES AFTER {controller.generation} GENERATIONS{Colors.RESET}")
    print(f"{Colors.BOLD}{'=' * 60}{Colors.RESET}")
    for kind in PopulationKind:
        snapshot = controller.get_population_snapshot(kind)
        if not snapshot:
            continue
        best = snapshot[0]
        print(f"\n  {Colors.BOLD}{kind.value.capitalize()}:{Colors.RESET}")
        print(f"    Fitness:      {best.fitness:.2f}")
        print(f"    ATP delivered:{best.delivered:9.2f}")
        print(f"    Leaked:       {best.leaked:.2f}")
        print(f"    Coherence:    {best.coherence:.3f}")
        print(f"    Nodes/chords: {best.node_count}/{best.chord_count}")
        print(f"    Perimeter:    {best.perimeter:.1f}")
        print(f"    Genome id:    {best.genome.id}")
    print()


def main():
    parser = argparse.ArgumentParser(description="Evolve membranes under classical and quantum transport")
    parser.add_argument('--generations', type=int, default=100)
    parser.add_argument('--seed', type=int, default=None)
    parser.add_argument('--interval', type=float, default=None, help="seconds between generations")
    parser.add_argument('--population', type=int, default=16)
    parser.add_argument('--load', default=None, help="resume a saved run")
    parser.add_argument('--save', default=None, help="save the run when finished or interrupted")
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args()

    overrides = {'population_size': args.population, 'verbose': args.verbose}
    if args.interval is not None:
        overrides['tick_interval'] = args.interval
    config = create_config(**overrides)

    if args.load:
        controller = load_evolution(args.load, config=config)
        print(f"{Colors.DIM}Resumed run at generation {controller.generation}.{Colors.RESET}")
    else:
        controller = EvolutionController(config=config, seed=args.seed)

    print(f"{Colors.DIM}Initializing populations...{Colors.RESET}")
    controller.start()

    try:
        for _ in range(args.generations):
            controller.step()
            print_generation(controller)
            if config.tick_interval > 0:
                time.sleep(config.tick_interval)
    except KeyboardInterrupt:
        print(f"\n{Colors.YELLOW}Interrupted at generation {controller.generation}.{Colors.RESET}")
    finally:
        controller.pause()

    print_summary(controller)

    if args.save:
        path = save_evolution(controller, args.save)
        print(f"{Colors.GREEN}Run saved to {path}{Colors.RESET}\n")


if __name__ == '__main__':
    main()
