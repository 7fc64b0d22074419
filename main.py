# main.py
import argparse
import json
import logging
import sys

from colorama import Fore, Style, init

from nightbar.bridge import SimBridge
from nightbar.diagnostics import Diagnostics
from nightbar.models import PresentationSnapshot

init(autoreset=True)

BAND_COLORS = {
    'calm': Fore.GREEN, 'rowdy': Fore.YELLOW, 'riot': Fore.RED,
    'good': Fore.GREEN, 'fair': Fore.YELLOW, 'poor': Fore.RED,
}


def format_status(snap: PresentationSnapshot) -> str:
    worth_color = Fore.GREEN if snap.net_worth >= 0 else Fore.RED
    service = f"{Fore.GREEN}OPEN" if snap.service_open else f"{Fore.LIGHTBLACK_EX}CLOSED"
    return (
        f"W{snap.week} D{snap.day} R{snap.round:<2} {service}{Style.RESET_ALL} | "
        f"Cash: £{snap.money:.2f} | Debt: £{snap.debt:.2f} | "
        f"Net: {worth_color}£{snap.net_worth:.2f}{Style.RESET_ALL} | "
        f"Rep: {BAND_COLORS[snap.reputation_band]}{snap.reputation}{Style.RESET_ALL} | "
        f"Chaos: {BAND_COLORS[snap.chaos_band]}{snap.chaos:.1f}{Style.RESET_ALL} | "
        f"Traffic: {snap.traffic}"
    )


def print_event(event):
    if event.kind == "CREDIT":
        print(f"{Fore.MAGENTA}{event.message}{Style.RESET_ALL}")
    elif event.kind == "SERVICE":
        print(f"{Fore.CYAN}{event.message}{Style.RESET_ALL}")
    elif event.kind == "FINANCE":
        print(f"{Fore.LIGHTBLACK_EX}{event.message}{Style.RESET_ALL}")
    else:
        print(event.message)


def run_session(bridge: SimBridge, nights: int = 3, rounds: int = 7, verbose: bool = False) -> dict:
    """Plays ``nights`` nights of up to ``rounds`` rounds and returns the report."""
    diagnostics = Diagnostics(bridge.state.seed)
    if verbose:
        bridge.ui_logger.subscribe(print_event)

    for _ in range(nights):
        bridge.open_service()
        forced = False
        for _ in range(rounds):
            outcome = bridge.advance()
            diagnostics.record_round(bridge.state, outcome)
            snap = bridge.snapshot()
            if verbose:
                print(format_status(snap))
            if not snap.service_open:
                forced = True
                break
        if not forced:
            bridge.close_service("End of night")
        diagnostics.record_night(forced=forced)

    if verbose:
        bridge.ui_logger.unsubscribe(print_event)
    return diagnostics.generate_report(bridge.state)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run nights at the bar")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a new game (default: time based)")
    parser.add_argument("--nights", type=int, default=3, help="Nights to play")
    parser.add_argument("--rounds", type=int, default=7, help="Rounds per night")
    parser.add_argument("--save-dir", type=str, default=".", help="Directory holding the save file")
    parser.add_argument("--load", action="store_true", help="Continue from the save file")
    parser.add_argument("--save", action="store_true", help="Save when done")
    parser.add_argument("--verbose", action="store_true", help="Print every round and event")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Python logging level")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING),
                        format="%(levelname)s %(name)s: %(message)s")

    bridge = SimBridge(save_dir=args.save_dir)
    if args.load:
        message = bridge.load_game()
        print(f"{Fore.CYAN}{message}{Style.RESET_ALL}")
        if message != "Loaded.":
            return 1
    else:
        bridge.start_new_game(args.seed)

    print(f"{Fore.CYAN}Opening the bar (seed {bridge.state.seed}){Style.RESET_ALL}")
    report = run_session(bridge, nights=args.nights, rounds=args.rounds, verbose=args.verbose)

    if args.save:
        print(f"{Fore.CYAN}{bridge.save_game()}{Style.RESET_ALL}")

    color = Fore.GREEN if report['net_worth'] >= 0 else Fore.RED
    print(f"\n{Fore.GREEN}Session Complete.{Style.RESET_ALL}")
    print(format_status(bridge.snapshot()))
    print(f"Net Worth: {color}£{report['net_worth']:,.2f}{Style.RESET_ALL}")
    print("\n=== DIAGNOSTIC REPORT ===")
    print(json.dumps(report, indent=2))
    print("=========================")
    return 0


if __name__ == "__main__":
    sys.exit(main())
