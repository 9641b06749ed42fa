"""
OptimiCity CLI - Command-line interface for the engine.

Usage:
    optimicity serve [--host H] [--port P]     Run the HTTP API
    optimicity simulate [--seed N] [--steps N] Play a headless session
    optimicity actions                         Print the action catalog
"""

import argparse
import asyncio
import logging
import sys


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="OptimiCity - Resistance simulation against an AI Mayor",
        prog="optimicity",
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Diagnostic logging level",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Play a headless session")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    simulate_parser.add_argument("--steps", type=int, default=180,
                                 help="Number of autonomous ticks to run")

    # Actions command
    subparsers.add_parser("actions", help="Print the action catalog")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "simulate":
        cmd_simulate(args)
    elif args.command == "actions":
        cmd_actions(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the API with uvicorn."""
    try:
        import uvicorn
    except ImportError:
        print("uvicorn not installed. Install with: pip install uvicorn")
        sys.exit(1)
    uvicorn.run("optimicity.api.app:app", host=args.host, port=args.port)


def cmd_actions(args):
    """Print the action catalog."""
    from .engine_core.action import ACTION_CATALOG

    print(f"{'kind':<12} {'power':>6} {'heat':>6} {'cost':>6}  classes")
    for d in ACTION_CATALOG.values():
        classes = ", ".join(sorted(c.value for c in d.classes))
        print(
            f"{d.kind:<12} {d.power[0]:>2}-{d.power[1]:<3} {d.heat[0]:>2}-{d.heat[1]:<3} "
            f"{d.base_cost:>6}  {classes}"
        )


def choose_move(engine):
    """
    A simple rotating strategy: work the weakest unliberated neighborhood
    with the strongest action that is affordable and ready.
    """
    from .engine_core.action import ACTION_CATALOG, cooldown_key

    state = engine.state
    candidates = [t for t in state.targets if not t.is_liberated]
    if not candidates:
        return None, None
    target = min(candidates, key=lambda t: (not t.threatened, t.resistance))
    engine.store.select_target(target.id)

    ready = []
    for d in ACTION_CATALOG.values():
        if engine.cooldown_remaining(cooldown_key(d.kind, target.id)) > 0:
            continue
        if d.requires_threatened_target and not target.threatened:
            continue
        if state.power < d.min_power:
            continue
        price = engine.economy.price(d)
        if price <= state.currency:
            ready.append((d.power[1] / price, d.kind))
    if not ready:
        return target.id, None
    return target.id, max(ready)[1]


async def run_simulation(engine, clock, steps):
    """Drive an engine on a manual clock; returns the number of ticks run."""
    config = engine.config
    tick_ms = config.tick_interval_seconds * 1000
    mining_every = max(1, round(config.mining_interval_seconds / config.tick_interval_seconds))

    for step in range(1, steps + 1):
        if not engine.active:
            return step - 1
        if engine.global_cooldown_remaining() <= 0:
            _, kind = choose_move(engine)
            if kind is not None:
                await engine.perform_action(kind)
        if engine.state.currency < 500 and engine.earning_cooldown_remaining("collectible") <= 0:
            engine.sell_collectible()
        clock.advance(tick_ms)
        engine.tick()
        if step % mining_every == 0:
            engine.mining_cycle()
    return steps


def cmd_simulate(args):
    """Play a headless session and print its log."""
    from .config import EngineConfig, NarrativeConfig
    from .engine_core.engine import ResistanceEngine
    from .engine_core.timers import ManualClock
    from .session import build_narrators

    clock = ManualClock()
    mayor, citizens = build_narrators(NarrativeConfig.from_env())
    engine = ResistanceEngine(
        EngineConfig.from_env(),
        seed=args.seed,
        clock=clock,
        scheduler=clock,
        mayor=mayor,
        citizens=citizens,
    )
    engine.start()
    ticks = asyncio.run(run_simulation(engine, clock, args.steps))

    for entry in engine.log.entries():
        print(f"[{entry.timestamp / 1000:7.1f}s] {entry.category.value:<7} {entry.text}")

    state = engine.state
    print()
    print(f"Ticks: {ticks}")
    print(f"Power: {state.power:.0f}  Heat: {state.heat:.0f}  Currency: {state.currency:,}")
    print(f"Participants: {state.active_participants:,} / {state.total_population:,}")
    print(f"Liberated: {state.liberated_count}/{len(state.targets)}")
    if state.outcome:
        print(f"Outcome: {state.outcome.kind.value} - {state.outcome.message}")
    else:
        print("Outcome: still running")


if __name__ == "__main__":
    main()
