"""Command-line interface for the transport box experiment."""

import argparse
import json
import sys

import uvicorn
from pydantic import ValidationError

from smash.config import SimulationConfig
from smash.engine.experiment import Experiment
from smash.logging_config import configure_logging, parse_log_level


def parse_particles(value: str) -> dict[str, int]:
    """Parse ``pi+=20,p=10`` into a species -> count mapping.

    Raises:
        argparse.ArgumentTypeError: If an entry is not ``species=count``.
    """
    result: dict[str, int] = {}
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        species, sep, count = entry.partition("=")
        if not sep or not species.strip():
            raise argparse.ArgumentTypeError(f"Expected species=count, got '{entry}'")
        try:
            result[species.strip()] = int(count)
        except ValueError:
            raise argparse.ArgumentTypeError(f"Invalid count in '{entry}'") from None
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smash",
        description="SMASH - hadronic transport in a periodic box",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run a box experiment and print a summary")
    run.add_argument("--end-time", type=float, help="End time in fm")
    run.add_argument("--time-step", type=float, help="Time step in fm")
    run.add_argument("--seed", type=int, help="Random seed")
    run.add_argument(
        "--particles",
        type=parse_particles,
        help="Initial multiplicities, e.g. pi+=20,p=10",
    )
    run.add_argument(
        "--potentials",
        action="store_true",
        help="Enable mean-field potentials",
    )
    run.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: LOG_LEVEL or INFO)",
    )

    serve = subparsers.add_parser("serve", help="Start the HTTP inspection server")
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    return parser


def _run(parsed: argparse.Namespace) -> int:
    configure_logging(level=parse_log_level(parsed.log_level) if parsed.log_level else None)
    overrides = {
        "end_time": parsed.end_time,
        "time_step": parsed.time_step,
        "seed": parsed.seed,
        "initial_particles": parsed.particles,
    }
    settings = {key: value for key, value in overrides.items() if value is not None}
    if parsed.potentials:
        settings["use_potentials"] = True
    try:
        config = SimulationConfig(**settings)
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return 2

    experiment = Experiment(config)
    try:
        experiment.initialize()
    except KeyError as e:
        print(f"Invalid configuration: {e.args[0]}", file=sys.stderr)
        return 2
    stats = experiment.run()
    summary = {
        "time": experiment.time,
        "particles": len(experiment.particles),
        "multiplicities": experiment.multiplicities(),
        "conserved": experiment.conserved_quantities(),
        "stats": stats.to_dict(),
    }
    print(json.dumps(summary, indent=2, sort_keys=True))
    return 0


def _serve(parsed: argparse.Namespace) -> int:
    configure_logging()
    print(f"Starting SMASH inspection server at http://{parsed.host}:{parsed.port}")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        "smash.server.app:app",
        host=parsed.host,
        port=parsed.port,
        reload=parsed.reload,
    )
    return 0


def main(args: list[str] | None = None) -> int:
    """Run the command line.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success, 2 for configuration errors).
    """
    parsed = build_parser().parse_args(args)
    if parsed.command == "run":
        return _run(parsed)
    return _serve(parsed)


if __name__ == "__main__":
    sys.exit(main())
