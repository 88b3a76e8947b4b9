from dotenv import load_dotenv
load_dotenv()

import argparse
import logging
import random
from pathlib import Path
from typing import Any

from fuzzhead.adapters import ExecutionAdapter
from fuzzhead.catalog import TypeCatalog
from fuzzhead.compiler import PuyaCompiler
from fuzzhead.config import BACKENDS, FuzzConfig
from fuzzhead.errors import BackendUnreachable, DiscoveryError
from fuzzhead.fuzzers import ContractFuzzer
from fuzzhead.introspect import ContractDescriptor, discover, parse_source
from fuzzhead.report import summarize, write_report

EXIT_SETUP_FAILURE = 1
EXIT_UNREACHABLE = 2
EXIT_INTERRUPTED = 130

log_levels = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def main(*args: Any, **kwds: Any) -> Any:
    source, config, report_path = parse_args()
    logging.basicConfig(
        level=log_levels[min(config.verbosity, 2)],
        format="%(levelname)s: %(message)s",
    )
    if config.seed is not None:
        random.seed(config.seed)

    contracts = load_contracts(source, TypeCatalog(config.sequence_length))

    try:
        adapter = create_adapter(config)
    except BackendUnreachable as e:
        print(f"Backend unreachable: {e}")
        raise SystemExit(EXIT_UNREACHABLE)

    compiler = PuyaCompiler(config.artifacts) if config.compile else None
    fuzzer = ContractFuzzer(adapter, config, compiler)
    try:
        summary = fuzzer.start(contracts)
    except BackendUnreachable as e:
        print(f"Backend became unreachable while fuzzing: {e}")
        if fuzzer.summary is not None:
            print(summarize(fuzzer.summary, config.verbosity))
        raise SystemExit(EXIT_UNREACHABLE)
    except KeyboardInterrupt:
        print("Exiting...")
        if fuzzer.summary is not None:
            print(summarize(fuzzer.summary, config.verbosity))
        raise SystemExit(EXIT_INTERRUPTED)

    print(summarize(summary, config.verbosity))
    if report_path is not None:
        write_report(summary, report_path)
        logging.info("Report written to %s", report_path)

    if summary.contracts and len(summary.setup_failures) == len(summary.contracts):
        print("Setup failed for every contract")
        raise SystemExit(EXIT_SETUP_FAILURE)
    return 0


def load_contracts(source: Path, catalog: TypeCatalog) -> list[ContractDescriptor]:
    paths = sorted(source.rglob("*.py")) if source.is_dir() else [source]
    if not paths:
        print(f"No Python sources found in {source}")
        raise SystemExit(EXIT_SETUP_FAILURE)

    contracts = []
    for path in paths:
        try:
            unit = parse_source(path)
        except DiscoveryError as e:
            print(f"Discovery failed: {e}")
            raise SystemExit(EXIT_SETUP_FAILURE)
        contracts.extend(discover(unit, catalog))
    return contracts


def create_adapter(config: FuzzConfig) -> ExecutionAdapter:
    if config.backend == "algod":
        from fuzzhead.FuzzAppClient import AlgodAdapter
        return AlgodAdapter(senders=config.senders, artifacts=config.artifacts)

    from fuzzhead.emulator import EmulatorAdapter
    return EmulatorAdapter()


def parse_args(argv: list[str] | None = None) -> tuple[Path, FuzzConfig, Path | None]:
    parser = argparse.ArgumentParser(description='Property-based fuzzer for Algorand Python smart contracts')
    parser.add_argument(
        'source',
        type=str,
        help='Contract source file, or a directory of contract sources'
    )
    parser.add_argument(
        '--backend',
        choices=BACKENDS,
        help='Execution backend (default: emulator, or FUZZ_BACKEND)'
    )
    parser.add_argument(
        '--runs',
        type=restricted_int,
        help="Number of calls per method (default: 200, or FUZZ_RUNS)"
    )
    parser.add_argument(
        '--compile',
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Compile contracts with puyapy before deploying (default: on for algod, or COMPILE)"
    )
    parser.add_argument(
        '--skip-init',
        action='store_true',
        default=None,
        help="Do not call the create method (default: SKIP_INIT)"
    )
    parser.add_argument(
        '--seed',
        type=int,
        help="Seed for the random generator (default: unseeded, or FUZZ_SEED)"
    )
    parser.add_argument(
        '--sequence-length',
        type=restricted_int,
        help="Number of elements in generated dynamic arrays (default: 3)"
    )
    parser.add_argument(
        '--string-length',
        type=restricted_int,
        help="Length of generated strings (default: 5)"
    )
    parser.add_argument(
        '--bytes-length',
        type=restricted_int,
        help="Length of generated byte strings (default: 32)"
    )
    parser.add_argument(
        '--senders',
        type=restricted_int,
        help="Number of funded accounts sending calls on the algod backend (default: 1)"
    )
    parser.add_argument(
        '--reset-between-methods',
        action='store_true',
        default=None,
        help="Deploy a fresh contract for every method instead of sharing state"
    )
    parser.add_argument(
        '--artifacts',
        type=str,
        help="Directory for ARC-32 app specs (compiler output or precompiled)"
    )
    parser.add_argument(
        '--report',
        type=str,
        help="Write a JSON report to this file"
    )
    parser.add_argument(
        '--live',
        action='store_true',
        help="Show a live status screen while fuzzing"
    )
    parser.add_argument(
        '-v',
        '--verbose',
        action='count',
        default=0,
        help="Show failing and passing arguments"
    )
    parser.add_argument(
        '-q',
        '--quiet',
        action='store_true',
        help="Only show counts"
    )

    args = parser.parse_args(argv)

    source = Path(args.source)
    if not source.exists():
        print("Path to contract source is wrong")
        raise SystemExit(EXIT_SETUP_FAILURE)

    try:
        config = FuzzConfig.from_env(args.backend)
    except ValueError as e:
        parser.error(str(e))

    overrides = {
        'runs': args.runs,
        'compile': args.compile,
        'skip_init': args.skip_init,
        'seed': args.seed,
        'sequence_length': args.sequence_length,
        'string_length': args.string_length,
        'bytes_length': args.bytes_length,
        'senders': args.senders,
        'reset_between_methods': args.reset_between_methods,
        'artifacts': Path(args.artifacts) if args.artifacts else None,
    }
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)

    config.live = args.live
    if args.quiet:
        config.verbosity = 0
    elif args.verbose:
        config.verbosity = 1 + args.verbose

    report_path = Path(args.report) if args.report else None
    return source, config, report_path


def restricted_int(x):
    try:
        x = int(x)
    except ValueError:
        raise argparse.ArgumentTypeError("%r not an integer literal" % (x,))

    if x < 1:
        raise argparse.ArgumentTypeError("%r not a positive integer" % (x,))
    return x


if __name__ == '__main__':
    main()
