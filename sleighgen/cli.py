"""Command line driver for the processor module generator."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

from .config import ProcessorConfig
from .errors import ConfigError, OutputError, ParseError, RegisterInitError
from .model import InstructionModel
from .parser import InstructionFileParser
from .pipeline import GenerationPipeline
from .registers import RegisterCatalog
from .sleigh import ProcessorModuleWriter

BANNER = "Ghidra Processor Module Generator"
EXIT_OK = 0
EXIT_FAILURE = -1


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise ConfigError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(description=BANNER)
    parser.add_argument(
        "-i",
        "--input-file",
        type=Path,
        default=None,
        help="Newline delimited listing of every opcode and instruction. Required.",
    )
    parser.add_argument(
        "-n",
        "--processor-name",
        default="MyProc",
        help='Name of the target processor. Defaults to "MyProc"',
    )
    parser.add_argument(
        "-f",
        "--processor-family",
        default="MyProcFamily",
        help='Name of the target processor family. Defaults to "MyProcFamily"',
    )
    parser.add_argument(
        "-e",
        "--endian",
        default="big",
        help='Endianness of the processor, "big" or "little". Defaults to big',
    )
    parser.add_argument(
        "-a", "--alignment", type=int, default=1, help="Instruction alignment. Defaults to 1"
    )
    parser.add_argument(
        "-b", "--bitness", type=int, default=32, help="Bitness of the processor. Defaults to 32"
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory the processor module directory is created in",
    )
    parser.add_argument(
        "--print-registers-only",
        action="store_true",
        help="Only print the registers found in the listing",
    )
    parser.add_argument(
        "--omit-opcodes",
        action="store_true",
        help="Don't print opcodes in the generated .slaspec file",
    )
    parser.add_argument(
        "--omit-example-instructions",
        action="store_true",
        help="Don't print example instructions in the generated .slaspec file",
    )
    parser.add_argument(
        "--skip-instruction-combining",
        action="store_true",
        help="Don't combine instructions. Useful for debugging",
    )
    parser.add_argument(
        "-ar",
        "--additional-registers",
        nargs="+",
        default=[],
        help="Registers missing from the built-in catalog",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline details")
    return parser


def config_from_args(args: argparse.Namespace) -> ProcessorConfig:
    return ProcessorConfig(
        processor_name=args.processor_name,
        processor_family=args.processor_family,
        endian=args.endian,
        alignment=args.alignment,
        bitness=args.bitness,
        omit_opcodes=args.omit_opcodes,
        omit_example_instructions=args.omit_example_instructions,
        skip_instruction_combining=args.skip_instruction_combining,
        print_registers_only=args.print_registers_only,
        additional_registers=tuple(args.additional_registers),
    ).validate()


def _progress(message: str) -> None:
    print(f"[*] {message}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    start_time = time.perf_counter()
    print(BANNER)
    parser = build_parser()
    arguments: List[str] = list(argv) if argv is not None else sys.argv[1:]
    if not arguments:
        parser.print_help()
        return EXIT_OK

    try:
        args = parser.parse_args(arguments)
    except ConfigError as exc:
        print(f"[-] Error parsing command line: {exc}")
        return EXIT_FAILURE
    except SystemExit as exc:
        # -h/--help: argparse prints the usage and exits with status 0.
        if exc.code not in (0, None):
            raise
        return EXIT_OK

    if args.input_file is None:
        print("Input file name is required!!")
        return EXIT_FAILURE

    try:
        config = config_from_args(args)
    except ConfigError as exc:
        print(f"{exc}!!")
        return EXIT_FAILURE

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    _progress("Initializing default registers")
    try:
        catalog = RegisterCatalog.build(config.additional_registers, config.bitness)
    except RegisterInitError as exc:
        print(f"[-] Failed to initialize default registers: {exc}")
        return EXIT_FAILURE

    _progress("Parsing instructions")
    try:
        entries = InstructionFileParser().load(args.input_file)
    except ParseError as exc:
        print(f"[-] Failed to parse instructions: {exc}")
        return EXIT_FAILURE

    with InstructionModel(config, catalog, entries) as model:
        _progress(f"Parsed {len(model.entries)} instructions")

        if config.print_registers_only:
            _progress(f"Found registers: {catalog.describe(model.used_registers())}")
            print("If registers are missing pass them with --additional-registers.")
            return EXIT_OK

        module = GenerationPipeline(model, progress=_progress).run()
        _progress(
            f"Combined into {len(module.entries)} instructions,"
            f" {len(module.attach_groups)} attach groups,"
            f" {len(module.diagnostics)} unresolved"
        )

        _progress("Generating Ghidra processor specification")
        try:
            module_dir = ProcessorModuleWriter().write(module, args.output_dir)
        except OutputError as exc:
            print(f"[-] {exc}")
            return EXIT_FAILURE
        _progress(f"Created Processor Module Directory {module_dir}")

    total_time = time.perf_counter() - start_time
    print(f"total execution time: {total_time:.2f}s")
    return EXIT_OK


def run() -> None:
    raise SystemExit(main())
