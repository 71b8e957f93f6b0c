"""Command-line entry point for jackc."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .compiler import compile_source
from .errors import JackError

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".jack"
OUTPUT_SUFFIX = ".vm"


#output is only written once the whole file compiled
def compile_file(source_path: Path, output_dir: Optional[Path] = None) -> Path:
    source = source_path.read_text(encoding="utf-8")
    code = compile_source(source)
    target_dir = output_dir if output_dir is not None else source_path.parent
    target = target_dir / source_path.with_suffix(OUTPUT_SUFFIX).name
    target.write_text(code, encoding="utf-8")
    logger.info("compiled %s -> %s", source_path, target)
    return target


#expands directories into their sorted .jack files
def discover_sources(paths: Sequence[Path]) -> List[Path]:
    sources: List[Path] = []
    for path in paths:
        if path.is_dir():
            found = sorted(path.glob(f"*{SOURCE_SUFFIX}"))
            if not found:
                logger.warning("no %s files in %s", SOURCE_SUFFIX, path)
            sources.extend(found)
        else:
            sources.append(path)
    return sources


#compiles each file independently; one failure does not stop the batch
def compile_paths(paths: Sequence[Path], output_dir: Optional[Path] = None) -> int:
    failures = 0
    sources = discover_sources(paths)
    for source_path in sources:
        if source_path.suffix != SOURCE_SUFFIX:
            logger.error("%s: not a %s file", source_path, SOURCE_SUFFIX)
            failures += 1
            continue
        logger.debug("compiling %s", source_path)
        try:
            compile_file(source_path, output_dir)
        except JackError as exc:
            logger.error("%s:%s", source_path, exc.describe())
            failures += 1
        except OSError as exc:
            logger.error("%s: %s", source_path, exc.strerror or exc)
            failures += 1
        except UnicodeDecodeError as exc:
            logger.error("%s: not valid UTF-8 text (byte %d)", source_path, exc.start)
            failures += 1
    if not sources:
        logger.error("no input files")
        return 1
    return 1 if failures else 0


#configures the CLI surface
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jackc", description="Compile Jack classes to VM code")
    parser.add_argument("paths", nargs="+", type=Path, help=".jack files or directories containing them")
    parser.add_argument("-o", "--output-dir", type=Path, help="write .vm files here instead of beside the sources")
    parser.add_argument("-v", "--verbose", action="store_true", help="log per-file and per-subroutine progress")
    return parser


#entry point used by both console script and module execution
def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(format="%(levelname)s: %(message)s")
    logging.getLogger("jackc").setLevel(logging.DEBUG if args.verbose else logging.WARNING)
    if args.output_dir is not None:
        args.output_dir.mkdir(parents=True, exist_ok=True)
    return compile_paths(args.paths, args.output_dir)


if __name__ == "__main__":
    raise SystemExit(main())
