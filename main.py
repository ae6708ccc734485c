#!/usr/bin/env python3
"""Microservice Agent Pipeline - layered design artifacts from a service description.

Usage:
    python main.py                                   # inventory preset into ./generated
    python main.py out/ --service payments           # preset, custom output root
    python main.py --descriptor orders.json          # your own service definition
    python main.py --dry-run                         # show the prompt and stage order only
    python main.py --list-stages
"""

import argparse
import logging
import sys
import threading

from config.services import DEFAULT_SERVICE, SERVICES, get_service, load_descriptor
from config.settings import load_settings
from core.errors import ArtifactWriteError, ConfigurationError, StageError
from core.orchestrator import DEFAULT_STAGES, Pipeline
from core.writer import format_duration, save_artifacts
from utils.llm import GenerationClient


def _resolve_descriptor(args):
    if args.descriptor:
        return load_descriptor(args.descriptor)
    return get_service(args.service)


def _print_stages():
    print("Pipeline stages:")
    for i, stage in enumerate(DEFAULT_STAGES, 1):
        print(f"  {i}. {stage.name:26s} - {stage.description}")


def _print_progress(index, stage_result):
    print(f"  [{index + 1}/{len(DEFAULT_STAGES)}] {stage_result.stage_name}: "
          f"{len(stage_result.artifacts)} artifact(s) in {stage_result.elapsed:.1f}s")


def _run_cancellable(pipeline, descriptor):
    """Run the pipeline in a worker thread so Ctrl-C can cancel it cleanly."""
    cancel = threading.Event()
    outcome = {}

    def target():
        try:
            outcome["result"] = pipeline.run(descriptor, cancel=cancel, on_stage=_print_progress)
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=target, name="pipeline", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        print("\nCancelling, waiting for the current stage to stop...")
        cancel.set()
        worker.join()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]


def cmd_run(args, descriptor):
    settings = load_settings()
    output_dir = args.output_dir or settings.output_dir

    print("Microservice Agent Pipeline")
    print(f"   Service:  {descriptor.name}")
    print(f"   Language: {descriptor.language}")
    print(f"   Output:   {output_dir}\n")

    pipeline = Pipeline.from_settings(GenerationClient(settings), settings)
    result = _run_cancellable(pipeline, descriptor)

    print(f"\nPipeline completed in {format_duration(result.duration)}")
    print(f"Saving artifacts to {output_dir}/{descriptor.name}/...")
    save_artifacts(result, output_dir)

    print("\nGenerated files:")
    for r in result.stage_results:
        print(f"  {r.stage_name:30s} {len(r.artifacts)} artifact(s)")
        for a in r.artifacts:
            print(f"    - {a.filename}")

    print(f"\nDone! See {output_dir}/{descriptor.name}/README.md for a summary.")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="lotus-agents",
        description="Generate API, backend, messaging and test artifacts for a microservice",
    )
    parser.add_argument("output_dir", nargs="?",
                        help="Output root (default: ./generated or PIPELINE_OUTPUT_DIR)")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--service", choices=sorted(SERVICES), default=DEFAULT_SERVICE,
                        help=f"Preset service definition (default: {DEFAULT_SERVICE})")
    source.add_argument("--descriptor", help="Path to a JSON service definition")
    parser.add_argument("--dry-run", action="store_true",
                        help="Print the service prompt and stage order, call nothing")
    parser.add_argument("--list-stages", action="store_true", help="List pipeline stages")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_stages:
        _print_stages()
        return 0

    try:
        descriptor = _resolve_descriptor(args)
    except (OSError, ValueError) as e:
        print(f"Invalid service definition: {e}", file=sys.stderr)
        return 1

    if args.dry_run:
        print(descriptor.render_prompt())
        _print_stages()
        return 0

    try:
        cmd_run(args, descriptor)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except StageError as e:
        print(f"Pipeline failed: {e}", file=sys.stderr)
        return 1
    except ArtifactWriteError as e:
        print(f"Failed to save artifacts: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
