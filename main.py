import argparse
import fnmatch
import os
import sys
import time

from tqdm import tqdm

from cacheHandling import delete_outputs
from config import METADATA_FILENAME, OUTPUT_SUFFIX, POLL_INTERVAL, PROGRESS_INTERVAL_LINES
from coordinator import ConversionCoordinator
from findFile import find_metadata, find_obj_files, group_by_directory
from logUtils import OutputCapture, log_with_timestamp
from metadata import describe_srs, read_metadata
from objErrors import MalformedMetadata, PathUnreadable


def build_parser():
    parser = argparse.ArgumentParser(
        description='Translate OBJ vertices by the SRS origin found in metadata.xml',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py ./Production_1
  python main.py ./Production_1 --select "Data/Tile_+000_+001/*"
  python main.py ./Production_1 --metadata ./Production_1/metadata.xml --log ./logs/translate.log

Every selected name.obj is written next to itself as name_tr.obj.
        """
    )
    parser.add_argument('root', help='Directory with the OBJ tiles and metadata.xml')
    parser.add_argument('--metadata', help=f'Metadata document (default: ROOT/{METADATA_FILENAME})')
    parser.add_argument('--select', action='append', default=[], metavar='GLOB',
                        help='Only convert files whose path relative to ROOT matches GLOB (repeatable)')
    parser.add_argument('--suffix', default=OUTPUT_SUFFIX,
                        help=f'Suffix appended to translated file names (default: {OUTPUT_SUFFIX})')
    parser.add_argument('--interval', type=int, default=PROGRESS_INTERVAL_LINES,
                        help=f'Report progress every N lines (default: {PROGRESS_INTERVAL_LINES})')
    parser.add_argument('--log', help='Write the detailed log to this file instead of the terminal')
    parser.add_argument('--list', action='store_true', help='List the discovered files and exit')
    parser.add_argument('--clean', action='store_true', help='Delete results of previous runs first')
    parser.add_argument('--quiet', action='store_true', help='No progress bars')
    return parser


def select_files(files, root, patterns):
    if not patterns:
        return list(files)
    selected = []
    for path in files:
        rel_path = os.path.relpath(path, root).replace(os.sep, '/')
        if any(fnmatch.fnmatch(rel_path, pattern) for pattern in patterns):
            selected.append(path)
    return selected


def watch_progress(coordinator, files, quiet=False):
    """Poll the progress channel until every file has finished or failed."""
    pbar = current = None
    current_path = None
    if not quiet:
        pbar = tqdm(total=len(files), desc="⏳ Processing files", unit="file",
                    position=0, leave=True, file=sys.__stdout__)
        current = tqdm(total=100, unit="%", position=1, leave=False, file=sys.__stdout__)

    finished = {}
    while len(finished) < len(files):
        events = coordinator.poll()
        if not events and not coordinator.running:
            break
        for event in events:
            if current is not None:
                if event.path != current_path:
                    current_path = event.path
                    current.reset()
                    current.set_description(os.path.basename(event.path))
                current.n = round(event.fraction * 100)
                current.refresh()
            if event.terminal and event.path not in finished:
                finished[event.path] = event
                if pbar is not None:
                    mark = "✗" if event.failed else "✅"
                    pbar.set_description(f"{mark} {os.path.basename(event.path)}")
                    pbar.update(1)
        if len(finished) < len(files):
            time.sleep(POLL_INTERVAL)

    if current is not None:
        current.close()
    if pbar is not None:
        pbar.set_description("✅ Completed all processing")
        pbar.close()
    return finished


def run(args):
    start = time.time()
    root = args.root

    try:
        discovered = find_obj_files(root, output_suffix=args.suffix)
    except PathUnreadable as e:
        log_with_timestamp(f"ERROR: {e}")
        return 2

    for skipped_path, reason in discovered.skipped:
        log_with_timestamp(f"WARNING: skipped {skipped_path}: {reason}")

    if args.list:
        for group in group_by_directory(discovered.files):
            log_with_timestamp(f"{os.path.dirname(group[0])}: {len(group)} file(s)")
            for path in group:
                print(f"  {path}")
        return 0

    metadata_path = args.metadata or find_metadata(root)
    if metadata_path is None:
        log_with_timestamp(f"ERROR: {METADATA_FILENAME} not found in {root}; conversion disabled")
        return 2
    try:
        record = read_metadata(metadata_path)
    except MalformedMetadata as e:
        log_with_timestamp(f"ERROR: {e}; conversion disabled")
        return 2

    log_with_timestamp(f"Metadata: {metadata_path}")
    log_with_timestamp(f"SRS: {describe_srs(record.srs)}")
    log_with_timestamp(f"Offset: {record.offset}")

    if args.clean:
        delete_outputs(root, args.suffix)

    files = select_files(discovered.files, root, args.select)
    log_with_timestamp(f"Found {len(discovered.files)} OBJ files, {len(files)} selected")
    if not files:
        return 0

    submitted = list(dict.fromkeys(os.path.abspath(path) for path in files))
    coordinator = ConversionCoordinator(interval=args.interval, suffix=args.suffix)
    coordinator.start()
    for path in submitted:
        coordinator.submit_path(path, record.offset)

    try:
        finished = watch_progress(coordinator, submitted, quiet=args.quiet)
    finally:
        coordinator.close()

    failed = [event for event in finished.values() if event.failed]
    end = time.time() - start
    log_with_timestamp("=== PROCESSING COMPLETED ===")
    log_with_timestamp(f"Converted {len(submitted) - len(failed)}/{len(submitted)} files in {end:.2f} seconds")
    for event in failed:
        log_with_timestamp(f"FAILED {event.path}: {event.error}")
    return 1 if failed else 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.interval < 1:
        build_parser().error("--interval must be positive")

    if args.log:
        with OutputCapture(args.log):
            return run(args)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
