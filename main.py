#main.py

"""
fswatch - print file change notifications for the given patterns
"""
import sys
import time
import argparse
import logging

from fswatch.utils.config import load_config
from fswatch.utils.logger import setup_logging
from fswatch.watchdog import FileWatcher, Watch

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="fswatch",
        description="Watch files matching glob or regex patterns and print changes",
    )
    parser.add_argument("patterns", nargs="*",
                        help="patterns to watch, e.g. 'conf/*.yaml' or 'src/**.py'")
    parser.add_argument("-c", "--config", help="YAML or JSON configuration file")
    parser.add_argument("--polling", action="store_true",
                        help="poll the filesystem instead of using OS notifications")
    parser.add_argument("--log-level", help="logging level (overrides the config file)")
    return parser.parse_args(argv)


def print_event(path: str, event: str, watch: Watch, is_dir: bool):
    kind = "dir " if is_dir else "file"
    print(f"{event:<6} {kind} {path}  [{watch.pattern}]", flush=True)


def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 2

    if args.polling:
        config.use_polling = True
    if args.log_level:
        config.log_level = args.log_level

    setup_logging(config.log_level, config.log_file, config.log_format)

    patterns = list(args.patterns) or list(config.patterns)
    if not patterns:
        logger.error("No patterns to watch")
        return 2

    with FileWatcher(config) as watcher:
        # print_event is a module level function, so the weak references stay alive
        watches = [Watch(pattern, print_event) for pattern in patterns]
        active = [watch for watch in watches if watcher.add(watch)]

        if not active:
            logger.error("None of the patterns could be watched")
            return 1

        for watch in active:
            logger.info(f"Watching: {watch.pattern}")

        print("Watching for changes. Press Ctrl+C to stop.", flush=True)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            print("\nShutting down...")

    return 0


if __name__ == "__main__":
    sys.exit(main())
