"""Command-line entry point for dbtop."""

import argparse
import logging
import sys
from collections.abc import Callable, Sequence
from typing import TextIO

from pymongo.errors import PyMongoError

from dbtop.client import MongoDispatcher, connect, sanitize_uri
from dbtop.config import Options, env_log_level, env_uri, int_env, split_fields
from dbtop.diff import DiffResult
from dbtop.errors import BadOptions, Exit, FatalStartupFailure, UnsupportedFeature
from dbtop.log import setup_logging
from dbtop.monitor import Monitor
from dbtop.render import render
from dbtop.stat_fields import HEADER_STYLES

log = logging.getLogger(__name__)

DESCRIPTION = """\
Monitor basic usage statistics for each collection.

Samples the server every <sleep> seconds and prints the time spent reading
and writing per namespace. --locks reports per-database lock times,
--operationmetrics per-database resource consumption, and --stat one
server status line per poll."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbtop",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "sleep_time",
        nargs="?",
        type=int,
        default=int_env("DBTOP_SLEEP", 1, min_value=1),
        metavar="sleep",
        help="polling interval in seconds (default: 1)",
    )
    parser.add_argument("--uri", default=env_uri(), help="MongoDB connection string")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--locks", action="store_true", help="report on use of per-database locks")
    mode.add_argument(
        "--operationmetrics",
        dest="operation_metrics",
        action="store_true",
        help="report per-database resource consumption from $operationMetrics",
    )
    mode.add_argument(
        "--stat", action="store_true", help="print one server status line per poll"
    )

    output = parser.add_argument_group("output")
    output.add_argument(
        "-n",
        "--rowcount",
        dest="row_count",
        type=int,
        default=0,
        metavar="<count>",
        help="number of stats lines to print (0 for indefinite)",
    )
    output.add_argument(
        "-l",
        "--listcount",
        dest="list_count",
        type=int,
        default=0,
        metavar="<count>",
        help="number of entry lines to print per stat row (0 for the default of 9)",
    )
    output.add_argument(
        "-s",
        "--sortlatency",
        dest="sort_latency",
        action="store_true",
        help="sort entries by average total ms / op instead of default of total time",
    )
    output.add_argument("--json", action="store_true", help="format output as JSON")
    output.add_argument(
        "--all", dest="all_fields", action="store_true", help="show all status line fields"
    )
    output.add_argument(
        "-o",
        "--fields",
        type=split_fields,
        default=(),
        metavar="<key>[,<key>...]",
        help="status line fields to show, in order (overrides --all)",
    )
    output.add_argument(
        "--headers",
        choices=HEADER_STYLES,
        default="short",
        help="status line column names (default: short)",
    )
    output.add_argument(
        "--humanreadable",
        dest="human_readable",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="scale sizes and format times for reading (default: on)",
    )
    output.add_argument("--tui", action="store_true", help="interactive live table")
    output.add_argument("--ignorecpu", dest="ignore_cpu", action="store_true", help=argparse.SUPPRESS)
    output.add_argument("--log-level", default=env_log_level(), help="diagnostic log level")
    return parser


def parse_options(argv: Sequence[str] | None = None) -> Options:
    args = build_parser().parse_args(argv)
    return Options(
        uri=args.uri,
        sleep_time=args.sleep_time,
        locks=args.locks,
        operation_metrics=args.operation_metrics,
        stat=args.stat,
        all_fields=args.all_fields,
        fields=args.fields,
        headers=args.headers,
        human_readable=args.human_readable,
        row_count=args.row_count,
        list_count=args.list_count,
        sort_latency=args.sort_latency,
        json=args.json,
        ignore_cpu=args.ignore_cpu,
        tui=args.tui,
        log_level=args.log_level,
    ).validate()


def print_sink(options: Options, stream: TextIO | None = None) -> Callable[[DiffResult], None]:
    """Sink that renders each diff and writes it to ``stream``."""

    def sink(result: DiffResult) -> None:
        out = stream or sys.stdout
        text = render(
            result,
            json_output=options.json,
            sort_latency=options.sort_latency,
            list_count=options.list_count,
        )
        out.write(text + "\n")
        if not options.json:
            out.write("\n")
        out.flush()

    return sink


def resolve_num_cores(dispatcher: MongoDispatcher, options: Options) -> int:
    if options.ignore_cpu:
        return 1
    return dispatcher.num_cores()


def run(options: Options, dispatcher: MongoDispatcher, stream: TextIO | None = None) -> int:
    """Poll ``dispatcher`` until done; returns the process exit code."""
    try:
        num_cores = resolve_num_cores(dispatcher, options)
    except PyMongoError as exc:
        log.error("Failed: %s", exc, extra={"event": "startup.failed"})
        return Exit.FAILURE

    if options.tui:
        from dbtop.app import DbtopApp

        DbtopApp(dispatcher, options, num_cores=num_cores).run()
        return Exit.OK

    monitor = Monitor(
        dispatcher,
        options,
        print_sink(options, stream),
        num_cores=num_cores,
        notify=lambda message: log.info(message, extra={"event": "connected"}),
        label=dispatcher.label,
    )
    try:
        monitor.run()
    except FatalStartupFailure as exc:
        log.error("Failed: %s", exc, extra={"event": "poll.fatal"})
        if isinstance(exc.__cause__, UnsupportedFeature):
            return Exit.UNSUPPORTED
        return Exit.FAILURE
    return Exit.OK


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the dbtop command."""
    try:
        options = parse_options(argv)
    except BadOptions as exc:
        sys.stderr.write(f"error parsing command line options: {exc}\n")
        return Exit.BAD_INPUT

    setup_logging(options.log_level, json_lines=options.json)
    log.debug("connecting to %s", sanitize_uri(options.uri), extra={"event": "connect"})
    try:
        client = connect(options.uri)
    except (PyMongoError, ValueError) as exc:
        log.error("Failed: %s", exc, extra={"event": "connect.failed"})
        return Exit.BAD_INPUT
    dispatcher = MongoDispatcher(client, options.uri)
    try:
        return run(options, dispatcher)
    except KeyboardInterrupt:
        return Exit.OK
    finally:
        dispatcher.close()


if __name__ == "__main__":
    sys.exit(main())
