from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from . import evaluation, workload
from .admission import AdmissionSource, StreamSource, TimedSource
from .clock import MonotonicClock
from .controller import DEFAULT_POLL_INTERVAL_MS, OsProcessController
from .engine import Engine, MlfqConfig, RoundRobinConfig
from .engines import FcfsEngine, MlfqEngine, OnlineMlfqEngine, OnlineSjfEngine, RoundRobinEngine
from .estimator import DEFAULT_ESTIMATE_MS, BurstEstimator
from .sink import CsvSink

logger = logging.getLogger("proc_sched")

DEFAULT_OUTPUTS = {
    "fcfs": "result_offline_FCFS.csv",
    "rr": "result_offline_RR.csv",
    "mlfq": "result_offline_MLFQ.csv",
    "online-mlfq": "result_online_MLFQ.csv",
    "online-sjf": "result_online_SJF.csv",
}


def parse_arguments(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="proc-sched",
        description="Schedule real OS commands under FCFS, RR, MLFQ or SJF and report timing metrics.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr.")
    parser.add_argument(
        "--poll-interval",
        type=int,
        default=DEFAULT_POLL_INTERVAL_MS,
        help="Completion polling interval (ms).",
    )
    subparsers = parser.add_subparsers(dest="policy", required=True)

    fcfs = subparsers.add_parser("fcfs", help="First-Come, First-Served over a command file.")
    _add_batch_arguments(fcfs)

    rr = subparsers.add_parser("rr", help="Round-Robin over a command file.")
    _add_batch_arguments(rr)
    rr.add_argument("--quantum", type=int, required=True, help="Time slice (ms).")

    mlfq = subparsers.add_parser("mlfq", help="Offline Multi-Level Feedback Queue over a command file.")
    _add_batch_arguments(mlfq)
    _add_mlfq_arguments(mlfq)

    online_mlfq = subparsers.add_parser("online-mlfq", help="MLFQ admitting commands from stdin until 'exit'.")
    _add_online_arguments(online_mlfq)
    _add_mlfq_arguments(online_mlfq)

    online_sjf = subparsers.add_parser("online-sjf", help="SJF with learned estimates, admitting from stdin until 'exit'.")
    _add_online_arguments(online_sjf)
    online_sjf.add_argument(
        "--default-estimate",
        type=int,
        default=DEFAULT_ESTIMATE_MS,
        help="Estimate for commands never seen before (ms).",
    )

    compare = subparsers.add_parser("compare", help="Run FCFS, RR and MLFQ over the same batch and summarise.")
    compare.add_argument("commands", help="File with one command per line.")
    compare.add_argument("--quantum", type=int, default=100, help="RR time slice (ms).")
    _add_mlfq_arguments(compare, required=False)
    return parser.parse_args(argv)


def _add_batch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("commands", help="File with one command per line.")
    parser.add_argument("-o", "--output", help="CSV results path.")


def _add_online_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-o", "--output", help="CSV results path.")
    parser.add_argument(
        "--script",
        help="Replay '<offset_ms> <command>' lines from this file instead of reading stdin.",
    )
    parser.add_argument(
        "--exit-on-eof",
        action="store_true",
        help="Stop once input is exhausted and every admitted command has finished.",
    )


def _add_mlfq_arguments(parser: argparse.ArgumentParser, *, required: bool = True) -> None:
    parser.add_argument(
        "--quanta",
        type=str,
        required=required,
        default=None if required else "50,100,200",
        help="Comma-separated tier quanta q0,q1,q2 (ms).",
    )
    parser.add_argument(
        "--boost",
        type=int,
        required=required,
        default=None if required else 1000,
        help="Priority boost interval (ms).",
    )


def parse_quanta(raw: str) -> tuple[int, int, int]:
    parts = [int(item.strip()) for item in raw.split(",") if item.strip()]
    if len(parts) != 3:
        msg = "quanta must be provided as q0,q1,q2"
        raise ValueError(msg)
    return parts[0], parts[1], parts[2]


def build_mlfq_config(args: argparse.Namespace) -> MlfqConfig:
    q0, q1, q2 = parse_quanta(args.quanta)
    return MlfqConfig(quantum0=q0, quantum1=q1, quantum2=q2, boost_interval=args.boost)


def build_source(args: argparse.Namespace, clock: MonotonicClock) -> AdmissionSource:
    if args.script:
        return TimedSource(workload.read_arrivals(args.script), clock=clock)
    return StreamSource()


def build_engine(args: argparse.Namespace, sink: CsvSink, clock: MonotonicClock) -> Engine:
    controller = OsProcessController(clock=clock, poll_interval_ms=args.poll_interval)
    common = {"clock": clock, "sink": sink}
    if args.policy == "fcfs":
        return FcfsEngine(workload.read_commands(args.commands), controller, **common)
    if args.policy == "rr":
        config = RoundRobinConfig(quantum=args.quantum)
        return RoundRobinEngine(workload.read_commands(args.commands), config, controller, **common)
    if args.policy == "mlfq":
        return MlfqEngine(workload.read_commands(args.commands), build_mlfq_config(args), controller, **common)
    if args.policy == "online-mlfq":
        return OnlineMlfqEngine(
            build_source(args, clock),
            build_mlfq_config(args),
            controller,
            stop_when_drained=args.exit_on_eof,
            **common,
        )
    if args.policy == "online-sjf":
        return OnlineSjfEngine(
            build_source(args, clock),
            controller,
            estimator=BurstEstimator(default_ms=args.default_estimate),
            stop_when_drained=args.exit_on_eof,
            **common,
        )
    msg = f"unknown policy {args.policy!r}"
    raise ValueError(msg)


def run_compare(args: argparse.Namespace) -> None:
    commands = workload.read_commands(args.commands)
    rr_config = RoundRobinConfig(quantum=args.quantum)
    mlfq_config = build_mlfq_config(args)

    def controller() -> OsProcessController:
        return OsProcessController(poll_interval_ms=args.poll_interval)

    factories = [
        ("FCFS", lambda cmds: FcfsEngine(cmds, controller(), trace=None)),
        ("RR", lambda cmds: RoundRobinEngine(cmds, rr_config, controller(), trace=None)),
        ("MLFQ", lambda cmds: MlfqEngine(cmds, mlfq_config, controller(), trace=None)),
    ]
    outcomes = evaluation.evaluate_suite(factories, commands)

    print(f"Scheduled {len(commands)} commands with RR quantum {args.quantum} ms and MLFQ quanta {args.quanta}\n")
    header_fmt = "{:<8} {:>6} {:>12} {:>10} {:>10} {:>9} {:>9} {:>10}"
    row_fmt = "{:<8} {:>6d} {:>12.1f} {:>10.1f} {:>10.1f} {:>9.1f} {:>9.1f} {:>10.3f}"
    print(header_fmt.format("Engine", "Errors", "MeanTurnaround", "MeanWait", "MeanResp", "p50Wait", "p90Wait", "Throughput"))
    for outcome in outcomes:
        m = outcome.aggregate
        print(
            row_fmt.format(
                outcome.name,
                m.errors,
                m.mean_turnaround_time,
                m.mean_waiting_time,
                m.mean_response_time,
                m.p50_wait,
                m.p90_wait,
                m.throughput,
            ),
        )


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_arguments(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.policy == "compare":
            run_compare(args)
            return 0
        output = args.output or DEFAULT_OUTPUTS[args.policy]
        clock = MonotonicClock()
        with CsvSink(output) as sink:
            engine = build_engine(args, sink, clock)
            result = engine.run()
    except (OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    logger.info(
        "%s finished %d units in %d ms (%d slices, utilization %.2f); results in %s",
        engine.name,
        len(result.units),
        result.total_time,
        result.slices,
        result.utilization,
        output,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
