# pingwatch/cli.py
# Usage examples:
#   pingwatch --address 1.1.1.1
#   pingwatch -a example.org -i 1s -l /var/log/pingwatch/pinger.log --max-bytes 1048576 -n 5
#   PINGWATCH_ADDRESS=9.9.9.9 PINGWATCH_INTERVAL=10s pingwatch --failures-only

import argparse
import logging
import signal
from typing import Optional

import icmplib

from pingwatch.config import Settings, load_settings, parse_duration
from pingwatch.errors import ConfigError, SinkIoError
from pingwatch.log import setup_logging
from pingwatch.loop.scheduler import Scheduler
from pingwatch.loop.shutdown import ShutdownController
from pingwatch.prober.base import Prober
from pingwatch.prober.icmp import IcmpProber
from pingwatch.prober.target import Target, TargetProber
from pingwatch.sink.rotating import LogSink

logger = logging.getLogger("pingwatch")

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_SINK = 3


def _duration(text: str) -> float:
    try:
        return parse_duration(text)
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def build_argparser(defaults: Settings) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="pingwatch",
        description="Ping one host at a fixed interval and keep a rotating log of the outcomes",
    )
    ap.add_argument("-a", "--address", default=defaults.address,
                    help="IPv4/IPv6 address or host name to ping")
    ap.add_argument("-i", "--interval", type=_duration, default=defaults.interval,
                    help="Time between pings, e.g. 500ms, 5s, 1m (default 5s)")
    ap.add_argument("-t", "--timeout", type=_duration, default=defaults.probe_timeout,
                    help="How long to wait for a reply (default min(2s, interval), never above interval)")
    ap.add_argument("-l", "--log-file", default=defaults.log_file, help="Active log file (default pinger.log)")
    ap.add_argument("--max-bytes", type=int, default=defaults.max_bytes,
                    help="Rotate when the active file would exceed this size (0 disables)")
    ap.add_argument("--max-records", type=int, default=defaults.max_records,
                    help="Rotate after this many records (0 disables)")
    ap.add_argument("--max-age", type=_duration, default=defaults.max_age,
                    help="Rotate when the active file is older than this, e.g. 1h (0 disables)")
    ap.add_argument("-n", "--backup-count", type=int, default=defaults.backup_count,
                    help="Rotated files to keep (default 3)")
    ap.add_argument("--compress", action=argparse.BooleanOptionalAction, default=defaults.compress,
                    help="gzip rotated files")
    ap.add_argument("--failures-only", action=argparse.BooleanOptionalAction, default=defaults.failures_only,
                    help="Only write failed probes to the log file")
    ap.add_argument("--reresolve-every", type=int, default=defaults.reresolve_every,
                    help="Resolve a host name again every N pings (0 = only at startup)")
    ap.add_argument("--privileged", action=argparse.BooleanOptionalAction, default=defaults.privileged,
                    help="Use raw ICMP sockets (needs root or CAP_NET_RAW)")
    ap.add_argument("--log-level", default=None, help="Diagnostic log level (default INFO)")
    return ap


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings(
        address=args.address,
        interval=args.interval,
        probe_timeout=args.timeout,
        privileged=args.privileged,
        reresolve_every=args.reresolve_every,
        log_file=args.log_file,
        max_bytes=args.max_bytes,
        max_records=args.max_records,
        max_age=args.max_age,
        backup_count=args.backup_count,
        compress=args.compress,
        failures_only=args.failures_only,
    )


def main(argv: Optional[list] = None, prober: Optional[Prober] = None) -> int:
    args = build_argparser(load_settings()).parse_args(argv)
    setup_logging(args.log_level)

    settings = settings_from_args(args)
    try:
        settings.validate()
    except ConfigError as exc:
        logger.error("configuration error: %s", exc)
        return EXIT_CONFIG

    target = Target(settings.address, reresolve_every=settings.reresolve_every)
    if not target.is_literal:
        try:
            target.resolve()
        except (icmplib.NameLookupError, OSError) as exc:
            # not fatal: every tick retries and records the failure
            logger.warning("cannot resolve %s yet: %s", target.host, exc)

    prober = prober or IcmpProber(privileged=settings.privileged)
    sink = LogSink.from_settings(settings)

    try:
        with ShutdownController() as controller:
            scheduler = Scheduler(
                settings.interval,
                TargetProber(target, prober),
                sink,
                controller.signal,
                probe_timeout=settings.effective_timeout,
            )
            run = scheduler.run()
    except ConfigError as exc:
        logger.error("configuration error: %s", exc)
        sink.close()
        return EXIT_CONFIG
    except SinkIoError as exc:
        logger.critical("giving up, outcome log is unusable: %s", exc)
        return EXIT_SINK

    if controller.received is not None:
        logger.info("stopped by %s", signal.Signals(controller.received).name)
    logger.info("summary: %s", run.summary())
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
