# tools/probe_once.py
# Usage: python3 -m tools.probe_once 8.8.8.8 [timeout_seconds] [--privileged]
import json
import sys
from dataclasses import asdict

from pingwatch.prober.icmp import IcmpProber
from pingwatch.prober.target import Target, TargetProber


def main():
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    if not args:
        print("Usage: python -m tools.probe_once <target_ip_or_host> [timeout] [--privileged]")
        return 2
    timeout = float(args[1]) if len(args) > 1 else 2.0
    p = TargetProber(Target(args[0]), IcmpProber(privileged="--privileged" in sys.argv))
    outcome = p.probe(timeout)
    print(json.dumps(asdict(outcome), indent=2, default=str))
    return 0 if outcome.status == "SUCCESS" else 1


if __name__ == "__main__":
    raise SystemExit(main())
