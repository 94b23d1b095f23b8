import sys
import logging
from typing import List, Optional

from payments_engine import PaymentsEngine, write_accounts

USAGE = "Usage: python main.py [-v|--verbose] <input.csv>"


def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)

    verbose = False
    for flag in ("-v", "--verbose"):
        if flag in args:
            args.remove(flag)
            verbose = True

    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if len(args) != 1:
        print(USAGE, file=sys.stderr)
        return 1

    filepath = args[0]
    engine = PaymentsEngine()
    try:
        engine.process_file(filepath)
    except OSError as e:
        print(f"Cannot read {filepath}: {e}", file=sys.stderr)
        return 1

    write_accounts(engine.snapshots(), sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
