import json
import logging
import sys
from pathlib import Path

from kobo_bridge.settings import load_settings
from kobo_bridge.tools.send_data import send_data


def run(argv=None) -> int:
    """Send one scan result (a JSON file of send_data fields) to the host app."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("usage: kobo-bridge <scan.json>", file=sys.stderr)
        return 2

    logging.basicConfig(level=load_settings().log_level)
    payload = Path(args[0]).read_text(encoding="utf-8")
    result = json.loads(send_data.run(payload))
    print(json.dumps(result, ensure_ascii=False))
    return 0 if "response" in result else 1


if __name__ == "__main__":
    sys.exit(run())
