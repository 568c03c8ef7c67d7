"""
castsay command line.

Results are printed to stdout as a single JSON object so other programs can
drive castsay as a helper process; logs go to stderr.

Commands:
- discover: list Cast devices that answer within the timeout
- say: make the named device speak some text
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from .config import CastSayConfig
from .discovery import discover
from .errors import CastSayError

logger = logging.getLogger(__name__)


async def collect_targets(config, timeout, wanted=None):
    """Listen for ``timeout`` seconds and return the devices heard.

    With ``wanted`` set, stop as soon as a device with that name shows up.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    targets = discover(config.service_name, config.query_interval)
    found = []
    try:
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                target = await asyncio.wait_for(targets.__anext__(), remaining)
            except (asyncio.TimeoutError, StopAsyncIteration):
                break
            found.append(target)
            if wanted is not None and target.name == wanted:
                break
    finally:
        await targets.aclose()
    return found


async def discover_speakers(config, timeout):
    """Discover all Cast devices on the network."""
    try:
        targets = await collect_targets(config, timeout)
    except CastSayError as e:
        return {"success": False, "error": str(e)}
    logger.info("Found %d device(s)", len(targets))
    return {
        "success": True,
        "speakers": [
            {"name": t.name, "ip": t.host, "port": t.port}
            for t in targets
        ],
    }


async def say(config, speaker_name, text, timeout):
    """Find ``speaker_name`` and make it speak ``text``."""
    try:
        targets = await collect_targets(config, timeout, wanted=speaker_name)
        target = next((t for t in targets if t.name == speaker_name), None)
        if target is None:
            return {"success": False, "error": f"Speaker '{speaker_name}' not found"}

        connection = await target.connect(
            timeout=config.connect_timeout,
            language=config.language,
        )
        try:
            await connection.say(text)
        finally:
            await connection.close()
    except CastSayError as e:
        return {"success": False, "error": str(e)}
    return {"success": True, "speaker": target.name, "ip": target.host}


def build_parser():
    parser = argparse.ArgumentParser(prog="castsay", description="Make Cast devices talk.")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p_discover = sub.add_parser("discover", help="list Cast devices on the network")
    p_discover.add_argument("--timeout", type=float, default=None, help="seconds to listen")

    p_say = sub.add_parser("say", help="speak text on a Cast device")
    p_say.add_argument("speaker", help="friendly name of the device")
    p_say.add_argument("text", nargs="+", help="text to speak")
    p_say.add_argument("--timeout", type=float, default=None, help="seconds to look for the device")
    p_say.add_argument("--language", default=None, help="TTS language tag, e.g. en or de")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        config = CastSayConfig.from_env()
    except ValueError as e:
        print(json.dumps({"success": False, "error": str(e)}))
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format="[%(name)s] %(message)s",
        stream=sys.stderr,
    )
    timeout = args.timeout if args.timeout is not None else config.discover_timeout

    if args.command == "discover":
        result = asyncio.run(discover_speakers(config, timeout))
    else:
        if args.language:
            config.language = args.language
        result = asyncio.run(say(config, args.speaker, " ".join(args.text), timeout))

    print(json.dumps(result))
    return 0 if result["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
