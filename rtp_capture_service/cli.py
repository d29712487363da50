"""Command line entrypoint for the capture service."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from rtp_capture import CaptureError, MediaServerClient, check_recording_files

from .config import build_default_config
from .engine import CaptureSessionManager
from .logging_config import configure_logging
from .services import build_capture_settings, build_stop_strategy
from .utils import coerce_float

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rtp-capture",
        description="Record or re-stream media router producers with FFmpeg.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API with the development server.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5080)
    serve.add_argument("--debug", action="store_true")

    check = subparsers.add_parser(
        "check-files",
        help="Report whether a directory holds audio* and video* files.",
    )
    check.add_argument("directory")

    restream = subparsers.add_parser(
        "restream",
        help="Push video.sdp and audio.sdp from a directory to the streaming endpoint.",
    )
    restream.add_argument("directory")
    restream.add_argument(
        "--stream-name",
        default="stream",
        help="Path appended to CAPTURE_STREAM_BASE_URL (default: %(default)s).",
    )
    return parser.parse_args(argv)


def _serve(args: argparse.Namespace) -> int:
    from .app import create_app

    app = create_app()
    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True, use_reloader=False)
    return 0


def _check_files(args: argparse.Namespace) -> int:
    try:
        files = check_recording_files(args.directory)
    except FileNotFoundError as exc:
        print(json.dumps({"error": str(exc)}), file=sys.stderr)
        return 2
    print(json.dumps(files.to_dict(), indent=2))
    return 0 if files.is_ready else 1


def _restream(args: argparse.Namespace) -> int:
    configure_logging("rtp-capture-restream")
    config = build_default_config()
    settings = build_capture_settings(config)
    client = MediaServerClient(
        config["CAPTURE_MEDIA_ROUTER_URL"],
        timeout=coerce_float(config.get("CAPTURE_MEDIA_ROUTER_TIMEOUT"), 10.0),
    )
    stopper = build_stop_strategy(config)
    manager = CaptureSessionManager(settings, client.router, stop_strategy=stopper)
    try:
        handle = manager.restream(args.directory, stream_name=args.stream_name)
    except FileNotFoundError as exc:
        LOGGER.error("%s", exc)
        return 2
    except CaptureError as exc:
        LOGGER.error("Re-stream not started: %s", exc)
        return 1
    finally:
        client.close()

    try:
        returncode = handle.wait()
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; stopping re-stream")
        returncode = stopper.shutdown(handle).returncode
    return 0 if returncode == 0 else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    handlers = {
        "serve": _serve,
        "check-files": _check_files,
        "restream": _restream,
    }
    return handlers[args.command](args)


__all__ = ["main", "parse_args"]
