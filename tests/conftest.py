from __future__ import annotations

import os
import stat
import sys
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from rtp_capture import CaptureSettings

FAKE_FFMPEG = """#!{python}
import os
import signal
import sys
import time

mode = os.environ.get("FAKE_FFMPEG_MODE", "record")
code = int(os.environ.get("FAKE_FFMPEG_EXIT", "0"))

if mode == "crash":
    sys.stderr.write("Input #0, sdp, from input.sdp:\\n")
    sys.stderr.write("boom: invalid data found when processing input\\n")
    sys.stderr.flush()
    sys.exit(code or 1)


def _stop(signum, frame):
    sys.stderr.write("Exiting normally, received signal %d.\\n" % signum)
    sys.stderr.flush()
    sys.exit(code)


if mode == "stubborn":
    signal.signal(signal.SIGINT, signal.SIG_IGN)
else:
    signal.signal(signal.SIGINT, _stop)

sys.stderr.write("ready " + " ".join(sys.argv[1:]) + "\\n")
sys.stderr.flush()
while True:
    time.sleep(0.05)
"""


def audio_parameters(ssrc: int = 1111) -> Dict[str, Any]:
    return {
        "codecs": [
            {
                "payloadType": 100,
                "mimeType": "audio/opus",
                "clockRate": 48000,
                "channels": 2,
                "parameters": {"minptime": 10, "useinbandfec": 1},
            }
        ],
        "encodings": [{"ssrc": ssrc}],
    }


def video_parameters(ssrc: int = 2222) -> Dict[str, Any]:
    return {
        "codecs": [
            {
                "payloadType": 101,
                "mimeType": "video/VP8",
                "clockRate": 90000,
                "parameters": {},
            }
        ],
        "encodings": [{"ssrc": ssrc}],
    }


class FakeConsumer:
    def __init__(self, consumer_id: str, kind: str, rtp_parameters: Dict[str, Any]) -> None:
        self.id = consumer_id
        self.kind = kind
        self.rtp_parameters = rtp_parameters
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def close(self) -> None:
        self.close_calls += 1


class FakeTransport:
    def __init__(self, router: "FakeRouter", transport_id: str, options: Dict[str, Any]) -> None:
        self.router = router
        self.id = transport_id
        self.options = options
        self.consumers: List[FakeConsumer] = []
        self.consume_options: List[Dict[str, Any]] = []
        self.connected_to: Optional[Tuple[str, int]] = None
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def consume(self, *, producer_id: str, rtp_capabilities, paused: bool = False) -> FakeConsumer:
        self.consume_options.append(
            {"producer_id": producer_id, "rtp_capabilities": rtp_capabilities, "paused": paused}
        )
        if producer_id in self.router.failing_producers or producer_id not in self.router.producers:
            raise RuntimeError(f"cannot consume {producer_id}")
        kind, parameters = self.router.producers[producer_id]
        consumer = FakeConsumer(f"consumer-{producer_id}", kind, parameters)
        self.consumers.append(consumer)
        return consumer

    def connect(self, *, ip: str, port: int) -> None:
        self.connected_to = (ip, port)

    def close(self) -> None:
        self.close_calls += 1


class FakeRouter:
    """In-memory stand-in for a media router room."""

    def __init__(self) -> None:
        self.rtp_capabilities = {"codecs": [{"mimeType": "audio/opus"}, {"mimeType": "video/VP8"}]}
        self.producers: Dict[str, Tuple[str, Dict[str, Any]]] = {}
        self.failing_producers: set[str] = set()
        self.transports: List[FakeTransport] = []
        self.refuse_transports = False

    def add_audio(self, producer_id: str, ssrc: int = 1111) -> None:
        self.producers[producer_id] = ("audio", audio_parameters(ssrc))

    def add_video(self, producer_id: str, ssrc: int = 2222) -> None:
        self.producers[producer_id] = ("video", video_parameters(ssrc))

    def create_plain_transport(self, **options: Any) -> FakeTransport:
        if self.refuse_transports:
            raise RuntimeError("no ports available")
        transport = FakeTransport(self, f"transport-{len(self.transports) + 1}", options)
        self.transports.append(transport)
        return transport

    @property
    def consumers(self) -> List[FakeConsumer]:
        return [consumer for transport in self.transports for consumer in transport.consumers]


@pytest.fixture()
def router() -> FakeRouter:
    fake = FakeRouter()
    fake.add_audio("P1")
    fake.add_audio("A1", ssrc=3333)
    fake.add_video("V1", ssrc=4444)
    return fake


@pytest.fixture()
def fake_ffmpeg(tmp_path: Path) -> Path:
    script = tmp_path / "bin" / "ffmpeg"
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text(FAKE_FFMPEG.replace("{python}", sys.executable), encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture()
def settings(tmp_path: Path, fake_ffmpeg: Path) -> CaptureSettings:
    return CaptureSettings(
        output_dir=tmp_path / "recordings",
        scratch_dir=tmp_path / "temp",
        ffmpeg_binary=str(fake_ffmpeg),
    )


@pytest.fixture()
def wait_for() -> Callable[..., bool]:
    def _wait(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.02)
        return predicate()

    return _wait


@pytest.fixture(autouse=True)
def _clear_fake_ffmpeg_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("FAKE_FFMPEG_MODE", "FAKE_FFMPEG_EXIT"):
        if name in os.environ:
            monkeypatch.delenv(name)
