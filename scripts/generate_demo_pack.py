from __future__ import annotations

import argparse
import json
import math
import sys
import tempfile
import wave
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from sdeck_tools.catalog import load_catalog  # noqa: E402
from sdeck_tools.session import PackSession  # noqa: E402

SAMPLE_RATE = 22050


def _clamp(v: float) -> float:
    return max(-1.0, min(1.0, v))


def write_wav(path: Path, samples: list[float], sample_rate: int = SAMPLE_RATE) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        pcm = bytearray()
        for s in samples:
            pcm += int(_clamp(s) * 32767).to_bytes(2, byteorder="little", signed=True)
        wf.writeframes(pcm)


def blip(freq_start: float, freq_end: float, duration_s: float = 0.09, amp: float = 0.5) -> list[float]:
    """Short decaying glide, close enough to a UI click for previews."""
    n = int(duration_s * SAMPLE_RATE)
    phase = 0.0
    out: list[float] = []
    for i in range(n):
        t = i / max(1, n - 1)
        freq = freq_start + (freq_end - freq_start) * t
        phase += (2.0 * math.pi * freq) / SAMPLE_RATE
        out.append(amp * math.exp(-5.0 * t) * math.sin(phase))
    return out


def main() -> int:
    ap = argparse.ArgumentParser(description="Generate a demo SFX pack covering every catalog slot.")
    ap.add_argument("--out", default="demo_pack.zip", help="Destination zip")
    ap.add_argument("--catalog", default=None, help="Optional slot catalog JSON")
    ap.add_argument("--name", default="SDeckTools Demo Pack")
    args = ap.parse_args()

    catalog = load_catalog(Path(args.catalog) if args.catalog else None)
    out = Path(args.out).expanduser().resolve()

    with tempfile.TemporaryDirectory(prefix="sdeck_demo_") as tmp, PackSession(catalog=catalog) as session:
        for index, slot in enumerate(catalog):
            base = 440.0 + 60.0 * index
            wav_path = Path(tmp) / f"demo_{index:02d}.wav"
            write_wav(wav_path, blip(base, base * (1.5 if index % 2 else 0.75)))
            session.add_files(slot.slot_id, [wav_path])
        session.update_metadata("name", args.name)
        session.update_metadata("description", "Synthetic blips for every slot")
        written = session.export_archive(out)
        files = session.model.entry_count()

    print(json.dumps({"output": str(written), "slots": len(catalog), "files": files}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
