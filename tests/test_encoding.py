from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from voicetake.common.encoding import (
    describe_wav,
    human_readable_bytes,
    is_canonical,
    wav_bytes_per_minute,
)


def test_describe_and_check_canonical(tmp_path: Path) -> None:
    good = tmp_path / "good.wav"
    sf.write(str(good), np.zeros(441, dtype=np.int16), 44_100, subtype="PCM_16")
    info = describe_wav(good)
    assert is_canonical(info)
    assert info.frames == 441
    assert info.duration == pytest.approx(0.01)

    stereo = tmp_path / "stereo.wav"
    sf.write(str(stereo), np.zeros((10, 2), dtype=np.float32), 48_000, subtype="FLOAT")
    assert not is_canonical(describe_wav(stereo))


def test_size_helpers() -> None:
    assert wav_bytes_per_minute() == 44_100 * 2 * 60
    assert human_readable_bytes(wav_bytes_per_minute()) == "5.0 MiB"
    assert human_readable_bytes(2048) == "2 KiB"
    assert human_readable_bytes(12) == "12 B"
