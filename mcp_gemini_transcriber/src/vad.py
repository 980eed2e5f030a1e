"""
Voice activity detection over 16 kHz mono PCM.

Each 96 ms frame is scored by webrtcvad on 30 ms PCM16 sub-frames; the share
of voiced sub-frames is the frame's speech probability. A hysteresis state
machine (onset / offset thresholds, minimum speech frames, pre-roll padding,
redemption frames) turns the probabilities into speech spans. Spans are
spliced back together with a short silence gap between them.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import soundfile as sf
import webrtcvad

SAMPLE_RATE = 16000
GAP_SECONDS = 0.1

Span = Tuple[int, int]


@dataclass(frozen=True)
class VadParameters:
    positive_speech_threshold: float = 0.5
    negative_speech_threshold: float = 0.35
    min_speech_frames: int = 3
    pre_speech_pad_frames: int = 5
    redemption_frames: int = 8
    frame_samples: int = 1536  # 96 ms at 16 kHz

    aggressiveness: int = 3  # webrtcvad mode, 0-3
    subframe_ms: int = 30  # webrtcvad accepts 10, 20 or 30


def read_wav(path: str) -> Tuple[np.ndarray, int]:
    samples, sample_rate = sf.read(path, dtype="float32", always_2d=False)
    if samples.ndim > 1:
        samples = samples.mean(axis=1)
    return samples, sample_rate


def write_wav(path: str, samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> None:
    sf.write(path, np.clip(samples, -1.0, 1.0), sample_rate, subtype="PCM_16", format="WAV")


def _make_detector(params: VadParameters) -> webrtcvad.Vad:
    return webrtcvad.Vad(max(0, min(3, params.aggressiveness)))


def _to_pcm16(samples: np.ndarray) -> bytes:
    return (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2").tobytes()


def frame_speech_probabilities(
    samples: np.ndarray,
    params: VadParameters = VadParameters(),
    sample_rate: int = SAMPLE_RATE,
    detector: Optional[webrtcvad.Vad] = None,
) -> np.ndarray:
    """
    Per-frame speech probability in [0, 1]: the share of the frame's sub-frames
    the detector calls speech. The last partial frame is zero-padded; samples
    after the last whole sub-frame of a frame are not scored.
    """
    if sample_rate != SAMPLE_RATE:
        raise ValueError(f"VAD expects {SAMPLE_RATE} Hz audio, got {sample_rate} Hz")
    n = params.frame_samples
    if samples.size == 0:
        return np.zeros(0, dtype=np.float32)
    if detector is None:
        detector = _make_detector(params)

    sub = sample_rate * params.subframe_ms // 1000
    per_frame = n // sub

    n_frames = int(np.ceil(samples.size / n))
    padded = np.zeros(n_frames * n, dtype=np.float32)
    padded[: samples.size] = samples
    frames = padded.reshape(n_frames, n)

    probabilities = np.zeros(n_frames, dtype=np.float32)
    for index, frame in enumerate(frames):
        voiced = sum(
            bool(detector.is_speech(_to_pcm16(frame[j * sub:(j + 1) * sub]), sample_rate))
            for j in range(per_frame)
        )
        probabilities[index] = voiced / per_frame
    return probabilities

def detect_speech_frames(probabilities: np.ndarray, params: VadParameters = VadParameters()) -> List[Span]:
    """Turns frame probabilities into [start, end) frame spans."""
    spans: List[Span] = []
    speaking = False
    start = 0
    speech_frames = 0
    redemption = 0
    previous_end = 0

    for i, p in enumerate(probabilities):
        if p >= params.positive_speech_threshold:
            redemption = 0
            if not speaking:
                speaking = True
                start = max(previous_end, i - params.pre_speech_pad_frames)
                speech_frames = 0
            speech_frames += 1
        elif speaking and p < params.negative_speech_threshold:
            redemption += 1
            if redemption >= params.redemption_frames:
                if speech_frames >= params.min_speech_frames:
                    spans.append((start, i + 1))
                    previous_end = i + 1
                speaking = False
                redemption = 0

    if speaking and speech_frames >= params.min_speech_frames:
        spans.append((start, len(probabilities)))
    return spans


def detect_speech_spans(
    samples: np.ndarray,
    params: VadParameters = VadParameters(),
    sample_rate: int = SAMPLE_RATE,
    detector: Optional[webrtcvad.Vad] = None,
) -> List[Span]:
    """Speech spans as [start, end) sample offsets."""
    probabilities = frame_speech_probabilities(samples, params, sample_rate, detector)
    frame_spans = detect_speech_frames(probabilities, params)
    n = params.frame_samples
    return [(s * n, min(e * n, samples.size)) for s, e in frame_spans if s * n < samples.size]


def splice_spans(
    samples: np.ndarray, spans: List[Span], sample_rate: int = SAMPLE_RATE, gap_seconds: float = GAP_SECONDS
) -> np.ndarray:
    gap = np.zeros(int(sample_rate * gap_seconds), dtype=samples.dtype)
    pieces: List[np.ndarray] = []
    for index, (start, end) in enumerate(spans):
        if index:
            pieces.append(gap)
        pieces.append(samples[start:end])
    if not pieces:
        return np.zeros(0, dtype=samples.dtype)
    return np.concatenate(pieces)


def strip_silence(input_wav: str, output_wav: str, params: VadParameters = VadParameters()) -> int:
    """
    Writes only the speech of ``input_wav`` to ``output_wav``.

    Returns the number of speech spans found. With zero spans nothing is
    written and the caller keeps the original audio.
    """
    samples, sample_rate = read_wav(input_wav)
    spans = detect_speech_spans(samples, params, sample_rate)
    if not spans:
        return 0
    write_wav(output_wav, splice_spans(samples, spans, sample_rate), sample_rate)
    return len(spans)
