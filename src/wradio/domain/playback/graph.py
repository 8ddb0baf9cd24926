"""
Audio processing graph for analyzable playback.

A small block-based model of a browser audio graph: a playback element's
decoded PCM enters through a source node, flows through connected nodes and
leaves through the context's destination back to the element's output
device. Blocks are ``float32`` arrays shaped ``(frames, channels)``.
"""

import math
from typing import Optional

import numpy as np
from loguru import logger
from scipy.signal import lfilter

from ..exceptions import GraphConstructionFailed

DEFAULT_SAMPLE_RATE = 44100

# Byte scaling range for analyser frequency data (dBFS)
MIN_DECIBELS = -100.0
MAX_DECIBELS = -30.0


class AudioNode:
    """A node that transforms blocks and pushes them to its outputs."""

    def __init__(self, context: "AudioContext"):
        self.context = context
        self._outputs: list["AudioNode"] = []

    def connect(self, node: "AudioNode") -> "AudioNode":
        if node.context is not self.context:
            raise GraphConstructionFailed("Cannot connect nodes from different contexts")
        self._outputs.append(node)
        return node

    def disconnect(self) -> None:
        self._outputs.clear()

    def process(self, block: np.ndarray) -> np.ndarray:
        return block

    def push(self, block: np.ndarray) -> Optional[np.ndarray]:
        """Process ``block`` and forward it; returns what reached the destination."""
        out = self.process(block)
        rendered = None
        for node in self._outputs:
            result = node.push(out)
            if result is not None:
                rendered = result
        return rendered


class AudioDestinationNode(AudioNode):
    def push(self, block: np.ndarray) -> Optional[np.ndarray]:
        return block


class MediaElementSourceNode(AudioNode):
    """Entry point fed by a playback element's decoded output."""

    def __init__(self, context: "AudioContext", element):
        super().__init__(context)
        self.element = element

    def render(self, block: np.ndarray) -> np.ndarray:
        """Called by the element for each decoded block; returns audible output.

        Nothing reaches the speakers unless the chain ends at the
        destination, and a suspended context renders silence.
        """
        if self.context.state != "running":
            return np.zeros_like(block)
        rendered = self.push(block)
        if rendered is None:
            return np.zeros_like(block)
        return rendered


class BiquadFilterNode(AudioNode):
    """Second-order low-pass filter.

    Coefficients follow the Audio EQ Cookbook with Q expressed in dB, the
    way browser biquad filters interpret it. Filter state is kept per
    channel so consecutive blocks join without clicks.
    """

    def __init__(self, context: "AudioContext", frequency: float = 350.0, q: float = 1.0):
        super().__init__(context)
        self.type = "lowpass"
        self._frequency = frequency
        self._q = q
        self._b, self._a = self._coefficients()
        self._zi: Optional[np.ndarray] = None

    @property
    def frequency(self) -> float:
        return self._frequency

    @frequency.setter
    def frequency(self, value: float) -> None:
        nyquist = self.context.sample_rate / 2
        self._frequency = min(max(float(value), 0.0), nyquist)
        self._b, self._a = self._coefficients()

    @property
    def q(self) -> float:
        return self._q

    @q.setter
    def q(self, value: float) -> None:
        self._q = float(value)
        self._b, self._a = self._coefficients()

    def _coefficients(self) -> tuple[np.ndarray, np.ndarray]:
        nyquist = self.context.sample_rate / 2
        cutoff = min(self._frequency, nyquist) / nyquist
        if cutoff >= 1.0:
            return np.array([1.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0])
        if cutoff <= 0.0:
            return np.array([0.0, 0.0, 0.0]), np.array([1.0, 0.0, 0.0])

        w0 = math.pi * cutoff
        alpha = math.sin(w0) / (2 * 10 ** (self._q / 20))
        cos_w0 = math.cos(w0)
        b = np.array([(1 - cos_w0) / 2, 1 - cos_w0, (1 - cos_w0) / 2])
        a = np.array([1 + alpha, -2 * cos_w0, 1 - alpha])
        return b / a[0], a / a[0]

    def process(self, block: np.ndarray) -> np.ndarray:
        channels = block.shape[1]
        if self._zi is None or self._zi.shape[1] != channels:
            self._zi = np.zeros((2, channels))
        out, self._zi = lfilter(self._b, self._a, block, axis=0, zi=self._zi)
        return out.astype(np.float32)


class AnalyserNode(AudioNode):
    """Pass-through node that keeps spectrum and waveform snapshots."""

    def __init__(self, context: "AudioContext", fft_size: int = 2048, smoothing: float = 0.8):
        super().__init__(context)
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise GraphConstructionFailed(f"fft_size must be a power of two >= 32, got {fft_size}")
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_decibels = MIN_DECIBELS
        self.max_decibels = MAX_DECIBELS
        self._buffer = np.zeros(fft_size, dtype=np.float32)
        self._window = np.blackman(fft_size).astype(np.float32)
        self._smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def process(self, block: np.ndarray) -> np.ndarray:
        mono = block.mean(axis=1) if block.ndim == 2 else block
        if len(mono) == 0:
            return block
        if len(mono) >= self.fft_size:
            self._buffer[:] = mono[-self.fft_size :]
        else:
            self._buffer = np.roll(self._buffer, -len(mono))
            self._buffer[-len(mono) :] = mono
        return block

    def byte_time_domain_data(self) -> np.ndarray:
        """Current waveform as unsigned bytes centred on 128."""
        scaled = 128.0 * (1.0 + self._buffer)
        return np.clip(scaled, 0, 255).astype(np.uint8)

    def byte_frequency_data(self) -> np.ndarray:
        """Smoothed magnitude spectrum scaled to bytes between the dB bounds."""
        spectrum = np.fft.rfft(self._buffer * self._window)[: self.frequency_bin_count]
        magnitude = np.abs(spectrum) / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1 - self.smoothing) * magnitude
        with np.errstate(divide="ignore"):
            decibels = 20 * np.log10(self._smoothed)
        span = self.max_decibels - self.min_decibels
        scaled = np.floor(255.0 / span * (decibels - self.min_decibels))
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)


class GainNode(AudioNode):
    def __init__(self, context: "AudioContext", gain: float = 1.0):
        super().__init__(context)
        self.gain = gain

    def process(self, block: np.ndarray) -> np.ndarray:
        return (block * self.gain).astype(np.float32)


class AudioContext:
    """Owns the nodes of one processing graph."""

    def __init__(self, sample_rate: int = DEFAULT_SAMPLE_RATE):
        self.sample_rate = sample_rate
        self.state = "running"
        self.destination = AudioDestinationNode(self)
        self._sources: list[MediaElementSourceNode] = []

    def create_media_element_source(self, element) -> MediaElementSourceNode:
        """Route ``element``'s decoded output through this graph.

        Raises:
            GraphConstructionFailed: If the element cannot expose decoded audio
        """
        if self.state == "closed":
            raise GraphConstructionFailed("Audio context is closed")
        source = MediaElementSourceNode(self, element)
        element.capture_output(source.render, self.sample_rate)
        self._sources.append(source)
        return source

    def create_biquad_filter(self) -> BiquadFilterNode:
        return BiquadFilterNode(self)

    def create_analyser(self, fft_size: int = 2048, smoothing: float = 0.8) -> AnalyserNode:
        return AnalyserNode(self, fft_size=fft_size, smoothing=smoothing)

    def create_gain(self) -> GainNode:
        return GainNode(self)

    async def resume(self) -> None:
        if self.state == "suspended":
            self.state = "running"
            logger.debug("Audio context resumed")

    def suspend(self) -> None:
        if self.state == "running":
            self.state = "suspended"

    def close(self) -> None:
        """Release every element routed through this context."""
        for source in self._sources:
            source.element.release_output()
            source.disconnect()
        self._sources.clear()
        self.state = "closed"
