"""
Audio pipeline: raw playback element plus an optional analysis graph.

The graph (element source -> low-pass tone filter -> analyser -> gain ->
destination) is only built for graph-eligible URLs. When it cannot be built
the pipeline falls back to direct playback; that is an expected outcome and
is reported as a ``GraphResult``, not an exception.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

import numpy as np
from loguru import logger

from wradio.domain.catalog.models import Track, is_network_url

from ..exceptions import GraphConstructionFailed, PlaybackBlocked, PlaybackRuntimeFailure
from .element import MediaElement
from .graph import AnalyserNode, AudioContext, BiquadFilterNode, GainNode

FFT_SIZE = 2048
SMOOTHING = 0.86
TONE_Q = 0.7

# Low-pass cutoff range driven by the tone dial (Hz)
TONE_MIN_HZ = 500.0
TONE_MAX_HZ = 12000.0

UrlResolver = Callable[[str], Awaitable[str]]


class PipelineState(Enum):
    UNINITIALIZED = "uninitialized"
    GRAPH_ACTIVE = "graph_active"
    GRAPH_UNAVAILABLE = "graph_unavailable"


@dataclass(frozen=True)
class GraphResult:
    """Outcome of one graph construction attempt."""

    ok: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class PlayOutcome:
    """How a successful ``play`` got its audio out."""

    url: str
    graph_active: bool
    retried_without_graph: bool = False


def tone_frequency(pct: float) -> float:
    """Map the tone dial (0-100) linearly onto the low-pass cutoff in Hz."""
    pct = min(max(float(pct), 0.0), 100.0)
    return TONE_MIN_HZ + pct / 100 * (TONE_MAX_HZ - TONE_MIN_HZ)


def effective_loudness(element_volume: float, gain: float = 1.0) -> float:
    """Loudness reaching the speakers: element volume times graph gain."""
    return element_volume * gain


def is_graph_eligible(url: str) -> bool:
    """True iff ``url`` is an absolute http(s) resource.

    Relative, opaque and non-network URLs never go through the graph, the
    same rule that decides track validity.
    """
    return is_network_url(url)


class AudioPipeline:
    """Owns the playback element and the analysis graph layered over it."""

    def __init__(
        self,
        element: MediaElement,
        context_factory: Callable[[], AudioContext] = AudioContext,
        resolver: Optional[UrlResolver] = None,
        volume: int = 100,
        tone: int = 100,
    ):
        self.element = element
        self._context_factory = context_factory
        self._resolver = resolver
        self.state = PipelineState.UNINITIALIZED
        self.graph_eligible = False
        self.volume = volume
        self.tone = tone

        self._context: Optional[AudioContext] = None
        self._tone_filter: Optional[BiquadFilterNode] = None
        self._analyser: Optional[AnalyserNode] = None
        self._gain: Optional[GainNode] = None

        self.set_volume(volume)

    @staticmethod
    def is_graph_eligible(url: str) -> bool:
        return is_graph_eligible(url)

    @property
    def graph_active(self) -> bool:
        return self.state is PipelineState.GRAPH_ACTIVE

    @property
    def effective_gain(self) -> float:
        """Overall loudness factor applied to the decoded signal."""
        gain = self._gain.gain if self.graph_active and self._gain else 1.0
        return effective_loudness(self.element.volume, gain)

    def ensure_graph(self) -> GraphResult:
        """Build the analysis graph once for the current attempt.

        Returns:
            GraphResult with ok=True if the graph is (now) active
        """
        if self.state is PipelineState.GRAPH_ACTIVE:
            return GraphResult(ok=True)
        if not self.graph_eligible:
            self.state = PipelineState.GRAPH_UNAVAILABLE
            return GraphResult(ok=False, reason="source is not graph-eligible")
        if self.state is PipelineState.GRAPH_UNAVAILABLE:
            return GraphResult(ok=False, reason="graph already failed for this source")

        context = None
        try:
            context = self._context_factory()
            source = context.create_media_element_source(self.element)

            tone_filter = context.create_biquad_filter()
            tone_filter.type = "lowpass"
            tone_filter.q = TONE_Q

            analyser = context.create_analyser(fft_size=FFT_SIZE, smoothing=SMOOTHING)

            gain = context.create_gain()

            source.connect(tone_filter)
            tone_filter.connect(analyser)
            analyser.connect(gain)
            gain.connect(context.destination)
        except (GraphConstructionFailed, OSError, ValueError) as e:
            # Playback still works without reactive analysis
            logger.debug(f"Audio graph unavailable for {self.element.src}: {e}")
            if context is not None:
                context.close()
            self._discard_graph()
            self.state = PipelineState.GRAPH_UNAVAILABLE
            return GraphResult(ok=False, reason=str(e))

        self._context = context
        self._tone_filter = tone_filter
        self._analyser = analyser
        self._gain = gain
        self.state = PipelineState.GRAPH_ACTIVE
        self.set_tone(self.tone)
        self.set_volume(self.volume)
        logger.info("Audio graph active")
        return GraphResult(ok=True)

    async def play(self, track: Track) -> PlayOutcome:
        """Load ``track`` and start playback, falling back to direct playback.

        Raises:
            PlaybackBlocked: If the direct retry is refused
            PlaybackRuntimeFailure: If the direct retry cannot open the source
        """
        url = await self._resolver(track.url) if self._resolver else track.url
        self.graph_eligible = self.is_graph_eligible(url)
        self.element.load(url)

        if not self.graph_eligible:
            self.teardown_graph()
        elif self.state is not PipelineState.GRAPH_ACTIVE:
            self.state = PipelineState.UNINITIALIZED

        try:
            self.ensure_graph()
            if self._context is not None:
                await self._context.resume()
            await self.element.play()
            return PlayOutcome(url=url, graph_active=self.graph_active)
        except (PlaybackBlocked, PlaybackRuntimeFailure) as e:
            if not self.graph_eligible:
                raise
            # The host may allow plain playback where the graph path fails
            logger.info(f"Retrying without audio graph: {url} ({e})")
            self.teardown_graph()
            await self.element.play()
            return PlayOutcome(url=url, graph_active=False, retried_without_graph=True)

    async def resume(self) -> None:
        """Resume the paused element with whatever graph is in place.

        Raises:
            PlaybackBlocked: If the element refuses to resume
        """
        if self._context is not None:
            await self._context.resume()
        await self.element.play()

    def pause(self) -> None:
        self.element.pause()
        if self._context is not None:
            self._context.suspend()

    async def stop(self) -> None:
        self.element.pause()
        self.teardown_graph()
        await self.element.close()

    def teardown_graph(self) -> None:
        """Drop the graph and play directly at the same loudness."""
        if self._context is not None:
            self._context.close()
        self._discard_graph()
        self.state = PipelineState.GRAPH_UNAVAILABLE
        self.set_volume(self.volume)

    def _discard_graph(self) -> None:
        self._context = None
        self._tone_filter = None
        self._analyser = None
        self._gain = None

    def set_volume(self, pct: int) -> None:
        """Set loudness from the volume dial (0-100).

        With a graph the gain node alone sets the level and the element is
        pinned at full volume; without one the element volume does.
        """
        self.volume = min(max(pct, 0), 100)
        level = self.volume / 100
        if self.graph_active and self._gain is not None:
            self._gain.gain = level
            self.element.volume = 1.0
            return
        self.element.volume = level

    def set_tone(self, pct: int) -> None:
        """Set the low-pass cutoff from the tone dial; remembered without a graph."""
        self.tone = min(max(pct, 0), 100)
        if self._tone_filter is None:
            return
        self._tone_filter.frequency = tone_frequency(self.tone)

    def sample_frequency(self) -> Optional[np.ndarray]:
        if not self.graph_active or self._analyser is None:
            return None
        return self._analyser.byte_frequency_data()

    def sample_waveform(self) -> Optional[np.ndarray]:
        if not self.graph_active or self._analyser is None:
            return None
        return self._analyser.byte_time_domain_data()
