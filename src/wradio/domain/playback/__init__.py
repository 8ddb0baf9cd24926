"""
Playback domain - elements, the analysis graph, the pipeline and the
controller state machine that drives them.
"""

from .controller import (
    ControllerState,
    NowPlayingDisplay,
    PlaybackController,
    PlaybackSession,
    max_skips_for,
)
from .element import MediaElement
from .graph import AnalyserNode, AudioContext, BiquadFilterNode, GainNode
from .mpv_element import MpvElement, check_mpv_available
from .pipeline import (
    AudioPipeline,
    GraphResult,
    PipelineState,
    PlayOutcome,
    effective_loudness,
    is_graph_eligible,
    tone_frequency,
)
from .stream_element import StreamElement, check_ffmpeg_available
from .stream_resolver import clear_stream_cache, resolve_playable_url, resolve_stream_url

__all__ = [
    # Controller
    "PlaybackController",
    "ControllerState",
    "PlaybackSession",
    "NowPlayingDisplay",
    "max_skips_for",
    # Pipeline
    "AudioPipeline",
    "PipelineState",
    "GraphResult",
    "PlayOutcome",
    "tone_frequency",
    "effective_loudness",
    "is_graph_eligible",
    # Graph
    "AudioContext",
    "BiquadFilterNode",
    "AnalyserNode",
    "GainNode",
    # Elements
    "MediaElement",
    "MpvElement",
    "StreamElement",
    "check_mpv_available",
    "check_ffmpeg_available",
    # Stream resolution
    "resolve_stream_url",
    "resolve_playable_url",
    "clear_stream_cache",
]
