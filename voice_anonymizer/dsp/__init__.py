"""
Digital Signal Processing module for the voice anonymizer.
"""

from voice_anonymizer.dsp.graph import ProcessingGraph
from voice_anonymizer.dsp.renderer import RenderRequest, build_render_request, render

__all__ = [
    "ProcessingGraph",
    "RenderRequest",
    "build_render_request",
    "render",
]
