"""Graphics module for the gridscan rendering pipeline."""

from gridscan.graphics.color import parse_hex, srgb_to_linear, encode_srgb
from gridscan.graphics.uniforms import GridScanConfig, LineStyle, UniformSet, build_uniforms
from gridscan.graphics.shader import FragmentOutput, shade
from gridscan.graphics.postprocess import BloomPass, ChromaticAberrationPass, EffectComposer
from gridscan.graphics.renderer import Renderer, RenderTarget

__all__ = [
    # Color
    "parse_hex",
    "srgb_to_linear",
    "encode_srgb",
    # Uniforms
    "GridScanConfig",
    "LineStyle",
    "UniformSet",
    "build_uniforms",
    # Shading
    "FragmentOutput",
    "shade",
    # Post-processing
    "BloomPass",
    "ChromaticAberrationPass",
    "EffectComposer",
    # Renderer
    "Renderer",
    "RenderTarget",
]
