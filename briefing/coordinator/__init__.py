"""
Brief coordination: worker dispatch, correlation and synthesis.
"""

from .coordinator import BriefRun, Coordinator, WorkerOutcome, build_coordinator, generate_brief
from .synthesizer import (
    SynthesisMode,
    SynthesisStrategy,
    AISynthesisStrategy,
    FallbackSynthesisStrategy,
    ResilientSynthesizer,
    build_synthesizer,
    decode_draft,
)

__all__ = [
    "BriefRun",
    "Coordinator",
    "WorkerOutcome",
    "build_coordinator",
    "generate_brief",
    "SynthesisMode",
    "SynthesisStrategy",
    "AISynthesisStrategy",
    "FallbackSynthesisStrategy",
    "ResilientSynthesizer",
    "build_synthesizer",
    "decode_draft",
]
