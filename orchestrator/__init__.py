"""Generation run state machine and the content pipeline service."""

from .service import ContentPipeline, build_content_pipeline
from .state_machine import TERMINAL_STATES, GenerationRun, PipelineState

__all__ = [
    "ContentPipeline",
    "GenerationRun",
    "PipelineState",
    "TERMINAL_STATES",
    "build_content_pipeline",
]
