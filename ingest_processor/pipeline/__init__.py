"""Pipeline layer - Procesamiento de mensajes y loop de consumo."""

from .consumer_loop import ConsumerLoop, LoopState, MessageSource
from .processor import PipelineOutcome, ReadingPipeline

__all__ = ["ConsumerLoop", "LoopState", "MessageSource", "PipelineOutcome", "ReadingPipeline"]
