"""
Checkpoint ingestion: ordered batch delivery and progress tracking.
"""

from .checkpoint_reader import (
    CheckpointFormatError,
    CheckpointReader,
    FileProgressStore,
    parse_checkpoint,
)

__all__ = ["CheckpointFormatError", "CheckpointReader", "FileProgressStore", "parse_checkpoint"]
