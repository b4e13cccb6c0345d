"""Pipeline modules.

- orchestrator: Batch loop over discovered files
- completion: Which stages an existing artifact already has
- executor: Decode, ColourCorrect and Rectify for one record
- persistence: Artifact writing and reloading
- diagnostics: Structured non-fatal events and per-record outcomes
"""

from lfbatch.pipeline.orchestrator import DecodeOrchestrator
from lfbatch.pipeline.completion import CompletionTracker, CompletionStatus
from lfbatch.pipeline.executor import PipelineExecutor, ExecutionResult
from lfbatch.pipeline.persistence import PersistenceEngine
from lfbatch.pipeline.diagnostics import Diagnostic, DiagnosticKind, RecordOutcome, RecordStatus

__all__ = [
    "DecodeOrchestrator",
    "CompletionTracker",
    "CompletionStatus",
    "PipelineExecutor",
    "ExecutionResult",
    "PersistenceEngine",
    "Diagnostic",
    "DiagnosticKind",
    "RecordOutcome",
    "RecordStatus",
]
