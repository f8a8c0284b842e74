from .model import Job, WatchJob, PipelineSuccess, PipelineFailure, PipelineResult
from .pipeline import CommandPipeline, run_pipeline
from .watch import WatchRunner, build_watch_job, watch
from .config import GpmConfig, resolve_command
from .errors import GpmError, ConfigurationError, SpawnError, CommandFailed, ReleaseError

__all__ = [
    "Job", "WatchJob", "PipelineSuccess", "PipelineFailure", "PipelineResult",
    "CommandPipeline", "run_pipeline", "WatchRunner", "build_watch_job", "watch",
    "GpmConfig", "resolve_command",
    "GpmError", "ConfigurationError", "SpawnError", "CommandFailed", "ReleaseError",
]
