"""Task orchestration engine: context, tasks, graph, runner, rollback, registry."""

from .context import ExecutionContext, context_value, new_execution_id
from .graph import GraphStatistics, depth_map, graph_statistics, resolve, resolve_tasks
from .predicates import all_of, any_of, negate
from .registry import Command, CommandRegistry, ConfigSchema
from .rollback import RollbackManager, RollbackOutcome
from .runner import (
    CancellationToken,
    ExecutionReport,
    RunState,
    TaskOrchestrator,
    TaskOutcome,
    TaskStatus,
)
from .task import (
    CONTINUE,
    RUN,
    Abort,
    Continue,
    Run,
    Skip,
    SkipTo,
    Task,
    TaskBuilder,
)
from .workflow import run_command

__all__ = [
    # context
    "ExecutionContext",
    "context_value",
    "new_execution_id",
    # tasks
    "Abort",
    "CONTINUE",
    "Continue",
    "RUN",
    "Run",
    "Skip",
    "SkipTo",
    "Task",
    "TaskBuilder",
    "all_of",
    "any_of",
    "negate",
    # graph
    "GraphStatistics",
    "depth_map",
    "graph_statistics",
    "resolve",
    "resolve_tasks",
    # execution
    "CancellationToken",
    "ExecutionReport",
    "RollbackManager",
    "RollbackOutcome",
    "RunState",
    "TaskOrchestrator",
    "TaskOutcome",
    "TaskStatus",
    # commands
    "Command",
    "CommandRegistry",
    "ConfigSchema",
    "run_command",
]
