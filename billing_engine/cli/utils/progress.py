"""Stage tracking for multi-step CLI commands."""

from typing import List, Optional

import click


class ProgressTracker:
    """Prints ``[n/total] stage`` lines while a command moves through stages.

    Example:
        >>> tracker = ProgressTracker(["Loading ledger", "Running sweep"])
        >>> tracker.get_current_message()
        '[1/2] Loading ledger'
    """

    def __init__(self, stages: List[str]):
        self.stages = stages
        self.total_stages = len(stages)
        self.current_stage = 0

    def advance(self, message: Optional[str] = None):
        """Move to the next stage, echoing ``message`` as the stage result."""
        if message:
            click.echo(f"  {message}")
        self.current_stage += 1

    def get_current_message(self) -> str:
        if self.current_stage < self.total_stages:
            stage_name = self.stages[self.current_stage]
            return f"[{self.current_stage + 1}/{self.total_stages}] {stage_name}"
        return f"[{self.total_stages}/{self.total_stages}] Complete"

    def is_complete(self) -> bool:
        return self.current_stage >= self.total_stages
