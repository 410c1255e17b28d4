"""Progress indicator around pipeline tasks."""

from typing import Any, Callable, Optional

from rich.console import Console
from rich.markup import escape


class Spinner:
    """Wraps tasks in a rich status spinner unless output must stay synchronous."""

    def __init__(self, console: Console, interactive: bool, verbose: bool = False, dry_run: bool = False):
        self.console = console
        self.interactive = interactive
        self.verbose = verbose
        self.dry_run = dry_run

    def show(self, enabled: Any, task: Callable[[], Any], label: Optional[str] = None) -> Any:
        """Run ``task`` when ``enabled`` is truthy; ``label`` defaults to ``enabled`` (hook commands)."""
        if not enabled:
            return None

        text = escape(label if label is not None else str(enabled))
        if self.interactive or self.verbose or self.dry_run:
            return task()

        with self.console.status(text):
            result = task()
        self.console.print(f"[green]✔[/green] {text}")
        return result
