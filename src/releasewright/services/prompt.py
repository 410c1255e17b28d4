"""Interactive questions asked during a release."""

from string import Template
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import click

QUESTIONS: Dict[str, Dict[str, str]] = {
    "increment_list": {"type": "list", "message": "Select increment (next version):"},
    "version": {"type": "input", "message": "Please enter a valid version"},
    "commit": {"type": "confirm", "message": "Commit (${commit_message})?"},
    "tag": {"type": "confirm", "message": "Tag (${tag_name})?"},
    "push": {"type": "confirm", "message": "Push?"},
    "release": {"type": "confirm", "message": "Create a release on GitHub (${release_name})?"},
    "publish": {"type": "confirm", "message": "Publish ${npm_name} to npm?"},
    "otp": {"type": "input", "message": "Please enter OTP for npm"},
}


class Prompter:
    """Renders questions with click and hands the answer to a continuation."""

    def __init__(self, logger, confirm=click.confirm, prompt=click.prompt, echo=click.echo):
        self.logger = logger
        self.confirm = confirm
        self.prompt = prompt
        self.echo = echo

    def message(self, context, name: str) -> str:
        return Template(QUESTIONS[name]["message"]).safe_substitute(self._variables(context))

    def ask(
        self,
        enabled: Any,
        context,
        name: str,
        task: Callable,
        choices: Optional[Sequence[Tuple[str, Optional[str]]]] = None,
    ):
        """Ask question ``name`` when ``enabled`` and pass the answer to ``task``.

        Confirmations call ``task()`` only on yes; list and input questions
        always call ``task(answer)``. Returns whatever ``task`` returns.
        """
        if not enabled:
            return None

        question = QUESTIONS[name]
        message = self.message(context, name)
        try:
            if question["type"] == "confirm":
                if not self.confirm(message, default=True):
                    self.logger.info("Skipped: %s", message)
                    return None
                return task()
            if question["type"] == "list":
                return task(self._choose(message, list(choices or [])))
            answer = self.prompt(message, default="", show_default=False)
            return task((answer or "").strip() or None)
        except click.exceptions.Abort as exc:
            raise KeyboardInterrupt() from exc

    def _choose(self, message: str, choices: List[Tuple[str, Optional[str]]]) -> Optional[str]:
        if not choices:
            return None
        self.echo(message)
        for index, (label, _value) in enumerate(choices, start=1):
            self.echo(f"  {index}) {label}")
        selected = self.prompt("Choice", type=click.IntRange(1, len(choices)), default=1)
        return choices[int(selected) - 1][1]

    @staticmethod
    def _variables(context) -> Dict[str, Any]:
        variables = dict(context.template_vars())
        for section, keys in (
            ("git", ("commit_message", "tag_name")),
            ("github", ("release_name",)),
        ):
            for key in keys:
                variables[key] = Template(str(context.get(section, key) or "")).safe_substitute(variables)
        variables["npm_name"] = context.get("npm", "name") or context.name
        return variables
