from rich.console import Console

from releasewright.services.spinner import Spinner


def test_disabled_task_is_not_run():
    spinner = Spinner(Console(quiet=True), interactive=False)

    assert spinner.show(None, lambda: "ran") is None
    assert spinner.show("", lambda: "ran") is None


def test_interactive_runs_task_directly():
    spinner = Spinner(Console(quiet=True), interactive=True)

    assert spinner.show(True, lambda: 42, "Bump version") == 42


def test_non_interactive_reports_completion():
    console = Console(record=True, width=80)
    spinner = Spinner(console, interactive=False)

    assert spinner.show("npm run build", lambda: "built") == "built"
    assert "✔ npm run build" in console.export_text()
