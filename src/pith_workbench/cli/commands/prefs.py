"""Preference commands."""

import typer

from pith_workbench.config import Settings
from pith_workbench.preferences import DEFAULT_PREFERENCES, PreferencesStore, parse_value

from ..main import state
from ..output import print_dict, print_error, print_json, print_success

app = typer.Typer(help="Show and change preferences")


def _store() -> PreferencesStore:
    return PreferencesStore(Settings().preferences_path)


@app.command("show")
def show() -> None:
    """Show all preferences."""
    values = _store().to_dict()
    if state.json_output:
        print_json(values)
    else:
        print_dict(values, title="Preferences")


@app.command("set")
def set_preference(
    key: str = typer.Argument(..., help=f"One of: {', '.join(DEFAULT_PREFERENCES)}"),
    value: str = typer.Argument(..., help="New value (true/false for toggles)"),
) -> None:
    """Change one preference. To select a model, prefer `pith models use`."""
    try:
        parsed = parse_value(key, value)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    _store().set(key, parsed)

    if state.json_output:
        print_json({key: parsed})
    else:
        print_success(f"{key} = {parsed}")
