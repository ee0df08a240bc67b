"""Model commands: list the catalog, check the cache, select, purge."""

import typer

from pith_workbench.ai.catalog import get_model
from pith_workbench.context import WorkbenchContext
from pith_workbench.errors import UnknownModelError

from ..main import state
from ..output import print_info, print_json, print_success, print_table
from ..session import execute

app = typer.Typer(help="Manage local language models")


@app.command("list")
def list_models() -> None:
    """List the models the assistant can run."""

    async def operation(context: WorkbenchContext):
        return context.lifecycle.models, context.lifecycle.get_current_model()

    models, current = execute(operation)

    if state.json_output:
        print_json({"models": [m.to_dict() for m in models], "current_model": current})
        return

    print_table([
        {
            "": "*" if model.id == current else "",
            "id": model.id,
            "name": model.name,
            "size": model.size,
            "speed": model.speed,
            "quality": model.quality,
        }
        for model in models
    ])
    print_info("* current selection")


@app.command("cached")
def check_cached(
    model_id: str = typer.Argument(..., help="Model id, e.g. llama3.2:3b"),
) -> None:
    """Check whether a model is already downloaded."""

    async def operation(context: WorkbenchContext):
        if get_model(model_id) is None:
            raise UnknownModelError(f"Unknown model: {model_id}", details={"model": model_id})
        return await context.lifecycle.check_cached(model_id)

    cached = execute(operation)

    if state.json_output:
        print_json({"model_id": model_id, "cached": cached})
    elif cached:
        print_success(f"{model_id} is downloaded")
    else:
        typer.echo(f"{model_id} is not downloaded")


@app.command("use")
def use_model(
    model_id: str = typer.Argument(..., help="Model id, e.g. llama3.2:3b"),
) -> None:
    """Select the model used by `pith ask` and remember the choice."""

    async def operation(context: WorkbenchContext):
        context.chat.switch_model(model_id)
        return context.lifecycle.get_current_model()

    current = execute(operation)

    if state.json_output:
        print_json({"current_model": current})
    else:
        print_success(f"Using {get_model(current).name} ({current})")


@app.command("purge")
def purge_models(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
) -> None:
    """Delete downloaded models from the local runtime."""
    if not force and not state.json_output:
        typer.confirm("Delete all downloaded assistant models?", abort=True)

    async def operation(context: WorkbenchContext):
        return await context.chat.purge()

    report = execute(operation)

    if state.json_output:
        print_json({"count": report.count, "models": report.models})
    elif report.models:
        print_success(f"Purged {report.count} model(s): {', '.join(report.models)}")
    else:
        typer.echo("No cached models found to purge")
