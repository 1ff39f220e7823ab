"""CLI entry point for the framestab pipeline.

Usage:
    framestab run                            # Run full pipeline from configs/pipeline.yaml
    framestab run-step extract_frames -i '{"video_path": "clip.mp4"}'
    framestab info                           # Show pipeline info
    framestab schema stabilize --kind config # JSON schema of a step model
    framestab stabilize clip.mp4 --reference 10 --strategy keypoint
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from framestab.core.errors import FramestabError
from framestab.core.logging import setup_logging

app = typer.Typer(name="framestab", help="Reference-frame video stabilization")
console = Console()

DEFAULT_CONFIG = Path("configs/pipeline.yaml")


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(str(exc))}")
    raise typer.Exit(1)


@app.command()
def run(
    config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Run the full pipeline."""
    setup_logging(log_level)
    from framestab.core.pipeline_runner import run_pipeline

    try:
        results = run_pipeline(config)
    except (FramestabError, ValueError) as exc:
        _fail(exc)
    for name, output in results.items():
        console.print(f"[green]{name}:[/green] {output.model_dump_json(indent=2, exclude={'meta'})}")


def _find_entry(pipeline_cfg, step_name: str):
    entry = next((s for s in pipeline_cfg.steps if s.name == step_name), None)
    if entry is None:
        console.print(f"[red]Step '{step_name}' not found in pipeline config[/red]")
        raise typer.Exit(1)
    return entry


@app.command()
def run_step(
    step_name: str = typer.Argument(..., help="Step name (e.g. extract_frames)"),
    config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path"),
    input_json: str = typer.Option(None, "--input", "-i", help="Input as JSON string"),
) -> None:
    """Run a single pipeline step."""
    setup_logging()
    from framestab.core.pipeline_runner import create_step, load_pipeline_config

    pipeline_cfg = load_pipeline_config(config)
    entry = _find_entry(pipeline_cfg, step_name)
    step = create_step(entry, pipeline_cfg.data_root)

    input_data = dict(entry.inputs)
    if input_json:
        input_data.update(json.loads(input_json))
    required = step.input_type.model_json_schema().get("required", [])
    missing = [field for field in required if field not in input_data]
    if missing:
        console.print(f"[yellow]Step '{step_name}' requires input fields: {missing}[/yellow]")
        console.print("[yellow]Use --input/-i with JSON string, e.g.:[/yellow]")
        console.print(f'  framestab run-step {step_name} -i \'{{"video_path": "clip.mp4"}}\'')
        raise typer.Exit(1)

    console.print(f"[green]Running step: {step_name}[/green]")
    try:
        output = step.execute(step.input_type(**input_data))
    except (FramestabError, ValueError) as exc:
        _fail(exc)
    console.print(f"[green]Done. Output:[/green] {output.model_dump_json(indent=2)}")


@app.command()
def schema(
    step_name: str = typer.Argument(..., help="Step name (e.g. stabilize)"),
    kind: str = typer.Option("input", "--kind", "-k", help="config | input | output"),
    config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path"),
) -> None:
    """Print the JSON schema of a step's config, input or output model."""
    from framestab.core.pipeline_runner import import_step_class, load_pipeline_config

    entry = _find_entry(load_pipeline_config(config), step_name)
    schemas = import_step_class(entry.module).schemas()
    if kind not in schemas:
        _fail(ValueError(f"Unknown schema kind '{kind}', expected one of {sorted(schemas)}"))
    console.print_json(data=schemas[kind])


@app.command()
def info(config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path")) -> None:
    """Show pipeline steps, their wiring and whether their config files exist."""
    from framestab.core.pipeline_runner import load_pipeline_config

    pipeline_cfg = load_pipeline_config(config)
    table = Table(title=f"Pipeline: {pipeline_cfg.project_name} (data root: {pipeline_cfg.data_root})")
    for column, style in [("Step", "cyan"), ("Module", "green"), ("Config", "dim"), ("Inputs from", "dim")]:
        table.add_column(column, style=style)

    for step in pipeline_cfg.steps:
        sources = list(step.depends_on) + [f"{k}=" for k in step.inputs]
        table.add_row(
            step.name if step.enabled else f"[strike]{step.name}[/strike] (disabled)",
            step.module,
            step.config_file if Path(step.config_file).exists() else f"{step.config_file} (defaults)",
            ", ".join(sources) or "-",
        )
    console.print(table)


@app.command()
def stabilize(
    video: Path = typer.Argument(..., help="Input video file"),
    output_dir: Path = typer.Option(Path("output"), "--output-dir", "-o", help="Output folder"),
    fps: Optional[float] = typer.Option(None, "--fps", help="Output frame rate (default: source rate)"),
    reference: int = typer.Option(1, "--reference", "-r", help="1-based reference frame index"),
    strategy: str = typer.Option("gradient", "--strategy", "-s", help="gradient | keypoint"),
    container: str = typer.Option("mp4", "--container", help="mp4 | avi"),
    detector: str = typer.Option("ORB", "--detector", help="Keypoint detector: ORB | SIFT | SURF | AKAZE"),
    input_folder: Optional[Path] = typer.Option(None, "--input-folder", help="Folder naming the output video"),
    data_root: Path = typer.Option(Path("."), "--data-root", help="Root holding the Extracted_Frames cache"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Worker threads (default: CPU count)"),
    refresh_cache: bool = typer.Option(False, "--refresh-cache", help="Re-decode even if frames are cached"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Stabilize one video, decoding it into the frame cache unless already cached."""
    setup_logging(log_level)
    from pydantic import ValidationError

    from framestab.steps.s01_extract_frames.config import ExtractFramesConfig
    from framestab.steps.s02_stabilize.config import StabilizeConfig
    from framestab.steps.s02_stabilize.contracts import StabilizeInput
    from framestab.steps.s02_stabilize.step import StabilizeStep

    try:
        stab_cfg = StabilizeConfig(
            strategy=strategy,
            reference_index=reference,
            frame_rate=fps,
            output_dir=output_dir.resolve(),
            container_format=container,
            workers=workers,
            detector=detector.upper(),
            extract=ExtractFramesConfig(workers=workers, refresh=refresh_cache),
        )
    except ValidationError as exc:
        _fail(exc)

    # A single step: frames decoded on a cache miss are stabilized straight
    # from memory instead of being read back from the cache.
    try:
        result = StabilizeStep(config=stab_cfg, data_root=data_root).execute(
            StabilizeInput(video_path=video, input_folder=input_folder)
        )
    except (FramestabError, ValueError) as exc:
        _fail(exc)

    table = Table(title=f"Stabilized: {video.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Frames", str(result.frame_count))
    table.add_row("Cache", "hit" if result.cache_hit else "decoded")
    table.add_row("Reference", str(result.reference_index))
    table.add_row("Strategy", result.strategy)
    table.add_row("Frame rate", f"{result.frame_rate:.2f}")
    table.add_row("Aligned", str(result.aligned_frames))
    table.add_row("Unaligned", ", ".join(map(str, result.fallback_frames)) or "-")
    table.add_row("Output", str(result.output_path))
    console.print(table)


if __name__ == "__main__":
    app()
