"""CLI entry point for the recon3d pipeline.

Usage:
    recon3d run                         # Run full pipeline
    recon3d run-step s01_depth_estimation -i '{"frames_dir": "data/raw/frames"}'
    recon3d info                        # Show pipeline info
    recon3d synth data/raw/frames       # Write a synthetic stereo sequence
    recon3d reconstruct data/raw/frames # In-memory session over saved frames
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from recon3d.core.logging import setup_logging

app = typer.Typer(name="recon3d", help="Frame stream to 3D mesh reconstruction")
console = Console()

DEFAULT_CONFIG = Path("configs/pipeline.yaml")


@app.command()
def run(config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path")) -> None:
    """Run the full pipeline."""
    setup_logging()
    from recon3d.core.pipeline_runner import run_pipeline

    run_pipeline(config)


@app.command()
def run_step(
    step_name: str = typer.Argument(..., help="Step name (e.g. depth_estimation)"),
    config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path"),
    input_json: str = typer.Option(None, "--input", "-i", help="Input as JSON string"),
) -> None:
    """Run a single pipeline step."""
    import json

    setup_logging()
    from recon3d.core.pipeline_runner import import_step_class, load_pipeline_config, load_step_config

    pipeline_cfg = load_pipeline_config(config)
    entry = next((s for s in pipeline_cfg.steps if s.name == step_name), None)
    if entry is None:
        console.print(f"[red]Step '{step_name}' not found in pipeline config[/red]")
        raise typer.Exit(1)

    step_cls = import_step_class(entry.module)
    step_config = load_step_config(Path(entry.config_file), step_cls.config_type)
    step_instance = step_cls(config=step_config, data_root=pipeline_cfg.data_root)

    input_data = dict(entry.inputs)
    if input_json:
        input_data.update(json.loads(input_json))
    else:
        schema = step_cls.input_type.model_json_schema()
        missing = [f for f in schema.get("required", []) if f not in input_data]
        if missing:
            console.print(f"[yellow]Step '{step_name}' requires input fields: {missing}[/yellow]")
            console.print("[yellow]Use --input/-i with JSON string, e.g.:[/yellow]")
            console.print(f'  recon3d run-step {step_name} -i \'{{"field": "value"}}\'')
            raise typer.Exit(1)

    console.print(f"[green]Running step: {step_name}[/green]")
    step_input = step_cls.input_type(**input_data)
    output = step_instance.execute(step_input)
    console.print(f"[green]Done. Output:[/green] {output.model_dump_json(indent=2)}")


@app.command()
def info(config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path")) -> None:
    """Show pipeline steps and their status."""
    from recon3d.core.pipeline_runner import load_pipeline_config

    pipeline_cfg = load_pipeline_config(config)
    table = Table(title=f"Pipeline: {pipeline_cfg.project_name}")
    table.add_column("#", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Module", style="green")
    table.add_column("Enabled", style="yellow")
    table.add_column("Depends On", style="dim")

    for i, step in enumerate(pipeline_cfg.steps, 1):
        table.add_row(
            str(i),
            step.name,
            step.module,
            "Y" if step.enabled else "N",
            ", ".join(step.depends_on) if step.depends_on else "-",
        )
    console.print(table)


@app.command()
def synth(
    output_dir: Path = typer.Argument(..., help="Directory to write frame_XXXX.npz files"),
    num_frames: int = typer.Option(15, help="Number of frames"),
    depth: float = typer.Option(2.0, help="Plane depth"),
    sensor: bool = typer.Option(False, help="Attach sensor depth instead of a right image"),
) -> None:
    """Write a synthetic textured-plane capture sequence."""
    setup_logging()
    from recon3d.utils.io import save_frame
    from recon3d.utils.synthetic import textured_plane_sequence

    frames = textured_plane_sequence(num_frames=num_frames, depth=depth, stereo=not sensor)
    for i, obs in enumerate(frames):
        save_frame(output_dir / f"frame_{i:04d}.npz", obs)
    console.print(f"[green]Wrote {len(frames)} frames to {output_dir}[/green]")


@app.command()
def reconstruct(
    frames_dir: Path = typer.Argument(..., help="Directory of frame_XXXX.npz files"),
    session_config: Path = typer.Option(None, "--config", "-c", help="Session config YAML"),
    name: str = typer.Option("Reconstruction", help="Mesh name"),
    formats: list[str] = typer.Option(None, "--format", "-f", help="obj, glb or ply"),
    output_dir: Path = typer.Option(None, "--output", "-o", help="Export directory"),
    preview: Path = typer.Option(None, help="Save a PNG rendering of the mesh here"),
) -> None:
    """Reconstruct a mesh from saved frames with an in-memory session."""
    setup_logging()
    from recon3d.core.errors import ReconstructionError
    from recon3d.session import ReconstructionManager, SessionConfig, load_session_config
    from recon3d.utils.io import list_frames, load_frame

    cfg = load_session_config(session_config) if session_config else SessionConfig()
    frame_paths = list_frames(frames_dir)
    if not frame_paths:
        console.print(f"[red]No frame_*.npz files in {frames_dir}[/red]")
        raise typer.Exit(1)

    formats = formats or cfg.export.formats
    with ReconstructionManager(cfg) as manager:
        handle = manager.start_reconstruction(name)
        for path in frame_paths:
            manager.add_frame(handle, load_frame(path))

        try:
            mesh = manager.stop_reconstruction(handle, drain=True).result()
            paths = [
                manager.export_mesh(mesh, fmt, output_dir=output_dir).result() for fmt in formats
            ]
        except ReconstructionError as exc:
            console.print(f"[red]Reconstruction failed: {exc}[/red]")
            raise typer.Exit(1)

        metrics = manager.quality_metrics(handle)

    table = Table(title=f"Reconstruction: {name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    for key, value in metrics.model_dump(mode="json").items():
        table.add_row(key, str(value))
    console.print(table)
    for path in paths:
        console.print(f"[green]Exported:[/green] {path}")

    if preview:
        from recon3d.utils.visualization import plot_mesh

        preview.parent.mkdir(parents=True, exist_ok=True)
        plot_mesh(mesh.vertices, mesh.faces, title=name, save_path=preview)
        console.print(f"[green]Preview:[/green] {preview}")


if __name__ == "__main__":
    app()
