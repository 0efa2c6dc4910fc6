import json
import logging
import os
import subprocess
import sys

import click

from poissonlab.analysis.sim_models import ArrivalMethod, TerminalSampler
from poissonlab.config import Settings
from poissonlab.logging_config import setup_logging

logger = logging.getLogger(__name__)

ARRIVAL_METHODS = [m.value for m in ArrivalMethod]
TERMINAL_SAMPLERS = [s.value for s in TerminalSampler]


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool):
    """poissonlab - Compound Poisson Process Explorer"""
    setup_logging(Settings().log_dir)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command()
@click.option("--lam", type=float, default=None, help="Poisson arrival rate (default: config)")
@click.option("--mu", type=float, default=None, help="Jump-size rate (default: config)")
@click.option("--t-max", "t_max", type=float, default=None, help="Time horizon (default: config)")
@click.option("--num-simulations", "-n", type=int, default=None,
              help="Terminal samples for the histogram (default: config)")
@click.option("--seed", type=int, default=None, help="Seed for a reproducible run")
@click.option("--method", type=click.Choice(ARRIVAL_METHODS), default=None,
              help="Arrival-time construction for the sample path")
@click.option("--sampler", type=click.Choice(TERMINAL_SAMPLERS), default=None,
              help="Sampler for the terminal value")
@click.option("--path-png", type=click.Path(dir_okay=False), default=None,
              help="Write the sample-path chart to this file")
@click.option("--hist-png", type=click.Path(dir_okay=False), default=None,
              help="Write the terminal histogram to this file")
@click.option("--path-csv", type=click.Path(dir_okay=False), default=None,
              help="Write the sample-path points (Time, S_t) as CSV")
@click.option("--density", is_flag=True, help="Overlay the exact density on the histogram")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
def simulate(lam, mu, t_max, num_simulations, seed, method, sampler,
             path_png, hist_png, path_csv, density, as_json):
    """Simulate one path and the terminal distribution."""
    from poissonlab.analysis.sim_models import InvalidParameterError
    from poissonlab.analysis.simulation import format_value, run_simulation

    settings = Settings()
    try:
        result = run_simulation(
            lam if lam is not None else settings.default_lam,
            mu if mu is not None else settings.default_mu,
            t_max if t_max is not None else settings.default_t_max,
            num_simulations if num_simulations is not None else settings.default_num_simulations,
            seed=seed if seed is not None else settings.seed,
            arrival_method=method or settings.arrival_method,
            terminal_sampler=sampler or settings.terminal_sampler,
            batch_size=settings.batch_size,
            max_simulations=settings.max_simulations,
            max_expected_arrivals=settings.max_expected_arrivals,
        )
    except InvalidParameterError as e:
        raise click.BadParameter(str(e))

    params = result["params"]
    stats = result["terminal_stats"]
    path = result["path"]

    if path_png or hist_png:
        from poissonlab.visualization.charts import (
            figure_to_png,
            plot_sample_path,
            plot_terminal_histogram,
        )

        if path_png:
            fig = plot_sample_path(path, params["lam"], params["mu"])
            _write_bytes(path_png, figure_to_png(fig, dpi=settings.chart_dpi))
        if hist_png:
            fig = plot_terminal_histogram(
                result["terminal_values"], result["theory"]["mean"], params["t_max"],
                bins=settings.histogram_bins, lam=params["lam"], mu=params["mu"],
                show_density=density,
            )
            _write_bytes(hist_png, figure_to_png(fig, dpi=settings.chart_dpi))

    if path_csv:
        from poissonlab.analysis.sim_models.path import path_to_frame

        _ensure_parent(path_csv)
        path_to_frame(path).to_csv(path_csv, index=False)
        click.echo(f"Wrote {path_csv}")

    if as_json:
        click.echo(json.dumps({
            "run_id": result["run_id"],
            "params": params,
            "arrival_method": result["arrival_method"],
            "terminal_sampler": result["terminal_sampler"],
            "num_arrivals": path["num_arrivals"],
            "path_terminal_value": float(path["values"][-1]),
            "truncated": path["truncated"],
            "theory": result["theory"],
            "terminal_stats": stats,
            "elapsed_ms": result["elapsed_ms"],
        }, indent=2))
        return

    click.echo(
        f"Parameters: lam={params['lam']} mu={params['mu']} "
        f"T={params['t_max']} N={params['num_simulations']}"
    )
    click.echo(f"  E[S(T)] = λT/μ:      {format_value(result['theory']['mean'])}")
    click.echo(f"  Var[S(T)] = 2λT/μ²:  {format_value(result['theory']['variance'])}")
    click.echo(
        f"  Sample path:         {path['num_arrivals']} arrivals, "
        f"S(T) = {format_value(path['values'][-1])}"
    )
    if path["truncated"]:
        click.echo("  Warning: arrival batch exhausted, path truncated", err=True)
    click.echo(
        f"  Empirical S(T):      mean {format_value(stats['mean'])}, "
        f"variance {format_value(stats['variance'])}, "
        f"P(S=0) {stats['zero_fraction']:.4f}"
    )
    click.echo(
        f"  Percentiles:         p5 {format_value(stats['p5'])} | "
        f"p50 {format_value(stats['p50'])} | p95 {format_value(stats['p95'])}"
    )


@cli.command()
@click.option("--lam", type=float, required=True, help="Poisson arrival rate")
@click.option("--mu", type=float, required=True, help="Jump-size rate")
@click.option("--t-max", "t_max", type=float, required=True, help="Time horizon")
def theory(lam, mu, t_max):
    """Print the closed-form mean and variance of S(T)."""
    from poissonlab.analysis.sim_models import InvalidParameterError
    from poissonlab.analysis.simulation import compute_theory, format_value

    try:
        result = compute_theory(lam, mu, t_max)
    except InvalidParameterError as e:
        raise click.BadParameter(str(e))

    click.echo(f"E[S(T)] = {format_value(result['mean'])}")
    click.echo(f"Var[S(T)] = {format_value(result['variance'])}")
    click.echo(f"P(S(T)=0) = {result['zero_prob']:.6g}")


@cli.command()
@click.option("--host", default=None, help="Bind address (default: config)")
@click.option("--port", type=int, default=None, help="Port (default: config)")
def serve(host, port):
    """Start the HTTP API."""
    import uvicorn

    from poissonlab.web.app import create_app

    settings = Settings()
    host = host or settings.api_host
    port = port or settings.api_port
    click.echo(f"Starting poissonlab API on http://{host}:{port}")
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


@cli.command()
@click.option("--port", type=int, default=8501, help="Streamlit server port")
def ui(port):
    """Launch the interactive explorer."""
    script = os.path.join(os.path.dirname(__file__), "ui", "app.py")
    click.echo(f"Launching explorer on http://localhost:{port}")
    raise SystemExit(subprocess.call([
        sys.executable, "-m", "streamlit", "run", script,
        "--server.port", str(port),
    ]))


def _ensure_parent(target: str) -> None:
    directory = os.path.dirname(target)
    if directory:
        os.makedirs(directory, exist_ok=True)


def _write_bytes(target: str, payload: bytes) -> None:
    _ensure_parent(target)
    with open(target, "wb") as fh:
        fh.write(payload)
    click.echo(f"Wrote {target}")


if __name__ == "__main__":
    cli()
