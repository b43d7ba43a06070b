import logging
import threading
import time

import click
from mpmath import mp

from .accumulator import DEFAULT_CHUNK_SIZE, ParallelAccumulator
from .errors import EvaluationFailure, UnknownFormula
from .formats import serialize_result
from .formulas import Formula, parse_formula


def _listen_for_enter(stream, accumulator: ParallelAccumulator):
    for line in stream:
        if not line.strip():
            accumulator.cancel()
            return


def _start_listener(accumulator: ParallelAccumulator) -> threading.Thread:
    t = threading.Thread(
        target=_listen_for_enter,
        args=(click.get_text_stream("stdin"), accumulator),
        name="piweave-cancel",
        daemon=True,
    )
    t.start()
    return t


def _abs_error(approximation: float) -> float:
    mp.dps = 30
    return float(abs(mp.mpf(approximation) - mp.pi))


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def main():
    pass


@main.command()
@click.option("--n", "n", default=100_000_000, show_default=True, type=int)
@click.option("--type", "formula_name", default="leibniz", show_default=True)
@click.option("--workers", default=None, type=int, help="Defaults to the number of CPUs.")
@click.option("--chunk-size", default=DEFAULT_CHUNK_SIZE, show_default=True, type=int)
@click.option("--executor", type=click.Choice(["process", "thread"], case_sensitive=False), default="process", show_default=True)
@click.option("--format", "fmt", type=click.Choice(["txt", "json", "csv", "tsv", "ndjson"], case_sensitive=False), default="txt", show_default=True)
@click.option("--out", "out_path", default="", show_default=True)
@click.option("--listen/--no-listen", default=True, show_default=True)
@click.option("--verbose", "-v", is_flag=True)
def calculate(
    n: int,
    formula_name: str,
    workers: int,
    chunk_size: int,
    executor: str,
    fmt: str,
    out_path: str,
    listen: bool,
    verbose: bool,
):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    if n < 0:
        raise click.ClickException("--n must be >= 0")
    if workers is not None and workers < 1:
        raise click.ClickException("--workers must be >= 1")
    if chunk_size < 1:
        raise click.ClickException("--chunk-size must be >= 1")
    try:
        formula = parse_formula(formula_name)
    except UnknownFormula as exc:
        raise click.ClickException(str(exc))
    with ParallelAccumulator(workers=workers, chunk_size=chunk_size, formula=formula, executor=executor) as acc:
        if listen:
            click.echo("Please wait while the calculation is on going...", err=True)
            click.echo("Press ENTER to stop the calculation and get the current value", err=True)
            _start_listener(acc)
        started = time.perf_counter()
        try:
            result = acc.run(n)
        except EvaluationFailure as exc:
            raise click.ClickException(f"Error while calculating Pi. Reason: {exc.__cause__ or exc}")
        elapsed = time.perf_counter() - started
    meta = {
        "formula": formula.value,
        "n": n,
        "error": _abs_error(result.approximation),
        "elapsed": round(elapsed, 6),
    }
    payload, _ = serialize_result(result, fmt, meta)
    if out_path:
        with open(out_path, "wb") as f:
            f.write(payload)
        click.echo(out_path)
    else:
        click.echo(payload.decode("utf-8"), nl=False)


@main.command()
def formulas():
    for name in Formula.choices():
        click.echo(name)
