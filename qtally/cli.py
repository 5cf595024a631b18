"""
Command line entry point.

``qtally bell``, ``qtally ghz`` and ``qtally run`` build or load the circuit,
sample it and print the measurement report. ``qtally tally`` aggregates
tokens supplied by the user.
"""

from __future__ import annotations

import logging
from typing import Sequence

import click

from .config import settings
from .quantum import (
    MAX_GHZ_QUBITS,
    MIN_GHZ_QUBITS,
    build_bell_circuit,
    build_ghz_circuit,
    circuit_from_qasm3,
    circuit_summary,
    circuit_to_qasm3,
    sample_circuit,
)
from .tally import AggregationResult, EmptyInput, aggregate, format_outcomes, format_report

# QASM3 listing gets unwieldy past this
QASM_PRINT_LIMIT = 10


def echo(msg: str = "", *, err: bool = False) -> None:
    click.echo(msg, err=err)


def print_header(title: str, backend: str, shots: int, num_qubits: int | None = None) -> None:
    echo(title)
    echo("=" * max(len(title), 26))
    echo(f"Backend: {backend}")
    echo(f"Shots: {shots}")
    if num_qubits is not None:
        echo(f"Qubits: {num_qubits}")
    echo()


def print_results(result: AggregationResult, show_outcomes: bool) -> None:
    echo("Measurement Results:")
    echo("-------------------")
    echo(f"Total shots: {result.total_tokens}")
    echo()
    if show_outcomes:
        for line in format_outcomes(result, settings.display_threshold):
            echo(f"  {line}")
        echo()
        echo("Summary:")
    for line in format_report(result):
        echo(f"  {line}")


def _echo_status(status) -> None:
    echo(f"  Status: {status.name}")


def _run(qc, shots: int, backend: str, token_format: str) -> Sequence[str]:
    try:
        tokens = sample_circuit(qc, shots, backend, token_format, on_status=_echo_status)
    except (ValueError, RuntimeError) as e:
        raise click.ClickException(str(e)) from e
    echo()
    echo("Job completed with status: DONE")
    return tokens


@click.group()
@click.option("--log-level", default=settings.log_level, show_default=True, help="Logging level.")
def cli(log_level: str) -> None:
    """Sample Bell/GHZ circuits and tally measurement outcomes."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("bell")
@click.argument("backend", default=settings.default_backend)
@click.argument("shots", type=click.IntRange(min=1), default=settings.num_shots)
@click.option(
    "--token-format",
    type=click.Choice(["hex", "bits"]),
    default=settings.token_format,
    show_default=True,
    help="Per-shot token encoding requested from the sampler.",
)
def bell_command(backend: str, shots: int, token_format: str) -> None:
    """Run a Bell pair and print the 00/01/10/11 breakdown."""
    print_header("Bell State Circuit Example", backend, shots)
    qc = build_bell_circuit()
    echo(f"Circuit: {circuit_summary(qc)}")
    echo()
    echo("Circuit (QASM3):")
    echo(circuit_to_qasm3(qc))

    echo("Job submitted. Waiting for results...")
    tokens = _run(qc, shots, backend, token_format)
    echo()
    print_results(aggregate(tokens, 2), show_outcomes=False)
    echo()
    echo("Expected: ~50% 00 and ~50% 11 (Bell state entanglement)")
    echo("(01 and 10 indicate noise/errors)")


@cli.command("ghz")
@click.argument("num_qubits", type=click.IntRange(MIN_GHZ_QUBITS, MAX_GHZ_QUBITS))
@click.argument("backend", default=settings.default_backend)
@click.argument("shots", type=click.IntRange(min=1), default=settings.num_shots)
@click.option(
    "--token-format",
    type=click.Choice(["hex", "bits"]),
    default=settings.token_format,
    show_default=True,
    help="Per-shot token encoding requested from the sampler.",
)
def ghz_command(num_qubits: int, backend: str, shots: int, token_format: str) -> None:
    """Run an N-qubit GHZ state and summarise all-0s / all-1s / other."""
    print_header(f"{num_qubits}-Qubit GHZ State Example", backend, shots, num_qubits)
    qc = build_ghz_circuit(num_qubits)
    echo(f"Circuit: {circuit_summary(qc)}")
    echo()
    if num_qubits <= QASM_PRINT_LIMIT:
        echo("Circuit (QASM3):")
        echo(circuit_to_qasm3(qc))
    else:
        echo(f"(QASM3 output suppressed for circuits > {QASM_PRINT_LIMIT} qubits)")
        echo()

    echo("Job submitted. Waiting for results...")
    tokens = _run(qc, shots, backend, token_format)
    echo()
    print_results(aggregate(tokens, num_qubits), show_outcomes=True)
    echo()
    echo("Expected: ~50% all-0s and ~50% all-1s")
    echo("(Other results indicate decoherence/noise)")


@cli.command("run")
@click.argument("qasm_file", type=click.File("r"))
@click.argument("backend", default=settings.default_backend)
@click.argument("shots", type=click.IntRange(min=1), default=settings.num_shots)
@click.option(
    "--token-format",
    type=click.Choice(["hex", "bits"]),
    default=settings.token_format,
    show_default=True,
    help="Per-shot token encoding requested from the sampler.",
)
def run_command(qasm_file, backend: str, shots: int, token_format: str) -> None:
    """Sample a circuit read from an OpenQASM 3 file and tally its register."""
    try:
        qc = circuit_from_qasm3(qasm_file.read())
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    print_header("OpenQASM 3 Circuit", backend, shots, qc.num_qubits)
    echo(f"Circuit: {circuit_summary(qc)}")
    echo()

    echo("Job submitted. Waiting for results...")
    tokens = _run(qc, shots, backend, token_format)
    echo()
    print_results(aggregate(tokens, qc.num_clbits), show_outcomes=qc.num_clbits != 2)


@cli.command("tally")
@click.option("--qubits", "-n", type=click.IntRange(min=1), required=True, help="Register width.")
@click.option("--threshold", type=float, default=None, help="Hide buckets at or below this percentage.")
@click.option("--suppress", is_flag=True, help="Hide buckets at or below the configured display threshold.")
@click.option("--strict", is_flag=True, help="Fail when no shot could be classified.")
@click.argument("tokens", nargs=-1)
def tally_command(
    qubits: int, threshold: float | None, suppress: bool, strict: bool, tokens: tuple[str, ...]
) -> None:
    """Aggregate outcome TOKENS (hex literals or bit-strings).

    Tokens are read from stdin, whitespace separated, when none are given.
    """
    if not tokens:
        tokens = tuple(click.get_text_stream("stdin").read().split())
    if threshold is None and suppress:
        threshold = settings.display_threshold
    result = aggregate(tokens, qubits)
    if strict:
        try:
            result.require_shots()
        except EmptyInput as e:
            raise click.ClickException(str(e)) from e
    for line in format_report(result, threshold):
        echo(line)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
