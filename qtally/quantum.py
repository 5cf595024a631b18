import logging
import time
from typing import Callable, List, Optional

from qiskit import ClassicalRegister, QuantumCircuit, QuantumRegister, transpile
from qiskit.providers import JobStatus
from qiskit.qasm3 import loads as qasm3_loads, dumps as qasm3_dumps
from qiskit_aer import AerSimulator

from .config import settings

logger = logging.getLogger("quantum")

MIN_GHZ_QUBITS = 2
MAX_GHZ_QUBITS = 127
LOCAL_BACKENDS = ("aer_simulator", "aer_simulator_statevector", "aer_simulator_stabilizer")
TOKEN_FORMATS = ("hex", "bits")

_FINAL_STATES = (JobStatus.DONE, JobStatus.ERROR, JobStatus.CANCELLED)


def build_bell_circuit() -> QuantumCircuit:
    """|Φ+⟩ = (|00⟩ + |11⟩) / √2, measured into ``meas``."""
    return build_ghz_circuit(2)


def build_ghz_circuit(num_qubits: int) -> QuantumCircuit:
    """(|00...0⟩ + |11...1⟩) / √2 via H on qubit 0 and a CX fan-out."""
    if not MIN_GHZ_QUBITS <= num_qubits <= MAX_GHZ_QUBITS:
        raise ValueError(f"num_qubits must be between {MIN_GHZ_QUBITS} and {MAX_GHZ_QUBITS}")
    qr = QuantumRegister(num_qubits, "q")
    cr = ClassicalRegister(num_qubits, "meas")
    qc = QuantumCircuit(qr, cr)
    qc.h(0)
    for i in range(1, num_qubits):
        qc.cx(0, i)
    qc.measure(qr, cr)
    return qc


def circuit_summary(qc: QuantumCircuit) -> str:
    """One-line gate listing, e.g. ``H(0), CX(0,1), Measure``."""
    parts = []
    measured = False
    for instr in qc.data:
        name = instr.operation.name
        if name == "measure":
            measured = True
            continue
        if name == "barrier":
            continue
        qubits = ",".join(str(qc.find_bit(q).index) for q in instr.qubits)
        parts.append(f"{name.upper()}({qubits})")
    if measured:
        parts.append("Measure")
    return ", ".join(parts)


def circuit_from_qasm3(qasm3_str: str) -> QuantumCircuit:
    try:
        qc = qasm3_loads(qasm3_str)
    except Exception as e:
        raise ValueError(f"QASM3 parse error: {e}")  # surfaces real parser error
    if not qc.num_clbits:
        raise ValueError("QASM3 parse error: circuit has no classical bits to sample")
    return qc


def circuit_to_qasm3(qc: QuantumCircuit) -> str:
    try:
        return qasm3_dumps(qc)
    except Exception as e:
        raise ValueError(f"QASM3 dump error: {e}")


def get_backend(name: str) -> AerSimulator:
    if name not in LOCAL_BACKENDS:
        raise ValueError(f"Backend '{name}' not found (available: {', '.join(LOCAL_BACKENDS)})")
    if name == "aer_simulator":
        return AerSimulator()
    return AerSimulator(method=name.rsplit("_", 1)[1])


def wait_for_job(job, poll_interval: float, timeout: float, on_status: Optional[Callable] = None):
    """Poll ``job.status()`` until it is final; return the final status.

    ``on_status`` is called with every polled status. A job still running at
    the deadline is cancelled before the timeout is raised.
    """
    deadline = time.monotonic() + timeout
    while True:
        status = job.status()
        logger.info("job_status", extra={"job_id": job.job_id(), "status": status.name})
        if on_status is not None:
            on_status(status)
        if status in _FINAL_STATES:
            break
        if time.monotonic() >= deadline:
            try:
                job.cancel()
            except Exception:  # noqa: BLE001
                logger.warning("job_cancel_failed", extra={"job_id": job.job_id()}, exc_info=True)
            raise RuntimeError(f"Execution error: job did not finish within {timeout:g}s")
        time.sleep(poll_interval)

    if status is not JobStatus.DONE:
        raise RuntimeError(f"Execution error: job ended with status {status.name}")
    return status


def sample_circuit(
    qc: QuantumCircuit,
    shots: int,
    backend_name: str = settings.default_backend,
    token_format: str = settings.token_format,
    on_status: Optional[Callable] = None,
) -> List[str]:
    """Run ``qc`` and return one outcome token per shot.

    ``"hex"`` gives the sampler's native ``0x..`` literals, ``"bits"`` gives
    bit-strings of the classical register width.
    """
    if token_format not in TOKEN_FORMATS:
        raise ValueError(f"token_format must be one of {TOKEN_FORMATS}, got {token_format!r}")
    if shots < 1:
        raise ValueError("shots must be positive")
    backend = get_backend(backend_name)
    try:
        tqc = transpile(qc, backend, seed_transpiler=42)
        job = backend.run(tqc, shots=shots, memory=True)
        logger.info("job_submitted", extra={"job_id": job.job_id(), "shots": shots})
        wait_for_job(job, settings.poll_interval_s, settings.job_timeout_s, on_status)
        result = job.result()
        if token_format == "hex":
            memory = result.data(0)["memory"]
        else:
            memory = result.get_memory(0)
        return [str(m) for m in memory]
    except RuntimeError:
        raise
    except Exception as e:
        raise RuntimeError(f"Execution error: {e}")
