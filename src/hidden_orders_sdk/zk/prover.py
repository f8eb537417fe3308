"""Proving backends.

A proving backend turns witness inputs into a Groth16 proof for the
hidden-parameter circuit. Two implementations are provided:

- SnarkjsProvingBackend runs the ``snarkjs`` CLI against local circuit
  artifacts (WASM + zkey)
- HttpProvingBackend posts the inputs to a remote prover service

Both are awaited without an internal timeout. Callers that need one wrap
the call in ``asyncio.wait_for``.
"""

import asyncio
import json
import logging
import os
import shutil
import tempfile
from typing import Dict, List, Optional, Protocol

import httpx

from .commitment import commit
from .proof import encode_proof
from .types import EncodedProof, ProofInputs, ProverOutput, ValidationResult
from ..errors import ConsistencyError, ProvingBackendError, SecretParameterError

logger = logging.getLogger(__name__)


class ProvingBackend(Protocol):
    """Protocol for anything that can prove the hidden-parameter circuit."""

    async def prove(self, inputs: ProofInputs) -> ProverOutput:
        """Generate a proof for the given witness inputs.

        Args:
            inputs: Full witness, including the secret parameters

        Returns:
            Proof and public signals as emitted by the prover
        """
        ...


def validate_proof_inputs(inputs: ProofInputs) -> ValidationResult:
    """Check that the circuit constraints hold before spending time proving."""
    errors: List[str] = []

    expected = commit(inputs.secret_price, inputs.secret_amount, inputs.nonce)
    if inputs.commit != expected:
        errors.append(f"Commitment mismatch: expected {expected}, got {inputs.commit}")

    if inputs.offered_price < inputs.secret_price:
        errors.append(
            f"Price constraint violated: {inputs.offered_price} < {inputs.secret_price}"
        )

    if inputs.offered_amount < inputs.secret_amount:
        errors.append(
            f"Amount constraint violated: {inputs.offered_amount} < {inputs.secret_amount}"
        )

    return ValidationResult.from_lists(errors)


class SnarkjsProvingBackend:
    """Prove with the snarkjs CLI.

    Example:
        >>> backend = SnarkjsProvingBackend("circuit.wasm", "circuit_final.zkey")
        >>> output = await backend.prove(inputs)
    """

    def __init__(
        self,
        wasm_path: str,
        zkey_path: str,
        snarkjs_command: str = "snarkjs",
    ):
        self.wasm_path = wasm_path
        self.zkey_path = zkey_path
        self.snarkjs_command = snarkjs_command

    def _resolve_command(self) -> str:
        command = shutil.which(self.snarkjs_command)
        if command is None:
            raise ProvingBackendError(
                f"snarkjs executable not found: {self.snarkjs_command}"
            )
        for label, path in (("WASM", self.wasm_path), ("zkey", self.zkey_path)):
            if not os.path.isfile(path):
                raise ProvingBackendError(f"{label} artifact not found: {path}")
        return command

    async def prove(self, inputs: ProofInputs) -> ProverOutput:
        command = self._resolve_command()

        with tempfile.TemporaryDirectory(prefix="hidden-orders-") as workdir:
            input_path = os.path.join(workdir, "input.json")
            proof_path = os.path.join(workdir, "proof.json")
            public_path = os.path.join(workdir, "public.json")

            with open(input_path, "w") as f:
                json.dump(inputs.to_circuit_json(), f)

            logger.debug("Running snarkjs groth16 fullprove in %s", workdir)
            process = await asyncio.create_subprocess_exec(
                command,
                "groth16",
                "fullprove",
                input_path,
                self.wasm_path,
                self.zkey_path,
                proof_path,
                public_path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await process.communicate()

            if process.returncode != 0:
                raise ProvingBackendError(
                    f"snarkjs exited with code {process.returncode}: "
                    f"{stderr.decode(errors='replace').strip()}"
                )

            try:
                with open(proof_path) as f:
                    proof = json.load(f)
                with open(public_path) as f:
                    public_signals = json.load(f)
            except (OSError, ValueError) as e:
                raise ProvingBackendError("snarkjs produced no readable proof", cause=e) from e

        return ProverOutput.from_json(proof, public_signals)

    async def verify(self, output: ProverOutput, vkey_path: str) -> bool:
        """Verify a proof with ``snarkjs groth16 verify``.

        Args:
            output: Proof and public signals to check
            vkey_path: Verification key exported from the zkey

        Returns:
            True if snarkjs accepts the proof
        """
        command = shutil.which(self.snarkjs_command)
        if command is None:
            raise ProvingBackendError(
                f"snarkjs executable not found: {self.snarkjs_command}"
            )

        with tempfile.TemporaryDirectory(prefix="hidden-orders-") as workdir:
            proof_path = os.path.join(workdir, "proof.json")
            public_path = os.path.join(workdir, "public.json")
            with open(proof_path, "w") as f:
                json.dump(output.proof.to_json(), f)
            with open(public_path, "w") as f:
                json.dump(list(output.public_signals), f)

            process = await asyncio.create_subprocess_exec(
                command,
                "groth16",
                "verify",
                vkey_path,
                public_path,
                proof_path,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, _ = await process.communicate()

        return process.returncode == 0 and b"OK" in stdout


class HttpProvingBackend:
    """Prove through a remote prover service.

    The service receives ``{"input": {...}}`` with the circuit inputs and
    answers ``{"proof": {...}, "publicSignals": [...]}``. The witness contains
    the secret parameters, so only point this at a prover you trust.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self._http_client = http_client or httpx.AsyncClient()

    async def prove(self, inputs: ProofInputs) -> ProverOutput:
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = await self._http_client.post(
                self.endpoint,
                headers=headers,
                json={"input": inputs.to_circuit_json()},
            )
        except httpx.HTTPError as e:
            raise ProvingBackendError(f"Prover request failed: {e}", cause=e) from e

        if not response.is_success:
            raise ProvingBackendError(
                f"Prover request failed: {response.status_code} {response.text}"
            )

        try:
            body = response.json()
            return ProverOutput.from_json(body["proof"], body["publicSignals"])
        except (ValueError, KeyError, TypeError) as e:
            raise ProvingBackendError("Prover returned a malformed response", cause=e) from e

    async def aclose(self) -> None:
        await self._http_client.aclose()


def check_public_signals(encoded: EncodedProof, inputs: ProofInputs) -> None:
    """Check that a proof accepts the given inputs and was made for them.

    Applies to backend output and to pre-generated proofs alike.

    Raises:
        ProvingBackendError: If the circuit reported valid=0
        ConsistencyError: If commit, nonce or offered terms differ from the inputs
    """
    valid, signal_commit, signal_nonce, offered_price, offered_amount = encoded.public_signals
    if valid != 1:
        raise ProvingBackendError("Circuit reported valid=0 for the given inputs")
    if signal_commit != inputs.commit:
        raise ConsistencyError("Proof commitment doesn't match the secret parameters")
    expected = (inputs.nonce, inputs.offered_price, inputs.offered_amount)
    if (signal_nonce, offered_price, offered_amount) != expected:
        raise ConsistencyError("Public signals do not match the proof inputs")


async def generate_proof(
    backend: ProvingBackend,
    inputs: ProofInputs,
    check_on_curve: bool = False,
) -> EncodedProof:
    """Validate inputs, run the backend and encode the result for the verifier.

    Args:
        backend: Proving backend to use
        inputs: Full witness inputs
        check_on_curve: Also validate curve membership of the proof points

    Returns:
        EncodedProof ready to embed in a predicate

    Raises:
        SecretParameterError: If the inputs violate the circuit constraints
        ProvingBackendError: If the backend fails or reports an invalid proof
        ProofFormatError: If the backend output is malformed
        ConsistencyError: If the public signals do not match the inputs
    """
    validation = validate_proof_inputs(inputs)
    if not validation.is_valid:
        raise SecretParameterError(
            f"Input validation failed: {', '.join(validation.errors)}"
        )

    # secrets stay out of the log
    logger.info(
        "Generating proof for commit=%s nonce=%s offeredPrice=%s offeredAmount=%s",
        inputs.commit,
        inputs.nonce,
        inputs.offered_price,
        inputs.offered_amount,
    )

    try:
        output = await backend.prove(inputs)
    except ProvingBackendError:
        raise
    except Exception as e:
        raise ProvingBackendError(f"Failed to generate ZK proof: {e}", cause=e) from e

    encoded = encode_proof(output.proof, output.public_signals, check_on_curve=check_on_curve)
    check_public_signals(encoded, inputs)

    logger.debug("Proof generated (%d bytes)", len(encoded.encoded_data))
    return encoded
