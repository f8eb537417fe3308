"""Error taxonomy for hidden-parameter orders.

Encoding-layer functions raise narrowly typed structural errors. The order
assembler and lifecycle controller fold external failures into validation
results instead of raising them.
"""

from typing import Optional


class HiddenOrderError(Exception):
    """Base class for every error raised by this SDK."""


class StructuralError(HiddenOrderError, ValueError):
    """Malformed hex, wrong element counts or oversized fields. Never retried."""


class ExtensionHashTooLarge(StructuralError):
    """Extension hash does not fit in the 160-bit half of the salt."""


class ProofFormatError(StructuralError):
    """Proof or public signals have the wrong shape."""


class PredicateEncodingError(StructuralError):
    """Predicate calldata could not be composed."""


class ConsistencyError(HiddenOrderError):
    """Salt, extension and commitment disagree. Blocks signing and filling."""


class SaltInconsistency(ConsistencyError):
    """The order salt does not decode to the expected commitment/extension hash."""


class ParameterError(HiddenOrderError, ValueError):
    """Invalid user-supplied parameter."""


class OrderParamError(ParameterError):
    """Invalid order parameters (addresses, amounts)."""


class SecretParameterError(ParameterError):
    """Secret price, amount or nonce outside the circuit's accepted range."""


class ExternalFailure(HiddenOrderError):
    """A collaborator outside this core failed (prover, signer, chain RPC)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ProvingBackendError(ExternalFailure):
    """Proof generation or verification failed in the proving backend."""


class SignerError(ExternalFailure):
    """The signer rejected or failed to produce a signature."""


class ChainQueryError(ExternalFailure):
    """A read-only chain query failed or timed out."""
