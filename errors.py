############################################################
#### Description:
# Exceptions raised by the functional encryption scheme.
############################################################


class IPFEError(Exception):
    """Base class of every error raised by the scheme."""


class ParameterError(IPFEError, ValueError):
    """Invalid bit lengths, vector lengths or message sizes."""


class AllocationError(IPFEError, MemoryError):
    """Backing storage for a key or ciphertext vector could not be obtained."""


class NotInvertibleError(IPFEError, ArithmeticError):
    """A modular inverse was requested for a non-invertible element.

    Only a corrupted key or ciphertext can cause it.
    """


class SearchExhausted(IPFEError, LookupError):
    """The discrete-log solver found no exponent below the search bound."""


class EntropyError(IPFEError, RuntimeError):
    """A rejection-sampling loop hit its iteration cap.

    This points at a degraded or broken randomness source.
    """
