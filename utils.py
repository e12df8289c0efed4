############################################################
#### Description:
# Utility functions: integer encoding, secret scalars, inner product,
# baby-step giant-step discrete log, debugging utils.
############################################################

from typing import Optional, Any, Sequence
from math import isqrt
import logging
import random

from libnum import invmod

from errors import ParameterError, NotInvertibleError

logger = logging.getLogger(__name__)

# Set debug to True in the Settings object (settings.init(debug=True)) to get
# a detailed debug output including intermediate values during key
# generation, encryption, key derivation and decryption. This is implemented
# via calls to the debug_print_vars(config.debug) function.
#
# If you want to print values on an individual basis, use
# the pretty() function, e.g., logger.debug(pretty(foo)).

def bytes_from_int(x: int) -> bytes:
    return x.to_bytes(max(1, (x.bit_length() + 7) // 8), byteorder="big")

def int_from_bytes(b: bytes) -> int:
    return int.from_bytes(b, byteorder="big")

def mod_inverse(a: int, modulus: int) -> int:
    try:
        return invmod(a, modulus)
    except ValueError as e:
        raise NotInvertibleError('{} has no inverse modulo the group prime'.format(a)) from e


class SecretScalar(object):
    """A secret integer held in a mutable buffer that can be overwritten.

    wipe() zeroes the buffer in place; using the scalar afterwards raises
    ValueError. Used as a context manager the scalar is wiped on exit, on
    error paths too. Zeroing is best effort: temporary ints created while
    computing with .value are not under our control.
    """

    def __init__(self, value: int):
        self._buf = None
        if value < 0:
            raise ParameterError('SecretScalar: value must be non-negative')
        self._buf = bytearray(bytes_from_int(value))

    @property
    def value(self) -> int:
        if self._buf is None:
            raise ValueError('SecretScalar: the secret has been wiped')
        return int_from_bytes(self._buf)

    @property
    def wiped(self) -> bool:
        return self._buf is None

    def wipe(self) -> None:
        if self._buf is not None:
            self._buf[:] = bytes(len(self._buf))
            self._buf = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.wipe()
        return False

    def __del__(self):
        self.wipe()

    def __repr__(self):
        return 'SecretScalar(<wiped>)' if self._buf is None else 'SecretScalar(<redacted>)'


def wipe_all(secrets: Sequence[SecretScalar]) -> None:
    for s in secrets:
        s.wipe()

def check_vector(name: str, vec: Sequence[int], length: int, bits: int) -> list:
    """Return vec as a list after checking its length and entry sizes."""
    if len(vec) != length:
        raise ParameterError('{} must be a vector of length: {}, got: {}'.format(name, length, len(vec)))
    out = []
    for i, v in enumerate(vec):
        v = int(v)
        if v < 0 or v.bit_length() > bits:
            raise ParameterError('{}_{} must be an integer in the range 0..2^{}-1'.format(name, i, bits))
        out.append(v)
    return out

def compute_inner_product(x1: Sequence[int], x2: Sequence[int], modulus: int) -> int:
    if len(x1) != len(x2):
        raise ParameterError('compute_inner_product: vectors should be of same length. Lengths provided: vector1: {}, vector2: {}'.format(len(x1), len(x2)))
    ret = 0
    for i in range(len(x1)):
        ret = (ret + (x1[i] * x2[i]) % modulus) % modulus
    return ret

def random_vector(length: int, bits: int, rng: random.Random) -> list:
    # each entry is uniform in 0..2^bits-1
    return [rng.getrandbits(bits) for _ in range(length)]

#### implement the baby step giant step algorithm.
#### Running time: O(sqrt(bound)), Space: O(sqrt(bound))
def compute_discrete_log(g: int, target: int, bound: int, p: int) -> Optional[int]:
    """Return the smallest e in [0, bound) with g^e = target (mod p).

    Returns None when no such exponent exists. An exponent of 0 is a
    regular result and is returned as 0.
    """
    if bound < 1:
        raise ParameterError('compute_discrete_log: bound must be at least 1, got: {}'.format(bound))
    # m = ceil(sqrt(bound)), so that m * m >= bound
    m = isqrt(bound - 1) + 1
    g_inv = mod_inverse(g, p)

    # baby steps: target * g^(-b) -> b, the smallest b is kept
    baby_steps = {}
    elem = target % p
    for b in range(m):
        baby_steps.setdefault(elem, b)
        elem = (elem * g_inv) % p

    # giant steps: Y = (g^m)^a
    giant = pow(g, m, p)
    group_elem = 1
    for a in range(m):
        b = baby_steps.get(group_elem)
        if b is not None:
            val = a * m + b
            if val < bound:
                return val
            return None
        group_elem = (group_elem * giant) % p
    return None

#
# The following code is only used for debugging
#
import inspect

# locals that are too large to be worth tracing
_SKIPPED_VARS = ('baby_steps', 'executor', 'sk_f')

def pretty(v: Any) -> Any:
    if isinstance(v, SecretScalar):
        return repr(v)
    if isinstance(v, (bytes, bytearray)):
        return '0x' + bytes(v).hex()
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return hex(v)
    if isinstance(v, tuple):
        return tuple(map(pretty, v))
    if isinstance(v, list):
        return list(map(pretty, v))
    return v

def debug_print_vars(debug: bool) -> None:
    if debug and logger.isEnabledFor(logging.DEBUG):
        current_frame = inspect.currentframe()
        assert current_frame is not None
        frame = current_frame.f_back
        assert frame is not None
        logger.debug('Variables in function %s at line %d:', frame.f_code.co_name, frame.f_lineno)
        for var_name, var_val in frame.f_locals.items():
            if var_name in _SKIPPED_VARS:
                continue
            logger.debug('   %s == %s', var_name.rjust(11, ' '), pretty(var_val))
