############################################################
#### Description:
# Our implementation of El Gamal Public Key Encryption over a
# prime-order subgroup of (Z/pZ)*, one key per vector co-ordinate.
# msg is encoded in the exponent while encrypting it.
############################################################

from typing import Optional, Sequence, List, Tuple
from itertools import repeat
import concurrent.futures
import random

from errors import AllocationError, ParameterError
from group_ops import GroupParameters, default_rng, elem_mul, elem_pow, is_group_element, random_scalar
from settings import Settings
from utils import SecretScalar, check_vector, debug_print_vars, wipe_all


class Ciphertext(object):
    """ct0 = g^r and cti[i] = h_i^r * g^(x_i), all mod p.

    A fresh ciphertext is zeroed. mid_clear() scrubs the components between
    two encryptions, clear() also drops the component vector.
    """

    def __init__(self, pkelen: int):
        try:
            self.cti = [0] * pkelen
        except MemoryError as e:
            raise AllocationError('Ciphertext: out of memory for {} components'.format(pkelen)) from e
        self.ct0 = 0

    def mid_clear(self) -> None:
        self.ct0 = 0
        for i in range(len(self.cti)):
            self.cti[i] = 0

    def clear(self) -> None:
        self.mid_clear()
        self.cti = []

    def __len__(self):
        return len(self.cti)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.clear()
        return False

    def __repr__(self):
        return 'Ciphertext(ct0={}, cti=<{} components>)'.format(hex(self.ct0), len(self.cti))


def ciphertext_init(pkelen: int) -> Ciphertext:
    if pkelen < 1:
        raise ParameterError('ciphertext_init: the ciphertext must have at least one component')
    return Ciphertext(pkelen)

# given sk = s, computes pk = g^s
def pubkey_gen(group: GroupParameters, seckey: SecretScalar) -> int:
    s = seckey.value
    if not (1 <= s <= group.q - 1):
        raise ParameterError('The secret key must be an integer in the range 1..q-1.')
    return elem_pow(group, group.g, s)

#### PKE Setup: returns pk, sk
def pke_setup(group: GroupParameters, pkelen: int, rng: Optional[random.Random], config: Settings) -> Tuple[List[int], List[SecretScalar]]:
    if pkelen < 1:
        raise ParameterError('pke_setup: the key vectors must have at least one co-ordinate')
    if rng is None:
        rng = default_rng()

    seckey = []
    try:
        # n random secret exponents s_i in Zq*
        for i in range(pkelen):
            seckey.append(SecretScalar(random_scalar(group.q, rng, config)))

        # pk_i = h_i = g^(s_i) mod p
        with concurrent.futures.ThreadPoolExecutor(max_workers=config.workers) as executor:
            pubkey = list(executor.map(pubkey_gen, repeat(group), seckey))
    except MemoryError as e:
        wipe_all(seckey)
        raise AllocationError('pke_setup: out of memory while building the key vectors') from e
    except Exception:
        wipe_all(seckey)
        raise

    debug_print_vars(config.debug)
    return (pubkey, seckey)

def pke_encrypt_helper(i: int, group: GroupParameters, pubkey: int, msg: int, r: int) -> int:
    if not is_group_element(group, pubkey):
        raise ParameterError('pke_encrypt: pk_{} must be an element of the subgroup of order q.'.format(i))
    msg_i = elem_pow(group, group.g, msg)
    return elem_mul(group, elem_pow(group, pubkey, r), msg_i)

def pke_encrypt(group: GroupParameters, pubkey: Sequence[int], msg: Sequence[int], rng: Optional[random.Random],
                config: Settings, ciphertext: Optional[Ciphertext] = None) -> Ciphertext:
    pkelen = config.vectors_length
    if len(pubkey) != pkelen:
        raise ParameterError('pke_encrypt: The public key must be list of length: {}'.format(pkelen))
    msg = check_vector('x', msg, pkelen, config.x_msg_length)
    if rng is None:
        rng = default_rng()

    if ciphertext is None:
        ciphertext = ciphertext_init(pkelen)
    elif len(ciphertext) != pkelen:
        raise ParameterError('pke_encrypt: The ciphertext must have {} components'.format(pkelen))
    else:
        ciphertext.mid_clear()

    # a random (secret) ephemeral exponent r in Zq*, wiped on every exit path
    with SecretScalar(random_scalar(group.q, rng, config)) as r:
        try:
            ciphertext.ct0 = elem_pow(group, group.g, r.value)
            with concurrent.futures.ThreadPoolExecutor(max_workers=config.workers) as executor:
                ct1_list = list(executor.map(pke_encrypt_helper,
                    range(pkelen),
                    repeat(group),
                    pubkey,
                    msg,
                    repeat(r.value, pkelen),
                    ))
        except Exception:
            ciphertext.mid_clear()
            raise
        ciphertext.cti[:] = ct1_list
        debug_print_vars(config.debug)
    return ciphertext
