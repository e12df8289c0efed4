############################################################
#### Description:
# Our implementation of group ops: generation of a prime-order
# subgroup of (Z/pZ)* and arithmetic on its elements.
############################################################
from typing import NamedTuple, Optional
import random

from libnum import prime_test_miller_rabin, len_in_bits

from errors import EntropyError, ParameterError
from settings import Settings
from utils import debug_print_vars, mod_inverse


# p = 2rq + 1 is prime, q is prime and g generates the subgroup of
# order q of (Z/pZ)*. Group elements are ints in 1..p-1.
class GroupParameters(NamedTuple):
    p: int
    q: int
    g: int


def default_rng() -> random.Random:
    return random.SystemRandom()

def is_probable_prime(n: int, config: Settings) -> bool:
    return prime_test_miller_rabin(n, config.mr_iterations)

# we need a group Zp* such that the order p-1 has at least a big prime factor q
# to prevent attacks based on the Pohlig-Hellman algorithm
# (see Algorithm 3.63 of "Handbook of Applied Cryptography")
def random_prime_q(q_bits: int, rng: random.Random, config: Settings) -> int:
    for _ in range(config.max_attempts):
        q = rng.getrandbits(q_bits) | 1
        if len_in_bits(q) == q_bits and is_probable_prime(q, config):
            return q
    raise EntropyError('random_prime_q: no {}-bit prime found in {} attempts'.format(q_bits, config.max_attempts))

# search r such that p = 2rq + 1 is a prime of p_bits: select z of p_bits, then
# compute p = z - ((z mod 2q) - 1), which is congruent to 1 modulo 2q
# (see Section 4.4.4 of "Handbook of Applied Cryptography" on "Constructive techniques for provable primes")
def random_prime_p(q: int, p_bits: int, rng: random.Random, config: Settings) -> int:
    two_q = 2 * q
    top_bit = 1 << (p_bits - 1)
    for _ in range(config.max_attempts):
        z = rng.getrandbits(p_bits) | top_bit
        p = z - ((z % two_q) - 1)
        if len_in_bits(p) == p_bits and is_probable_prime(p, config):
            return p
    raise EntropyError('random_prime_p: no {}-bit prime p = 1 mod 2q found in {} attempts'.format(p_bits, config.max_attempts))

# scan for a value z such that g = z^((p-1)/q) mod p is different than 1.
# By Lagrange's theorem such a g has order exactly q.
# (see Note 4.81 of "Handbook of Applied Cryptography")
def find_generator(p: int, q: int, config: Settings) -> int:
    t = (p - 1) // q
    for z in range(2, min(p, 2 + config.max_attempts)):
        g = pow(z, t, p)
        if g != 1:
            return g
    raise EntropyError('find_generator: no generator of the order-q subgroup found')

def group_setup(p_bits: int, q_bits: int, rng: Optional[random.Random], config: Settings) -> GroupParameters:
    if not (0 < q_bits < p_bits):
        raise ParameterError('group_setup: bit lengths must satisfy 0 < q_bits < p_bits, got q_bits={}, p_bits={}'.format(q_bits, p_bits))
    if q_bits < 2:
        raise ParameterError('group_setup: q_bits must be at least 2')
    if rng is None:
        rng = default_rng()

    q = random_prime_q(q_bits, rng, config)
    p = random_prime_p(q, p_bits, rng, config)
    g = find_generator(p, q, config)
    group = GroupParameters(p, q, g)
    debug_print_vars(config.debug)
    return group

def check_group(group: GroupParameters, config: Settings) -> None:
    """Raise ParameterError unless group satisfies every subgroup invariant."""
    p, q, g = group
    if not is_probable_prime(q, config):
        raise ParameterError('check_group: q is not prime')
    if not is_probable_prime(p, config):
        raise ParameterError('check_group: p is not prime')
    if (p - 1) % (2 * q) != 0:
        raise ParameterError('check_group: p is not of the form 2rq + 1')
    if not (1 < g < p) or pow(g, q, p) != 1:
        raise ParameterError('check_group: g does not generate the subgroup of order q')

def is_group_element(group: GroupParameters, h: int) -> bool:
    return 0 < h < group.p and pow(h, group.q, group.p) == 1

# samples a scalar uniformly from 1..q-1
def random_scalar(q: int, rng: random.Random, config: Settings) -> int:
    for _ in range(config.max_attempts):
        s = rng.randrange(q)
        if s != 0:
            return s
    raise EntropyError('random_scalar: only zero was drawn in {} attempts'.format(config.max_attempts))

# performs group operation on two group elements. Think $g^a * g^b = g^{a+b}$
def elem_mul(group: GroupParameters, h1: int, h2: int) -> int:
    return (h1 * h2) % group.p

# applies group operation e times on a group element. Think $(g^a)^e = g^{ae}$
def elem_pow(group: GroupParameters, h: int, e: int) -> int:
    return pow(h, e, group.p)

def elem_inv(group: GroupParameters, h: int) -> int:
    return mod_inverse(h, group.p)
