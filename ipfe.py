############################################################
#### Description:
# Our implementation of the DDH-based [ABDP15] Inner Product
# Functional Encryption over a prime-order subgroup of (Z/pZ)*.
############################################################

from typing import Optional, Sequence
import logging
import random
import threading
import time

from errors import NotInvertibleError, ParameterError, SearchExhausted
from group_ops import GroupParameters, group_setup, elem_inv, elem_mul, elem_pow
from pke import Ciphertext, pke_encrypt, pke_setup, ciphertext_init
from utils import SecretScalar, check_vector, compute_discrete_log, compute_inner_product, debug_print_vars, random_vector, wipe_all
import settings

#### IPFE implementation ===============================================================

def _config_for(ipfelen: int, config: Optional[settings.Settings]) -> settings.Settings:
    if config is None:
        return settings.init(vectors_length=ipfelen)
    if config.vectors_length != ipfelen:
        raise ParameterError('ipfe: vector length {} differs from the scheme length {}'.format(ipfelen, config.vectors_length))
    return config


class MasterKeys(object):
    """Group parameters, master key pair and the functional key derived last.

    mpk and msk are fixed at setup. Each call to derive() replaces the
    functional key sky, so only one derived key is active at a time.
    clear() wipes msk and sky; the object also clears itself when used as
    a context manager.
    """

    def __init__(self, group: GroupParameters, mpk: Sequence[int], msk: Sequence[SecretScalar], config: settings.Settings):
        if len(mpk) != config.vectors_length or len(msk) != config.vectors_length:
            raise ParameterError('MasterKeys: mpk and msk must be lists of length: {}'.format(config.vectors_length))
        self.group = group
        self.mpk = tuple(mpk)
        self.msk = tuple(msk)
        self.config = config
        self._sky = None
        self._sky_f = None
        self._lock = threading.Lock()

    @property
    def p(self) -> int:
        return self.group.p

    @property
    def q(self) -> int:
        return self.group.q

    @property
    def g(self) -> int:
        return self.group.g

    @property
    def sky(self) -> int:
        with self._lock:
            if self._sky is None:
                raise ParameterError('MasterKeys: no functional key has been derived')
            return self._sky.value

    def derive(self, f: Sequence[int]) -> int:
        f = check_vector('y', f, self.config.vectors_length, self.config.y_msg_length)
        sk_f = ipfe_kgen(self.config.vectors_length, self.msk, f, self.group.p, self.config)
        with self._lock:
            if self._sky is not None:
                self._sky.wipe()
            self._sky = SecretScalar(sk_f)
            self._sky_f = tuple(f)
        return sk_f

    def encrypt(self, msg: Sequence[int], rng: Optional[random.Random] = None,
                ciphertext: Optional[Ciphertext] = None) -> Ciphertext:
        return ipfe_enc(self.config.vectors_length, self.group, self.mpk, msg, rng, self.config, ciphertext)

    def decrypt(self, ciphertext: Ciphertext, f: Sequence[int], bound_bits: Optional[int] = None) -> int:
        f = check_vector('y', f, self.config.vectors_length, self.config.y_msg_length)
        with self._lock:
            if self._sky is None or self._sky_f != tuple(f):
                raise ParameterError('MasterKeys.decrypt: no functional key derived for this y')
            sk_f = self._sky.value
        return ipfe_dec(self.config.vectors_length, self.group, f, sk_f, ciphertext, bound_bits, self.config)

    def clear(self) -> None:
        with self._lock:
            wipe_all(self.msk)
            if self._sky is not None:
                self._sky.wipe()
            self._sky = None
            self._sky_f = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.clear()
        return False


def ipfe_setup(config: Optional[settings.Settings] = None, rng: Optional[random.Random] = None) -> MasterKeys:
    if config is None:
        config = settings.init()
    group = group_setup(config.p_bits, config.q_bits, rng, config)
    (mpk, msk) = pke_setup(group, config.vectors_length, rng, config)
    debug_print_vars(config.debug)
    return MasterKeys(group, mpk, msk, config)

def ipfe_enc(ipfelen: int, group: GroupParameters, mpk: Sequence[int], msg: Sequence[int],
             rng: Optional[random.Random] = None, config: Optional[settings.Settings] = None,
             ciphertext: Optional[Ciphertext] = None) -> Ciphertext:
    config = _config_for(ipfelen, config)
    return pke_encrypt(group, mpk, msg, rng, config, ciphertext)

def ipfe_kgen(ipfelen: int, msk: Sequence[SecretScalar], f: Sequence[int], p: int,
              config: Optional[settings.Settings] = None) -> int:
    config = _config_for(ipfelen, config)
    if len(msk) != ipfelen:
        raise ParameterError('ipfe_kgen: The msk must be list of length: {}'.format(ipfelen))
    # sum(f_i * s_i) stays below p only for f_i within y_msg_length bits
    f = check_vector('y', f, ipfelen, config.y_msg_length)

    # sk_f = <f, s> mod p
    sk_f = 0
    for i in range(ipfelen):
        sk_f = sk_f + f[i] * msk[i].value
    return sk_f % p

## public counterpart of sk_f: prod_i h_i^(f_i) = g^(<f, s>)
def ipfe_pubkgen(ipfelen: int, group: GroupParameters, mpk: Sequence[int], f: Sequence[int],
                 config: Optional[settings.Settings] = None) -> int:
    config = _config_for(ipfelen, config)
    if len(mpk) != ipfelen:
        raise ParameterError('ipfe_pubkgen: The mpk must be list of length: {}'.format(ipfelen))
    f = check_vector('y', f, ipfelen, config.y_msg_length)

    pk_f = 1
    for i in range(ipfelen):
        pk_f = elem_mul(group, pk_f, elem_pow(group, mpk[i], f[i]))
    return pk_f

def ipfe_dec(ipfelen: int, group: GroupParameters, f: Sequence[int], sk_f: int, ciphertext: Ciphertext,
             bound_bits: Optional[int] = None, config: Optional[settings.Settings] = None) -> int:
    config = _config_for(ipfelen, config)
    if bound_bits is None:
        bound_bits = config.safe_bound_bits()
    ct2 = ipfe_dec_offline(ipfelen, group, f, ciphertext, config)
    return ipfe_dec_online(group, sk_f, ciphertext.ct0, ct2, bound_bits, config)

## needs no key material: ct2 = prod_i ct_i^(f_i) mod p
def ipfe_dec_offline(ipfelen: int, group: GroupParameters, f: Sequence[int], ciphertext: Ciphertext,
                     config: Optional[settings.Settings] = None) -> int:
    config = _config_for(ipfelen, config)
    f = check_vector('y', f, ipfelen, config.y_msg_length)
    if len(ciphertext) != ipfelen:
        raise ParameterError('ipfe_dec_offline: The ciphertext must have {} components'.format(ipfelen))

    ct2 = 1
    for i in range(ipfelen):
        ct2 = elem_mul(group, ct2, elem_pow(group, ciphertext.cti[i], f[i]))
    return ct2

def ipfe_dec_online(group: GroupParameters, sk_f: int, ct0: int, ct2: int, bound_bits: int,
                    config: Optional[settings.Settings] = None) -> int:
    if bound_bits < 0:
        raise ParameterError('ipfe_dec_online: bound_bits must be non-negative, got: {}'.format(bound_bits))
    # 2^bound_bits must stay below q, otherwise the exponent is not unique
    if bound_bits >= group.q.bit_length():
        raise ParameterError('ipfe_dec_online: bound_bits must be below {}, got: {}'.format(group.q.bit_length(), bound_bits))
    debug = config.debug if config is not None else False

    ct0_sk = elem_pow(group, ct0, sk_f)
    if ct0_sk == 0:
        raise NotInvertibleError('ipfe_dec_online: ct0^sk_f is zero, the ciphertext is corrupted')
    # g^<x,f> = ct2 / ct0^sk_f
    g_ip = elem_mul(group, ct2, elem_inv(group, ct0_sk))
    debug_print_vars(debug)

    # inner product decryption by computing the discrete logarithm
    val = compute_discrete_log(group.g, g_ip, 1 << bound_bits, group.p)
    if val is None:
        raise SearchExhausted('ipfe_dec_online: inner product outside range {{0, ..., 2^{} - 1}}.'.format(bound_bits))
    return val

## benchmark loop of the original test driver; timings are CPU time
def run_benchmark(config: Optional[settings.Settings] = None, rng: Optional[random.Random] = None,
                  vectors: int = settings.VECTORS) -> bool:
    if config is None:
        config = settings.init()
    if rng is None:
        rng = random.SystemRandom()
    ipfelen = config.vectors_length

    setup_st = time.process_time()
    keys = ipfe_setup(config, rng)
    setup_time = time.process_time() - setup_st
    print('key-generation - cpu time: {:.3f}s'.format(setup_time))

    f = random_vector(ipfelen, config.y_msg_length, rng)
    enc_time = 0
    kgen_time = 0
    dec_time = 0
    with keys, ciphertext_init(ipfelen) as ciphertext:
        for it in range(vectors):
            msg = random_vector(ipfelen, config.x_msg_length, rng)
            actual_val = compute_inner_product(msg, f, keys.p)

            enc_st = time.process_time()
            keys.encrypt(msg, rng, ciphertext)
            kgen_st = time.process_time()
            keys.derive(f)
            dec_st = time.process_time()
            # the bound is taken from the known inner product, as in a test run
            val = keys.decrypt(ciphertext, f, max(1, actual_val.bit_length()))
            dec_et = time.process_time()

            enc_time += kgen_st - enc_st
            kgen_time += dec_st - kgen_st
            dec_time += dec_et - dec_st
            if val != actual_val:
                print('ipfe_dec test FAILED at iteration {}: val = {}, actual_val = {}'.format(it, val, actual_val))
                return False

    print('ipfelen: {} \t iterations: {} \t EncTime: {:.6f} \t KGenTime: {:.6f} \t DecTime: {:.6f}'.format(
        ipfelen, vectors, enc_time / vectors, kgen_time / vectors, dec_time / vectors))
    print('verifications: ok')
    return True

if __name__ == '__main__':
    config = settings.init()
    logging.basicConfig(level=logging.DEBUG if config.debug else logging.INFO)
    run_benchmark(config)
