import logging
import random
import threading
import time

import pytest

import settings
from errors import NotInvertibleError, ParameterError, SearchExhausted
from ipfe import (MasterKeys, ipfe_dec, ipfe_dec_offline, ipfe_dec_online, ipfe_enc, ipfe_kgen,
                  ipfe_pubkgen, ipfe_setup, run_benchmark)
from pke import ciphertext_init, pke_setup
from utils import compute_inner_product, random_vector


@pytest.fixture
def keys(group, config, rng):
    # fresh key pair over the session group, so tests may clear it
    (mpk, msk) = pke_setup(group, config.vectors_length, rng, config)
    with MasterKeys(group, mpk, msk, config) as k:
        yield k


def test_concrete_scenario(keys, rng):
    x = [3, 5]
    y = [2, 7]
    ct = keys.encrypt(x, rng)
    keys.derive(y)
    assert keys.decrypt(ct, y, 6) == 41
    assert keys.decrypt(ct, y) == 41


def test_round_trip_random_vectors(keys, config, rng):
    for _ in range(5):
        x = random_vector(config.vectors_length, config.x_msg_length, rng)
        y = random_vector(config.vectors_length, config.y_msg_length, rng)
        expected = compute_inner_product(x, y, keys.p)
        ct = keys.encrypt(x, rng)
        keys.derive(y)
        assert keys.decrypt(ct, y, max(1, expected.bit_length())) == expected


def test_functional_api_round_trip(session_keys, config, rng):
    x = [1000, 1]
    y = [1 << 19, 3]
    group = session_keys.group
    ct = ipfe_enc(2, group, session_keys.mpk, x, rng, config)
    sk_f = ipfe_kgen(2, session_keys.msk, y, group.p)
    assert ipfe_dec(2, group, y, sk_f, ct, config=config) == 1000 * (1 << 19) + 3


def test_offline_online_split(session_keys, config, rng):
    group = session_keys.group
    x = [17, 23]
    y = [4, 9]
    ct = ipfe_enc(2, group, session_keys.mpk, x, rng, config)
    sk_f = ipfe_kgen(2, session_keys.msk, y, group.p)
    ct2 = ipfe_dec_offline(2, group, y, ct)
    assert ct2 == pow(ct.cti[0], 4, group.p) * pow(ct.cti[1], 9, group.p) % group.p
    assert ipfe_dec_online(group, sk_f, ct.ct0, ct2, 10, config) == 17 * 4 + 23 * 9


def test_encryptions_are_randomized(keys, rng):
    x = [3, 5]
    y = [2, 7]
    ct1 = keys.encrypt(x, rng)
    ct2 = keys.encrypt(x, rng)
    assert ct1.ct0 != ct2.ct0
    assert ct1.cti != ct2.cti
    keys.derive(y)
    assert keys.decrypt(ct1, y) == keys.decrypt(ct2, y) == 41


def test_zero_function_vector(keys, rng):
    y = [0, 0]
    assert keys.derive(y) == 0
    assert keys.sky == 0
    ct = keys.encrypt([1023, 512], rng)
    assert keys.decrypt(ct, y) == 0


def test_zero_inner_product_is_a_result(keys, rng):
    y = [2, 7]
    ct = keys.encrypt([0, 0], rng)
    keys.derive(y)
    assert keys.decrypt(ct, y) == 0


def test_kgen_is_inner_product_with_msk(session_keys):
    p = session_keys.p
    y = [2, 7]
    s = [sk.value for sk in session_keys.msk]
    assert ipfe_kgen(2, session_keys.msk, y, p) == (2 * s[0] + 7 * s[1]) % p
    with pytest.raises(ParameterError):
        ipfe_kgen(2, session_keys.msk, [1, 2, 3], p)
    with pytest.raises(ParameterError):
        ipfe_kgen(3, session_keys.msk, [1, 2, 3], p)


def test_pubkgen_matches_functional_key(keys):
    y = [2, 7]
    sk_f = keys.derive(y)
    assert ipfe_pubkgen(2, keys.group, keys.mpk, y) == pow(keys.g, sk_f, keys.p)
    with pytest.raises(ParameterError):
        ipfe_pubkgen(2, keys.group, keys.mpk, [1])


def test_derive_overwrites_previous_key(keys, rng):
    ct = keys.encrypt([3, 5], rng)
    first = keys.derive([2, 7])
    old_secret = keys._sky
    second = keys.derive([1, 1])
    assert first != second
    assert old_secret.wiped
    assert keys.sky == second
    assert keys.decrypt(ct, [1, 1]) == 8
    with pytest.raises(ParameterError):
        keys.decrypt(ct, [2, 7])


def test_decrypt_requires_derived_key(keys, rng):
    ct = keys.encrypt([3, 5], rng)
    with pytest.raises(ParameterError):
        keys.decrypt(ct, [2, 7])
    with pytest.raises(ParameterError):
        keys.sky


def test_derive_validates_y(keys):
    with pytest.raises(ParameterError):
        keys.derive([1, 2, 3])
    with pytest.raises(ParameterError):
        keys.derive([1, 1 << keys.config.y_msg_length])
    with pytest.raises(ParameterError):
        keys.derive([1, -2])


def test_functional_api_validates_y(session_keys, config, rng):
    group = session_keys.group
    ct = ipfe_enc(2, group, session_keys.mpk, [3, 5], rng, config)
    for y in ([-1, 1 << 400], [1, -1], [1 << config.y_msg_length, 0]):
        with pytest.raises(ParameterError):
            ipfe_kgen(2, session_keys.msk, y, group.p, config)
        with pytest.raises(ParameterError):
            ipfe_kgen(2, session_keys.msk, y, group.p)
        with pytest.raises(ParameterError):
            ipfe_pubkgen(2, group, session_keys.mpk, y, config)
        with pytest.raises(ParameterError):
            ipfe_dec_offline(2, group, y, ct, config)
        with pytest.raises(ParameterError):
            ipfe_dec(2, group, y, 1, ct, config=config)


def test_bound_at_group_order_is_rejected(keys, config, rng):
    y = [2, 7]
    ct = keys.encrypt([3, 5], rng)
    sk_f = keys.derive(y)
    with pytest.raises(ParameterError):
        keys.decrypt(ct, y, config.q_bits)
    with pytest.raises(ParameterError):
        ipfe_dec(2, keys.group, y, sk_f, ct, 200, config)


def test_decrypt_trace_hides_functional_key(session_keys, config, caplog, rng):
    loud = settings.init(p_bits=config.p_bits, q_bits=config.q_bits, vectors_length=2, workers=2, debug=True)
    group = session_keys.group
    y = [2, 7]
    ct = ipfe_enc(2, group, session_keys.mpk, [3, 5], rng, loud)
    sk_f = ipfe_kgen(2, session_keys.msk, y, group.p, loud)
    ct2 = ipfe_dec_offline(2, group, y, ct, loud)
    caplog.set_level(logging.DEBUG, logger='utils')
    assert ipfe_dec_online(group, sk_f, ct.ct0, ct2, 10, loud) == 41
    assert 'ipfe_dec_online' in caplog.text
    assert hex(sk_f) not in caplog.text


def test_bound_too_small_exhausts_search(keys, rng):
    y = [2, 7]
    ct = keys.encrypt([3, 5], rng)
    keys.derive(y)
    with pytest.raises(SearchExhausted):
        keys.decrypt(ct, y, 5)
    with pytest.raises(LookupError):
        keys.decrypt(ct, y, 0)
    with pytest.raises(ParameterError):
        keys.decrypt(ct, y, -1)


def test_scrubbed_ciphertext_is_rejected(keys, rng):
    y = [2, 7]
    ct = keys.encrypt([3, 5], rng)
    keys.derive(y)
    ct.mid_clear()
    with pytest.raises(NotInvertibleError):
        keys.decrypt(ct, y)


def test_ciphertext_length_mismatch(keys, rng):
    y = [2, 7]
    keys.derive(y)
    with pytest.raises(ParameterError):
        keys.decrypt(ciphertext_init(3), y)


def test_config_length_mismatch(session_keys, config, rng):
    with pytest.raises(ParameterError):
        ipfe_enc(3, session_keys.group, session_keys.mpk, [1, 2, 3], rng, config)


def test_clear_wipes_secrets(group, config, rng):
    (mpk, msk) = pke_setup(group, config.vectors_length, rng, config)
    with MasterKeys(group, mpk, msk, config) as keys:
        keys.derive([2, 7])
        sky = keys._sky
    assert all(s.wiped for s in msk)
    assert sky.wiped
    with pytest.raises(ValueError):
        keys.derive([2, 7])


def test_clear_wipes_secrets_on_error(group, config, rng):
    (mpk, msk) = pke_setup(group, config.vectors_length, rng, config)
    with pytest.raises(RuntimeError):
        with MasterKeys(group, mpk, msk, config):
            raise RuntimeError('boom')
    assert all(s.wiped for s in msk)


def test_master_keys_rejects_wrong_length(group, config, rng):
    (mpk, msk) = pke_setup(group, 3, rng, config)
    with pytest.raises(ParameterError):
        MasterKeys(group, mpk, msk, config)


def test_concurrent_derivations_leave_one_active_key(keys):
    vectors = [[i, i + 1] for i in range(8)]
    threads = [threading.Thread(target=keys.derive, args=(v,)) for v in vectors]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    active = list(keys._sky_f)
    assert active in vectors
    assert keys.sky == ipfe_kgen(2, keys.msk, active, keys.p)


def test_ipfe_setup_end_to_end():
    config = settings.init(p_bits=256, q_bits=96, vectors_length=3, x_msg_length=8, y_msg_length=8)
    rng = random.Random(4242)
    with ipfe_setup(config, rng) as keys:
        assert keys.p.bit_length() == 256
        assert keys.q.bit_length() == 96
        assert len(keys.mpk) == len(keys.msk) == 3
        x = [255, 0, 17]
        y = [1, 200, 3]
        ct = keys.encrypt(x, rng)
        keys.derive(y)
        assert keys.decrypt(ct, y) == 255 + 51


def test_benchmark_measures_cpu_time(monkeypatch, capsys):
    calls = []
    real_process_time = time.process_time

    def counting_process_time():
        calls.append(1)
        return real_process_time()

    monkeypatch.setattr(time, 'process_time', counting_process_time)
    config = settings.init(p_bits=256, q_bits=96, vectors_length=2, x_msg_length=8, y_msg_length=8)
    assert run_benchmark(config, random.Random(7), vectors=2)
    # setup is timed once, then four marks per round
    assert len(calls) == 2 + 4 * 2
    out = capsys.readouterr().out
    assert 'cpu time' in out
    assert 'verifications: ok' in out
