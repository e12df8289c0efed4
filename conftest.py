import random

import pytest

import settings
from ipfe import ipfe_setup


# small sizes so the suite runs quickly; the defaults are 2048/224 bits
TEST_P_BITS = 512
TEST_Q_BITS = 160


@pytest.fixture
def rng():
    return random.Random(20240521)


@pytest.fixture(scope='session')
def config():
    return settings.init(p_bits=TEST_P_BITS, q_bits=TEST_Q_BITS, vectors_length=2, workers=2)


@pytest.fixture(scope='session')
def session_keys(config):
    keys = ipfe_setup(config, random.Random(1337))
    yield keys
    keys.clear()


@pytest.fixture(scope='session')
def group(session_keys):
    return session_keys.group
