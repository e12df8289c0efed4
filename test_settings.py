import pytest

import settings
from errors import ParameterError


def test_defaults():
    config = settings.init()
    assert config.p_bits == settings.KEY_SIZE1 == 2048
    assert config.q_bits == settings.KEY_SIZE2 == 224
    assert config.vectors_length == settings.VECTORS_LENGTH == 30
    assert config.mr_iterations == settings.FUNCTIONAL_MR_ITERATIONS == 12
    assert config.debug is False
    assert 1 <= config.workers <= 4
    # 10 + 20 bits per product, 30 products
    assert config.safe_bound_bits() == 10 + 20 + 5


def test_overrides_are_per_instance():
    loud = settings.init(debug=True)
    quiet = settings.init()
    assert loud.debug and not quiet.debug
    assert 'debug=True' in repr(loud)


@pytest.mark.parametrize('overrides', [
    dict(p_bits=160, q_bits=160),
    dict(p_bits=160, q_bits=224),
    dict(q_bits=0),
    dict(q_bits=1),
    dict(vectors_length=0),
    dict(x_msg_length=0),
    dict(mr_iterations=0),
    dict(max_attempts=0),
    dict(workers=0),
    # sum(s_i * y_i) would not fit below p
    dict(p_bits=256, q_bits=240, y_msg_length=20),
    # inner products would not fit in the order-q subgroup
    dict(q_bits=32, x_msg_length=16, y_msg_length=16),
])
def test_invalid_settings(overrides):
    with pytest.raises(ParameterError):
        settings.init(**overrides)
