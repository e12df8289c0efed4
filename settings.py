############################################################
#### Description:
# Scheme parameters and debugging settings.
############################################################

import os

from libnum import len_in_bits

from errors import ParameterError

# EDIT these definitions to see how the scheme behaves
VECTORS = 100          # number of message vectors generated by the benchmark
VECTORS_LENGTH = 30    # length of the vectors (x and y)            --> n
X_MSG_LENGTH = 10      # size of each message in vector x (in bits) --> m
Y_MSG_LENGTH = 20      # size of each message in vector y (in bits) --> k

# DO NOT EDIT the following unless you know what you're doing
KEY_SIZE1 = 2048                 # p size
KEY_SIZE2 = 224                  # q size
FUNCTIONAL_MR_ITERATIONS = 12    # for the Miller-Rabin primality test
MAX_SAMPLING_ATTEMPTS = 100000   # cap for every rejection-sampling loop


class Settings(object):
    """Configuration shared by every operation of one scheme instance.

    debug enables the detailed trace of intermediate values produced by
    utils.debug_print_vars(). It replaces the old module-level DEBUG flag:
    each instance carries its own value.
    """

    def __init__(self, p_bits=KEY_SIZE1, q_bits=KEY_SIZE2,
                 vectors_length=VECTORS_LENGTH, x_msg_length=X_MSG_LENGTH,
                 y_msg_length=Y_MSG_LENGTH,
                 mr_iterations=FUNCTIONAL_MR_ITERATIONS,
                 max_attempts=MAX_SAMPLING_ATTEMPTS, workers=None,
                 debug=False):
        self.p_bits = p_bits
        self.q_bits = q_bits
        self.vectors_length = vectors_length
        self.x_msg_length = x_msg_length
        self.y_msg_length = y_msg_length
        self.mr_iterations = mr_iterations
        self.max_attempts = max_attempts
        if workers is None:
            workers = min(os.cpu_count() or 1, 4)
        self.workers = workers
        self.debug = debug
        self.validate()

    def validate(self) -> None:
        if not (0 < self.q_bits < self.p_bits):
            raise ParameterError(
                'Settings: bit lengths must satisfy 0 < q_bits < p_bits, got q_bits={}, p_bits={}'.format(self.q_bits, self.p_bits))
        if self.q_bits < 2:
            raise ParameterError('Settings: q_bits must be at least 2')
        for name in ('vectors_length', 'x_msg_length', 'y_msg_length',
                     'mr_iterations', 'max_attempts', 'workers'):
            if getattr(self, name) < 1:
                raise ParameterError('Settings: {} must be a positive integer'.format(name))

        # sky is reduced modulo p: sum(s_i * y_i) has to stay below p so
        # that the reduction leaves the exponent unchanged modulo q.
        n_bits = len_in_bits(self.vectors_length)
        if self.q_bits + self.y_msg_length + n_bits >= self.p_bits:
            raise ParameterError(
                'Settings: q_bits + y_msg_length + {} must be below p_bits'.format(n_bits))
        if self.safe_bound_bits() >= self.q_bits:
            raise ParameterError(
                'Settings: inner products of {} bits do not fit in the order-q subgroup'.format(self.safe_bound_bits()))

    def safe_bound_bits(self) -> int:
        # upper bound on the bit length of <x, y> for in-range x and y
        return self.x_msg_length + self.y_msg_length + len_in_bits(self.vectors_length)

    def __repr__(self):
        return ('Settings(p_bits={}, q_bits={}, vectors_length={}, x_msg_length={}, '
                'y_msg_length={}, mr_iterations={}, max_attempts={}, workers={}, debug={})').format(
                    self.p_bits, self.q_bits, self.vectors_length, self.x_msg_length,
                    self.y_msg_length, self.mr_iterations, self.max_attempts,
                    self.workers, self.debug)


def init(**overrides) -> Settings:
    """Build a Settings object; keyword arguments override the defaults."""
    return Settings(**overrides)
