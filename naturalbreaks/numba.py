import logging

import numpy as np
from numba import njit

from naturalbreaks import NaturalBreaks, shift_values

logger = logging.getLogger(__name__)

# os.environ['NUMBA_DISABLE_JIT'] = '1'


# noinspection DuplicatedCode
@njit
def _build_matrices(values, n_classes):  # pragma: no cover
    n = values.shape[0]
    lower_class_limits = np.zeros((n + 1, n_classes + 1), dtype=np.int64)
    variance_combinations = np.zeros((n + 1, n_classes + 1), dtype=np.float64)
    lower_class_limits[1, 1:] = 1
    variance_combinations[2:, 1:] = np.inf

    variance = 0.0
    for l in range(2, n + 1):  # noqa
        sum_ = 0.0
        sum_squares = 0.0
        for m in range(1, l + 1):
            lower_class_limit = l - m + 1
            val = values[lower_class_limit - 1]
            sum_ += val
            sum_squares += val * val
            variance = sum_squares - (sum_ * sum_) / m
            i4 = lower_class_limit - 1
            if i4 == 0:
                continue
            for j in range(2, n_classes + 1):
                candidate = variance + variance_combinations[i4, j - 1]
                if variance_combinations[l, j] >= candidate:
                    lower_class_limits[l, j] = lower_class_limit
                    variance_combinations[l, j] = candidate
        lower_class_limits[l, 1] = 1
        variance_combinations[l, 1] = variance

    return lower_class_limits, variance_combinations


class NumbaNaturalBreaks(NaturalBreaks):
    """Builds the matrices with a numba-compiled kernel over float64 values."""
    name = 'numba'

    @classmethod
    def precompile(cls):
        cls.breaks([1.0, 4.0, 6.0, 9.0], 3)

    @classmethod
    def build_matrices(cls, sorted_data, n_classes):
        values = np.ascontiguousarray(shift_values(sorted_data))
        logger.debug('Building %dx%d matrices with numba', len(values) + 1, n_classes + 1)
        return _build_matrices(values, n_classes)
