import logging
import math
import numbers
import warnings
from decimal import Decimal

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Building the matrices is O(n^2 * k); past this many values a call can take minutes.
LARGE_INPUT_WARNING = 40000


class NaturalBreaksError(ValueError):
    """Base class for invalid arguments passed to a classifier."""


class EmptyDataError(NaturalBreaksError):
    pass


class InvalidClassCountError(NaturalBreaksError):
    pass


class TooManyClassesError(NaturalBreaksError):
    pass


class TooFewDistinctValuesError(TooManyClassesError):
    pass


class NonFiniteDataError(NaturalBreaksError):
    pass


class DegenerateBreaksError(NaturalBreaksError):
    """The lower class limits do not describe n_classes non-empty classes."""


def _is_finite(value):
    if isinstance(value, numbers.Rational):
        return True
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def shift_values(sorted_data):
    """
    Return `sorted_data` as float64 minus its first value.

    The sum of squares formula is translation invariant, but computed on large raw
    values it loses the variance to rounding.
    """
    values = np.asarray(sorted_data).astype(np.float64)
    return values - values[0]


def _working_values(sorted_data):
    """
    Return the values the matrices are computed over and the dtype of the variance table.

    Integers and floats are computed in float64. Anything else (Decimal, Fraction) is
    left as Python objects so that its own arithmetic is used. Either way the first
    value is subtracted from all of them.
    """
    values = np.asarray(sorted_data)
    if values.dtype.kind in 'biuf':
        return shift_values(values).tolist(), np.float64
    first = values[0]
    return [v - first for v in values.tolist()], object


class NaturalBreaks(object):
    """Base class for objects implementing the natural breaks classifier API.

    The base class builds the matrices with plain Python arithmetic, so it accepts any
    totally ordered numeric type. Subclasses override `build_matrices` for speed.
    """
    name = 'dynamic'

    @classmethod
    def extract_breaks(cls, sorted_data, lower_class_limits, n_classes):
        """
        Walk the lower class limits back from the last value and return the class boundaries.

        The tables are 1-based and `sorted_data` is 0-based: `boundary - 2` is the last value
        of the class before the one starting at `boundary`. A class starting before
        `class_index` leaves fewer values than classes in front of it, and raises
        DegenerateBreaksError.
        """
        k = len(sorted_data)
        kclass = np.empty(n_classes + 1, dtype=sorted_data.dtype)

        # The backtrace never produces the lower and upper bounds, so set them explicitly.
        kclass[n_classes] = sorted_data[k - 1]
        kclass[0] = sorted_data[0]

        for class_index in range(n_classes, 1, -1):
            boundary = lower_class_limits[k, class_index]
            if boundary < class_index:
                raise DegenerateBreaksError(
                    f"Class {class_index} of the first {k} values starts at value {boundary}")
            kclass[class_index - 1] = sorted_data[boundary - 2]
            k = boundary - 1
        return kclass

    # noinspection DuplicatedCode
    @classmethod
    def build_matrices(cls, sorted_data, n_classes):
        """
        Compute the lower class limits and variance combinations for every prefix of
        `sorted_data` and every class count up to `n_classes`.

        Args:
            sorted_data (numpy.ndarray): Values sorted ascending.
            n_classes (int): Largest number of classes to compute.

        Returns:
            lower_class_limits: int64 array of shape (n + 1, n_classes + 1). Cell [l, j] is the
                1-based index of the first value of the last class when the first l values
                are split into j classes.
            variance_combinations: Array of the same shape holding the total within-class
                sum of squares of that split.
        """
        values, dtype = _working_values(sorted_data)
        n = len(values)
        lower_class_limits = np.zeros((n + 1, n_classes + 1), dtype=np.int64)
        variance_combinations = np.zeros((n + 1, n_classes + 1), dtype=dtype)
        lower_class_limits[1, 1:] = 1
        variance_combinations[2:, 1:] = np.inf

        variance = 0
        for l in range(2, n + 1):
            # Sum and sum of squares of the trailing window values[l - m:l].
            sum_ = 0
            sum_squares = 0
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
                    # >= so that the longest window wins a tie.
                    candidate = variance + variance_combinations[i4, j - 1]
                    if variance_combinations[l, j] >= candidate:
                        lower_class_limits[l, j] = lower_class_limit
                        variance_combinations[l, j] = candidate
            lower_class_limits[l, 1] = 1
            variance_combinations[l, 1] = variance

        return lower_class_limits, variance_combinations

    @classmethod
    def breaks(cls, data, n_classes, is_sorted=False, debug_info=None):
        """
        Classify `data` into `n_classes` contiguous classes with minimal within-class variance.

        Args:
            data (iterable): Numeric values. Never modified.
            n_classes (int): Number of classes.
            is_sorted (bool): Trust that `data` is already sorted ascending.
            debug_info (dict): Optionally populated with the sorted data, the lower class
                limits and the total within-class sum of squares.

        Returns:
            numpy.ndarray: n_classes + 1 values from `data`: the minimum, the last value of
                each class but the final one, and the maximum.
        """
        values = check_arguments(data, n_classes)
        if not is_sorted:
            values = np.sort(values)
        if len(values) >= LARGE_INPUT_WARNING:
            warnings.warn(f'Natural breaks classification is O(n^2); classifying {len(values)} '
                          f'values may take a long time.', RuntimeWarning)

        logger.debug('Classifying %d values into %d classes with %s', len(values), n_classes, cls.name)
        lower_class_limits, variance_combinations = cls.build_matrices(values, n_classes)

        if debug_info is not None:
            debug_info['sorted_data'] = values
            debug_info['lower_class_limits'] = lower_class_limits
            debug_info['variance'] = variance_combinations[len(values), n_classes]

        return cls.extract_breaks(values, lower_class_limits, n_classes)


def natural_breaks(data, n_classes, is_sorted=False, debug_info=None):
    """
    Return the Jenks natural breaks of `data` for `n_classes` classes.

    See `NaturalBreaks.breaks`.
    """
    return NaturalBreaks.breaks(data, n_classes, is_sorted=is_sorted, debug_info=debug_info)


def get_classifier_dict(*classifiers):
    """
    Given a list of classes or modules which have a `breaks` function and
    optionally a `name` variable, return a dictionary that maps
    `name` -> classifier for any of them that have a `name`.
    """
    result = {}
    for c in classifiers:
        if name := getattr(c, 'name', None):
            result[name] = c
    return result


def check_arguments(data, n_classes):
    """
    Validate classifier arguments before any work is done.

    Returns:
        numpy.ndarray: `data` as an array. Not a copy when `data` already is one.
    """
    try:
        num_items = len(data)
    except TypeError:
        raise ValueError("data must be a container")
    if num_items == 0:
        raise EmptyDataError("Must have at least one value to classify")
    if isinstance(n_classes, bool) or not isinstance(n_classes, numbers.Integral):
        raise InvalidClassCountError(f"Number of classes must be an integer, not {n_classes!r}")
    if n_classes < 1:
        raise InvalidClassCountError("Must request at least one class")
    if n_classes > num_items:
        raise TooManyClassesError(f"Cannot have more classes ({n_classes}) than values ({num_items})")

    values = np.asarray(data)
    if values.dtype.kind == 'f' and not np.isfinite(values).all():
        raise NonFiniteDataError("Values must be finite; found NaN or infinity")
    if values.dtype.kind == 'O' and not all(_is_finite(v) for v in values.ravel()):
        raise NonFiniteDataError("Values must be finite; found NaN or infinity")
    num_distinct = len(np.unique(values))
    if n_classes > num_distinct:
        raise TooFewDistinctValuesError(
            f"Cannot have more classes ({n_classes}) than distinct values ({num_distinct})")
    return values


def classifier(classifier_func):
    """
    Decorates classifier functions and ensures that parameters are valid.

    Args:
        classifier_func (function): function to decorate.

    Returns:
        A wrapped version of classifier_func that validates input and passes it on as an array.
    """
    def checked_classifier(data, n_classes, is_sorted=False, debug_info=None):
        values = check_arguments(data, n_classes)
        return classifier_func(values, n_classes, is_sorted, debug_info)

    return checked_classifier


def class_generator(breaks, items):
    """
    Yield the class number of each item, starting with class 1.

    Class 1 holds values up to and including breaks[1]; class i > 1 holds values greater
    than breaks[i - 1] and up to and including breaks[i].

    Example:
        breaks = [1, 3, 103, 503]
        items = [2, 3, 101, 503]

        Yields 1, 1, 2, 3
    """
    inner = np.asarray(breaks)[1:-1]
    for item in items:
        yield int(np.searchsorted(inner, item, side='left')) + 1


def get_class_sums(breaks, items):
    """
    Given class boundaries and a list of items, return the sum of the items in each class.
    """
    sums = [0] * (len(breaks) - 1)
    for item, class_number in zip(items, class_generator(breaks, items)):
        sums[class_number - 1] += item
    return sums


def goodness_of_variance_fit(data, breaks):
    """
    The Goodness of Variance Fit (GVF) is the difference between the squared deviations
    from the array mean (SDAM) and the squared deviations from the class means (SDCM),
    divided by the SDAM. 1.0 is a perfect fit.
    """
    values = np.asarray(data, dtype=np.float64)
    sdam = ((values - values.mean()) ** 2).sum()
    if sdam == 0:
        return 1.0
    classes = np.fromiter(class_generator(breaks, values), dtype=np.int64, count=len(values))
    sdcm = 0.0
    for class_number in np.unique(classes):
        members = values[classes == class_number]
        sdcm += ((members - members.mean()) ** 2).sum()
    return float((sdam - sdcm) / sdam)


def get_class_series(values: pd.Series, n_classes: int, classifier_func):
    """
    Takes a Pandas Series and returns a Series of class numbers with the same index.

    Args:
        values (Series): Values to classify.
        n_classes (int): Number of classes.
        classifier_func (function): Function returning class breaks, e.g. `natural_breaks`.

    Returns:
        pandas.Series: The class number, starting at 1, of each value.
    """
    items = values.to_numpy()
    breaks = classifier_func(items, n_classes)
    return pd.Series(list(class_generator(breaks, items)), index=values.index)


def classify_frame(data: pd.DataFrame, values: str, class_list: list, column_name: str,
                   classifier_func, min_gvf=None):
    """
    classify_frame takes a Pandas DataFrame and adds additional columns, one for each integer
    in class_list.

    The additional columns are named `column_name` + {class_list[i]} and contain for each
    row the natural breaks class of its `values` entry.

    Args:
        data (DataFrame): The DataFrame to add columns to.
        values (str): Column to get values from.
        class_list (list): A list of integer class counts.
        column_name (str): Prefix to be added to the number of classes to get the column name.
        classifier_func (function): Function returning class breaks.
        min_gvf (float): If given, add only one column: the smallest class count whose goodness
            of variance fit reaches `min_gvf`, or the best fitting one if none does.

    Returns:
        DataFrame: Original DataFrame with one or more columns added.
        list(str): List of column names added to the original DataFrame
    """
    items = data[values].to_numpy()
    rows = []
    for n_classes in class_list:
        breaks = classifier_func(items, n_classes)
        rows.append({
            'column_name': f'{column_name}{n_classes}',
            'n_classes': n_classes,
            'breaks': breaks,
            'gvf': goodness_of_variance_fit(items, breaks)})
    classifications = pd.DataFrame(rows)

    if min_gvf is not None:
        sufficient = classifications[classifications.gvf >= min_gvf]
        if sufficient.empty:
            classifications = classifications[classifications.gvf == classifications.gvf.max()].iloc[0:1]
        else:
            classifications = sufficient.sort_values('n_classes').iloc[0:1]

    columns_added = []
    for c in classifications.itertuples():
        data[c.column_name] = pd.Series(list(class_generator(c.breaks, items)), index=data.index)
        columns_added.append(c.column_name)

    return data, columns_added
