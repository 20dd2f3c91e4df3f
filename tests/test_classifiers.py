import numpy as np
import pytest

import naturalbreaks
import naturalbreaks.enumerate
import naturalbreaks.numba
from naturalbreaks import get_classifier_dict

classifiers = get_classifier_dict(
    naturalbreaks.NaturalBreaks,
    naturalbreaks.numba.NumbaNaturalBreaks,
    naturalbreaks.enumerate,
)

dynamic_classifiers = ("dynamic", "numba")

expected_results = [
    {'data': [1, 2, 3, 101, 102, 103, 501, 502, 503], 'n_classes': 3, 'breaks': [1, 3, 103, 503]},
    {'data': [1, 2, 3, 400, 432, 466], 'n_classes': 2, 'breaks': [1, 3, 466]},
    {'data': [1, 3000, 2, 40, 50, 3002], 'n_classes': 3, 'breaks': [1, 2, 50, 3002]},
    {'data': [4.5, 1.5, 3.5, 2.5], 'n_classes': 4, 'breaks': [1.5, 1.5, 2.5, 3.5, 4.5]},
    {'data': [9, 3, 7, 1], 'n_classes': 1, 'breaks': [1, 9]},
    {'data': [7], 'n_classes': 1, 'breaks': [7, 7]},
    # Equal variance either way; the longer trailing window wins the tie.
    {'data': [1, 2, 4, 5], 'n_classes': 3, 'breaks': [1, 1, 2, 5]},
    {'data': [100000000.1, 100000001.1, 100000001.1, 100000001.1, 100000003.3], 'n_classes': 3,
     'breaks': [100000000.1, 100000000.1, 100000001.1, 100000003.3]},
]


@pytest.fixture(scope='module', autouse=True)
def precompile():
    naturalbreaks.numba.NumbaNaturalBreaks.precompile()


@pytest.mark.parametrize("classifier", dynamic_classifiers)
@pytest.mark.parametrize("test", expected_results)
def test_static_correctness(classifier, test):
    result = classifiers[classifier].breaks(test['data'], test['n_classes'])
    assert list(result) == test['breaks']


@pytest.mark.parametrize("classifier", dynamic_classifiers)
def test_unsorted_matches_sorted(classifier):
    unsorted = [1, 3000, 2, 40, 50, 3002]
    result = classifiers[classifier].breaks(unsorted, 3)
    presorted = classifiers[classifier].breaks(sorted(unsorted), 3, is_sorted=True)
    np.testing.assert_array_equal(result, presorted)


@pytest.mark.parametrize("classifier", dynamic_classifiers)
def test_data_is_not_modified(classifier):
    data = [1, 3000, 2, 40, 50, 3002]
    array = np.array(data, dtype=np.float64)
    classifiers[classifier].breaks(data, 3)
    classifiers[classifier].breaks(array, 3)
    assert data == [1, 3000, 2, 40, 50, 3002]
    np.testing.assert_array_equal(array, [1, 3000, 2, 40, 50, 3002])


@pytest.mark.parametrize("classifier", dynamic_classifiers)
def test_is_sorted_is_trusted(classifier):
    # The last value is taken as the maximum without checking.
    assert list(classifiers[classifier].breaks([5, 1, 2], 1, is_sorted=True)) == [5, 2]


@pytest.mark.parametrize("classifier", classifiers)
def test_result_dtype_follows_input(classifier):
    assert classifiers[classifier].breaks(np.array([1, 2, 3, 10], dtype=np.int32), 2).dtype == np.int32
    assert classifiers[classifier].breaks([1.0, 2.0, 3.0, 10.0], 2).dtype == np.float64


@pytest.mark.parametrize("classifier", dynamic_classifiers)
def test_debug_info(classifier):
    debug_info = {}
    classifiers[classifier].breaks([503, 1, 2, 3, 101, 102, 103, 501, 502], 3, debug_info=debug_info)

    assert list(debug_info['sorted_data']) == [1, 2, 3, 101, 102, 103, 501, 502, 503]
    assert debug_info['lower_class_limits'].shape == (10, 4)
    assert debug_info['lower_class_limits'][9, 3] == 7
    assert debug_info['variance'] == 6.0


@pytest.mark.parametrize("classifier", dynamic_classifiers)
@pytest.mark.parametrize("seed", range(5))
def test_random_properties(classifier, seed):
    rng = np.random.default_rng(seed)
    data = rng.uniform(-50, 50, size=40)
    for n_classes in (1, 2, 5, 8):
        result = classifiers[classifier].breaks(data, n_classes)
        assert len(result) == n_classes + 1
        assert result[0] == data.min()
        assert result[-1] == data.max()
        # The first class may hold only the minimum, so only the first step can be flat.
        assert np.all(np.diff(result) >= 0)
        assert np.all(np.diff(result[1:]) > 0)
        assert set(result) <= set(data)
        np.testing.assert_array_equal(result, classifiers[classifier].breaks(data, n_classes))


@pytest.mark.parametrize("seed", range(5))
def test_numba_matches_dynamic(seed):
    rng = np.random.default_rng(seed)
    data = np.sort(rng.uniform(0, 1000, size=30))
    for n_classes in (1, 3, 6, 30):
        dynamic_limits, dynamic_variance = naturalbreaks.NaturalBreaks.build_matrices(data, n_classes)
        numba_limits, numba_variance = naturalbreaks.numba.NumbaNaturalBreaks.build_matrices(data, n_classes)
        np.testing.assert_array_equal(dynamic_limits, numba_limits)
        np.testing.assert_allclose(dynamic_variance, numba_variance)


@pytest.mark.parametrize("classifier", dynamic_classifiers)
@pytest.mark.parametrize("seed", range(5))
def test_optimal_against_enumerate(classifier, seed):
    rng = np.random.default_rng(seed)
    data = rng.integers(0, 1000, size=9).astype(np.float64)
    for n_classes in range(2, 5):
        if n_classes > len(np.unique(data)):
            continue
        dynamic_info = {}
        enumerate_info = {}
        classifiers[classifier].breaks(data, n_classes, debug_info=dynamic_info)
        classifiers['enumerate'].breaks(data, n_classes, debug_info=enumerate_info)
        assert dynamic_info['variance'] == pytest.approx(enumerate_info['variance'], rel=1e-6, abs=1e-6)


def test_enumerate_breaks():
    result = classifiers['enumerate'].breaks([1, 3000, 2, 40, 50, 3002], 3)
    assert list(result) == [1, 2, 50, 3002]


def test_enumerate_get_partitions():
    partitions = naturalbreaks.enumerate.get_partitions(4, 3, [])
    assert partitions == [[1, 2], [1, 3], [2, 3]]


def test_enumerate_get_class_cost():
    items = np.array([1.0, 2.0, 3.0, 400.0, 432.0, 466.0])
    assert naturalbreaks.enumerate.get_class_cost([3], items) == pytest.approx(2.0 + 6536.0 / 3)


@pytest.mark.parametrize("classifier", classifiers)
def test_validation(classifier):
    with pytest.raises(naturalbreaks.EmptyDataError):
        classifiers[classifier].breaks([], 1)
    with pytest.raises(naturalbreaks.InvalidClassCountError):
        classifiers[classifier].breaks([1, 2, 3], 0)
    with pytest.raises(naturalbreaks.TooManyClassesError):
        classifiers[classifier].breaks([1, 2, 3], 4)
    with pytest.raises(naturalbreaks.TooFewDistinctValuesError):
        classifiers[classifier].breaks([2, 2, 2, 3], 3)


@pytest.mark.parametrize("classifier", dynamic_classifiers)
def test_large_offset_presorted(classifier):
    data = [100000000.1, 100000001.1, 100000001.1, 100000001.1, 100000003.3]
    result = classifiers[classifier].breaks(data, 3, is_sorted=True)
    assert list(result) == sorted(result)
    assert list(result) == [100000000.1, 100000000.1, 100000001.1, 100000003.3]


@pytest.mark.parametrize("classifier", dynamic_classifiers)
@pytest.mark.parametrize("seed", range(10))
def test_large_offset_classes_are_not_empty(classifier, seed):
    rng = np.random.default_rng(seed)
    data = 1e8 + rng.integers(0, 30, size=10) * 0.1
    for n_classes in range(2, len(np.unique(data)) + 1):
        result = classifiers[classifier].breaks(data, n_classes)
        assert np.all(np.diff(result) >= 0)
        assert np.all(np.diff(result[1:]) > 0)
