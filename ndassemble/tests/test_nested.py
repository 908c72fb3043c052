from collections import deque

import pytest

np = pytest.importorskip("numpy")

from ndassemble import config
from ndassemble.core import DimensionMismatch, EmptyInputError, InconsistentNestingError
from ndassemble.nested import Container, Leaf, assemble_nested, nesting_lookup
from ndassemble.utils import assert_eq


def test_two_levels():
    assert_eq(assemble_nested([[1, 2], [3, 4]]), np.array([[1, 2], [3, 4]]))


def test_three_levels():
    result = assemble_nested([[[1, 2], [3, 4]], [[5, 6], [7, 8]]])
    assert result.shape == (2, 2, 2)
    assert_eq(result, np.arange(1, 9).reshape(2, 2, 2))


def test_flat_sequence():
    assert_eq(assemble_nested([1, 2, 3]), np.array([1, 2, 3]))
    assert_eq(assemble_nested(range(4)), np.arange(4))


def test_indexing_follows_nesting():
    nesting = [[[i * 100 + j * 10 + k for k in range(4)] for j in range(3)] for i in range(2)]
    result = assemble_nested(nesting)
    assert result.shape == (2, 3, 4)
    for i in range(2):
        for j in range(3):
            for k in range(4):
                assert result[i, j, k] == nesting[i][j][k]


def test_generators_all_the_way_down():
    def rows():
        for i in range(3):
            yield (i * 2 + j for j in range(2))

    assert_eq(assemble_nested(rows()), np.array([[0, 1], [2, 3], [4, 5]]))


def test_lazy_outer_consumed_once():
    calls = []

    def produce():
        for i in range(3):
            calls.append(i)
            yield [i, -i]

    result = assemble_nested(produce())
    assert calls == [0, 1, 2]
    assert_eq(result, np.array([[0, 0], [1, -1], [2, -2]]))


def test_ndarray_leaves_contribute_all_axes():
    x = np.arange(6).reshape(2, 3)
    result = assemble_nested([x, x + 6])
    assert result.shape == (2, 2, 3)
    assert_eq(result, np.arange(12).reshape(2, 2, 3))


def test_columns_of_matrix():
    m = np.arange(1, 7).reshape((2, 3), order="F")
    columns = [m[:, i] for i in range(3)]
    assert_eq(assemble_nested(columns), m.T)


def test_outer_shape_from_ndarray():
    grid = np.empty((2, 3), dtype=object)
    for i, j in np.ndindex(2, 3):
        grid[i, j] = [i, j]
    result = assemble_nested(grid)
    assert result.shape == (2, 3, 2)
    assert result[1, 2].tolist() == [1, 2]

    assert_eq(assemble_nested(np.arange(6).reshape(2, 3)), np.arange(6).reshape(2, 3))


def test_mixed_sequence_types():
    result = assemble_nested([(1, 2), [3, 4], np.array([5, 6]), range(7, 9)])
    assert_eq(result, np.arange(1, 9).reshape(4, 2))


def test_other_iterables_are_levels():
    expected = np.array([[1, 2], [3, 4]])
    assert_eq(assemble_nested([deque([1, 2]), deque([3, 4])]), expected)
    assert_eq(assemble_nested(iter([deque([1, 2]), deque([3, 4])])), expected)
    assert_eq(assemble_nested({"a": [1, 2], "b": [3, 4]}.values()), expected)
    keys = deque([{1: None}.keys(), {3: None}.keys()])
    assert_eq(assemble_nested(keys), np.array([[1], [3]]))


def test_mappings_are_leaves():
    result = assemble_nested([{"a": 1}, {"b": 2}])
    assert result.shape == (2,)
    assert result[1] == {"b": 2}


def test_leaves_are_not_split_by_numpy():
    class Point(list):
        pass

    nesting_lookup.register(Point, Leaf)
    try:
        result = assemble_nested([[Point([1, 2]), Point([3, 4])]])
        assert result.shape == (1, 2)
        assert result.dtype == object
        assert result[0, 1] == [3, 4]
    finally:
        del nesting_lookup._lookup[Point]


def test_zero_dimensional_arrays_are_leaves():
    assert_eq(assemble_nested([np.array(1), np.array(2)]), np.array([1, 2]))


def test_strings_are_leaves():
    result = assemble_nested([["ab", "cd"], ["ef", "gh"]])
    assert result.shape == (2, 2)
    assert result[1, 0] == "ef"


def test_single_element_containers_keep_their_axis():
    assert assemble_nested([[1], [2], [3]]).shape == (3, 1)
    assert assemble_nested([[[1]]]).shape == (1, 1, 1)


def test_flatmap():
    result = assemble_nested(lambda n: [n, n ** 2], range(1, 4))
    assert_eq(result, np.array([[1, 1], [2, 4], [3, 9]]))


def test_flatmap_zips_sources():
    result = assemble_nested(lambda a, b: [a, b, a + b], [1, 2], [10, 20])
    assert_eq(result, np.array([[1, 10, 11], [2, 20, 22]]))


def test_flatmap_keeps_outer_shape_of_arrays():
    J, K = np.meshgrid(np.arange(1, 5), np.arange(5, 7), indexing="ij")
    result = assemble_nested(lambda j, k: [j, (j + k) // 2, k], J, K)
    assert result.shape == (4, 2, 3)
    assert result[0, 0].tolist() == [1, 3, 5]
    assert result[3, 1].tolist() == [4, 5, 6]


def test_flatmap_is_lazy():
    seen = []

    def f(x):
        seen.append(x)
        return [x]

    source = iter(range(3))
    assemble_nested(f, source)
    assert seen == [0, 1, 2]
    assert list(source) == []


def test_empty_raises():
    with pytest.raises(EmptyInputError):
        assemble_nested([])
    with pytest.raises(EmptyInputError):
        assemble_nested(iter([]))
    with pytest.raises(EmptyInputError):
        assemble_nested(lambda x: x, [])


def test_empty_inner_levels():
    assert assemble_nested([[], []]).shape == (2, 0)
    assert assemble_nested([[[], []], [[], []], [[], []]]).shape == (3, 2, 0)
    assert assemble_nested(iter([[], [], []])).shape == (3, 0)
    assert assemble_nested([np.empty((2, 0)), np.empty((2, 0))]).shape == (2, 2, 0)


def test_not_a_sequence():
    with pytest.raises(TypeError):
        assemble_nested(5)
    with pytest.raises(TypeError):
        assemble_nested("abc")


def test_extra_sequences_need_function():
    with pytest.raises(TypeError):
        assemble_nested([1, 2], [3, 4])


def test_leaf_container_mix():
    with pytest.raises(InconsistentNestingError, match="leaf"):
        assemble_nested([[1, 2], 3])
    with pytest.raises(InconsistentNestingError, match="leaf"):
        assemble_nested([1, [2, 3]])


def test_leaf_container_mix_without_sibling_checks():
    with pytest.raises(InconsistentNestingError):
        assemble_nested([[1, 2], 3], check_siblings=False)


def test_sibling_shapes_differ():
    with pytest.raises(InconsistentNestingError, match=r"Element 1 at depth 0"):
        assemble_nested([[1, 2], [3, 4, 5]])
    with pytest.raises(InconsistentNestingError, match=r"\(3,\)"):
        assemble_nested([[[1, 2], [3, 4]], [[5, 6, 7], [8, 9, 10]]])


def test_sibling_shapes_trust_first_element():
    with pytest.raises(DimensionMismatch):
        assemble_nested([[1, 2], [3, 4, 5]], check_siblings=False)

    # same number of leaves: only the first element decides the shape
    result = assemble_nested(iter([[1, 2], [3], [4]]), check_siblings=False)
    assert_eq(result, np.array([[1, 2], [3, 4]]))


def test_sibling_checks_from_config():
    with config.set({"nested.check-siblings": False}):
        with pytest.raises(DimensionMismatch):
            assemble_nested([[1, 2], [3, 4, 5]])
    with pytest.raises(InconsistentNestingError):
        assemble_nested([[1, 2], [3, 4, 5]])


def test_nesting_lookup():
    assert nesting_lookup(1) == Leaf(1)
    assert nesting_lookup("abc") == Leaf("abc")
    assert nesting_lookup(np.array(3)) == Leaf(3)
    assert nesting_lookup([1, 2]).shape == (2,)
    assert nesting_lookup(range(5)).shape == (5,)
    assert nesting_lookup(deque("ab")).shape == (2,)
    assert nesting_lookup({"a": 1}) == Leaf({"a": 1})

    node = nesting_lookup(x for x in "xyz")
    assert isinstance(node, Container)
    assert node.shape == (3,)
    assert list(node.elements) == ["x", "y", "z"]

    node = nesting_lookup(np.ones((2, 3)))
    assert node.shape == (2, 3)
    assert len(list(node.elements)) == 6


def test_nesting_lookup_registration():
    class Pair:
        def __init__(self, a, b):
            self.a, self.b = a, b

    nesting_lookup.register(Pair, lambda p: Container((2,), [p.a, p.b]))
    try:
        result = assemble_nested([Pair(1, 2), Pair(3, 4)])
        assert_eq(result, np.array([[1, 2], [3, 4]]))
    finally:
        del nesting_lookup._lookup[Pair]
