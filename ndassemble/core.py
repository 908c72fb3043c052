import logging
from collections.abc import Iterator

import numpy as np

from . import backends  # noqa: F401
from . import config
from .dispatch import concatenate_lookup
from .errors import DimensionMismatch, EmptyInputError, InconsistentNestingError
from .recurse import Recurser
from .utils import flatmap, gridmap, normalize_axis, reshapelist

logger = logging.getLogger(__name__)


def asblock(x):
    """Coerce ``x`` to an array, leaving array-likes with a shape alone

    >>> asblock(1)
    array(1)
    >>> x = np.ma.masked_array([1, 2], mask=[0, 1])
    >>> asblock(x) is x
    True
    """
    if hasattr(x, "shape") and hasattr(x, "ndim") and not np.isscalar(x):
        return x
    return np.asanyarray(x)


def concatenate(seq, axis=0):
    """
    Concatenate arrays along an existing axis

    All arrays need the same number of dimensions and the same extent on
    every axis other than ``axis``.  The implementation is looked up in
    ``concatenate_lookup`` for the input type with the highest
    ``__array_priority__``, so masked arrays stay masked.

    >>> concatenate([np.array([[1, 2]]), np.array([[3, 4]])], axis=1)
    array([[1, 2, 3, 4]])

    Raises
    ------
    EmptyInputError
        If ``seq`` is empty
    DimensionMismatch
        If the arrays cannot be lined up along ``axis``
    """
    seq = [asblock(x) for x in seq]
    if not seq:
        raise EmptyInputError("Need array(s) to concatenate")

    ndim = seq[0].ndim
    if ndim == 0:
        raise DimensionMismatch("Zero-dimensional arrays cannot be concatenated")
    for i, x in enumerate(seq):
        if x.ndim != ndim:
            raise DimensionMismatch(
                "All arrays must have the same number of dimensions. "
                "Array 0 has {} dimension(s), while array {} has {}".format(
                    ndim, i, x.ndim
                )
            )
    axis = normalize_axis(axis, ndim)

    def off_axis(shape):
        return shape[:axis] + shape[axis + 1 :]

    expected = off_axis(seq[0].shape)
    for i, x in enumerate(seq[1:], 1):
        if off_axis(x.shape) != expected:
            raise DimensionMismatch(
                "Cannot concatenate along axis {}: array 0 has shape {}, "
                "while array {} has shape {}".format(axis, seq[0].shape, i, x.shape)
            )

    func = concatenate_lookup.dispatch(
        type(max(seq, key=lambda x: getattr(x, "__array_priority__", 0)))
    )
    return func(seq, axis=axis)


def _format_index(index):
    return "arrays" + "".join("[{}]".format(i) for i in index)


def _atleast_nd(x, ndim, leading):
    diff = max(ndim - x.ndim, 0)
    if leading:
        return x[(None,) * diff + (Ellipsis,)]
    return x[(Ellipsis,) + (None,) * diff]


def _list_depth(rec, arrays):
    """Depth of the block lists, checking that all leaves sit equally deep

    Returns the depth and whether the grid holds no blocks at all.  A grid
    with blocks in some lists and other lists empty is ragged.
    """
    list_ndim = None
    empty_at = None
    has_blocks = False
    for index, value, entering in rec.walk(arrays):
        if type(value) is tuple:
            # tuples are ambiguous: they could be a level or an array
            raise TypeError(
                "{} is a tuple. "
                "Only lists can be used to arrange blocks".format(_format_index(index))
            )
        if isinstance(value, Iterator):
            raise TypeError(
                "{} is an iterator. "
                "Only lists can be used to arrange blocks".format(_format_index(index))
            )
        if not entering:
            curr_depth = len(index)
            has_blocks = True
        elif len(value) == 0:
            curr_depth = len(index) + 1
            if empty_at is None:
                empty_at = index
        else:
            continue

        if list_ndim is not None and list_ndim != curr_depth:
            raise InconsistentNestingError(
                "List depths are mismatched. First element was at depth {}, "
                "but there is an element at depth {} ({})".format(
                    list_ndim, curr_depth, _format_index(index)
                )
            )
        list_ndim = curr_depth

    if empty_at is not None and has_blocks:
        raise DimensionMismatch(
            "{} is an empty list, but the grid holds blocks elsewhere; "
            "extents along axis {} cannot agree".format(
                _format_index(empty_at), len(empty_at)
            )
        )
    return list_ndim, empty_at is not None


def block(arrays, *seqs, promote=None):
    """
    Assemble an nd-array from a grid of blocks

    The grid is either a nested list or an object ndarray whose elements
    are the blocks.  With the default ``promote="trailing"`` axis ``k`` of
    the grid is axis ``k`` of the result: the innermost lists are
    concatenated along axis ``depth - 1``, those results along
    ``depth - 2``, and so on until the outermost list is concatenated along
    axis 0.

    Blocks with fewer dimensions than the result gain trailing axes of
    length one, so a vector is a column and a scalar a ``1 x ... x 1``
    block.  ``promote="leading"`` gives the ``numpy.block`` layout instead:
    leading axes of length one are inserted and the innermost lists join
    along the last axis.

    Parameters
    ----------
    arrays : nested list of array_like, object ndarray, iterator, or callable
        A single array or scalar (a grid of depth 0) is returned as an
        array.  An iterator is a flat grid of its items.  When callable,
        it is mapped over ``seqs`` element-wise (see below).
    *seqs : grids
        Sources for the callable form.  ``block(func, a, b)`` is
        ``block`` of ``func`` applied to zipped elements of ``a`` and
        ``b``; nested lists and ndarrays keep their layout, any other
        iterable becomes a flat grid.
    promote : {"trailing", "leading"}, optional
        Defaults to the ``block.promote`` configuration value.

    Returns
    -------
    block_array : ndarray
        The extent along each axis is the sum of the block extents along
        that axis.  An empty grid gives an empty ``float64`` array.

    Raises
    ------
    DimensionMismatch
        If neighbouring blocks do not line up, or some lists of the grid are
        empty while others hold blocks
    InconsistentNestingError
        If list depths are mismatched, e.g. ``[[a, b], c]``
    TypeError
        If a tuple or an iterator nested inside the grid is used to
        arrange blocks

    Examples
    --------
    >>> a, b = np.array([1, 2, 3]), np.array([4, 5, 6])
    >>> block([a, b])
    array([1, 2, 3, 4, 5, 6])
    >>> block([[a, b]])
    array([[1, 4],
           [2, 5],
           [3, 6]])
    >>> block([a[None], b[None]])
    array([[1, 2, 3],
           [4, 5, 6]])

    Blocks can be produced on the fly

    >>> block(lambda n: np.arange(-n, n + 1, 2), range(1, 4))
    array([-1,  1, -2,  0,  2, -3, -1,  1,  3])
    """
    if callable(arrays):
        arrays = gridmap(arrays, *seqs)
    elif seqs:
        raise TypeError(
            "block() takes extra sequences only when the first argument is callable"
        )

    promote = config.get("block.promote", override_with=promote)
    if promote not in ("trailing", "leading"):
        raise ValueError(
            "promote must be 'trailing' or 'leading', got {!r}".format(promote)
        )

    if isinstance(arrays, Iterator):
        arrays = list(arrays)
    elif isinstance(arrays, np.ndarray) and arrays.dtype == object and arrays.ndim:
        if 0 in arrays.shape:
            return np.empty((0,) * arrays.ndim)
        arrays = reshapelist(arrays.shape, [asblock(x) for x in arrays.flat])

    rec = Recurser(recurse_if=lambda x: type(x) is list)

    list_ndim, empty = _list_depth(rec, arrays)
    if not list_ndim:
        return asblock(arrays)
    if empty:
        return np.empty((0,) * list_ndim)

    arrays = rec.map(arrays, asblock)

    elem_ndim = max(x.ndim for x in rec.items(arrays))
    ndim = max(list_ndim, elem_ndim)
    leading = promote == "leading"
    first_axis = ndim - list_ndim if leading else 0

    arrays = rec.map(arrays, lambda x: _atleast_nd(x, ndim, leading))

    logger.debug(
        "Assembling %d-deep block grid into %d dimensions (promote=%s)",
        list_ndim,
        ndim,
        promote,
    )
    return rec.reduce(
        arrays, lambda xs, depth: concatenate(xs, axis=first_axis + depth)
    )


def stack(seq, *seqs, axis=None):
    """
    Stack arrays along a new axis

    Each element gains an axis of length one at position ``axis`` of the
    result, then the elements are concatenated along it.  Slicing the
    result along ``axis`` gives back the elements in order.

    Parameters
    ----------
    seq : iterable of array_like, or callable
        The arrays to stack.  When callable it is applied lazily to the
        zipped ``seqs`` and the results are stacked.
    axis : int, optional
        Position of the new axis in the result, counting from 0.  Negative
        values count from the end, so ``-1`` is the new last axis.  The
        default is a new last axis, after all axes of the elements.

    Raises
    ------
    EmptyInputError
        If there is nothing to stack
    DimensionMismatch
        If the elements do not all have the same shape

    Examples
    --------
    >>> data = [np.ones((4, 4)) for i in range(3)]
    >>> stack(data).shape
    (4, 4, 3)
    >>> stack(data, axis=0).shape
    (3, 4, 4)
    >>> stack(data, axis=1).shape
    (4, 3, 4)
    >>> stack(lambda x, y: [x, y], range(3), range(10, 13), axis=0)
    array([[ 0, 10],
           [ 1, 11],
           [ 2, 12]])
    """
    if callable(seq):
        seq, _ = flatmap(seq, *seqs)
    elif seqs:
        raise TypeError(
            "stack() takes extra sequences only when the first argument is callable"
        )

    seq = [asblock(x) for x in seq]
    if not seq:
        raise EmptyInputError("Need array(s) to stack")

    shape = seq[0].shape
    ndim = len(shape)
    if axis is None:
        axis = ndim
    axis = normalize_axis(axis, ndim + 1)

    for i, x in enumerate(seq):
        if x.shape != shape:
            raise DimensionMismatch(
                "Stacked arrays must have the same shape. "
                "The first array had shape {0}, while array "
                "{1} has shape {2}".format(shape, i, x.shape)
            )

    newshape = shape[:axis] + (1,) + shape[axis:]
    logger.debug("Stacking %d arrays of shape %s along axis %d", len(seq), shape, axis)
    return concatenate([x.reshape(newshape) for x in seq], axis=axis)
