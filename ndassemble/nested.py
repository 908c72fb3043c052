"""Build dense arrays from nested, possibly lazy, sequences

The shape is discovered one level of nesting at a time: the first element
of a level decides whether the level holds leaves or containers, every
container level contributes its shape and is spliced into the next one.
Whether something is a leaf or a container is decided by
``nesting_lookup``, which can be extended for other sequence types.
"""

import logging
import math
from collections import namedtuple
from collections.abc import Iterable, Iterator, Mapping, Sequence

import numpy as np
from toolz import peek

from . import config
from .dispatch import nesting_lookup
from .errors import DimensionMismatch, EmptyInputError, InconsistentNestingError
from .utils import flatmap

logger = logging.getLogger(__name__)


Leaf = namedtuple("Leaf", ["value"])
Container = namedtuple("Container", ["shape", "elements"])


@nesting_lookup.register(object)
def _nesting_object(x):
    if isinstance(x, Mapping) or not isinstance(x, Iterable):
        return Leaf(x)
    if not isinstance(x, Sequence):
        x = list(x)
    return Container((len(x),), x)


@nesting_lookup.register((list, tuple, range))
def _nesting_sequence(x):
    return Container((len(x),), x)


@nesting_lookup.register((str, bytes, bytearray))
def _nesting_text(x):
    return Leaf(x)


@nesting_lookup.register(np.ndarray)
def _nesting_ndarray(x):
    if x.ndim == 0:
        return Leaf(x[()])
    return Container(x.shape, x.flat)


def _describe(node):
    if isinstance(node, Leaf):
        return "a leaf"
    return "a container of shape {}".format(node.shape)


def _splice(nodes, head, depth, check):
    """Elements of every container in ``nodes``, one level shallower"""
    for i, node in enumerate(nodes):
        if isinstance(node, Leaf) or (check and node.shape != head.shape):
            raise InconsistentNestingError(
                "Element {} at depth {} is {}, but the first element there is "
                "{}".format(i, depth, _describe(node), _describe(head))
            )
        yield from node.elements


def _leaves(nodes, depth):
    for i, node in enumerate(nodes):
        if not isinstance(node, Leaf):
            raise InconsistentNestingError(
                "Element {} at depth {} is {}, but the first element there is "
                "a leaf".format(i, depth, _describe(node))
            )
        yield node.value


def _leaf_array(values):
    """One-dimensional array of ``values``, never nesting into a leaf"""
    try:
        flat = np.array(values)
    except ValueError:
        # ragged leaves that numpy tried to read as sequences
        flat = None
    if flat is None or flat.shape != (len(values),):
        flat = np.empty(len(values), dtype=object)
        for i, value in enumerate(values):
            flat[i] = value
    return flat


def assemble_nested(nesting, *seqs, check_siblings=None):
    """
    Assemble a dense array from nested sequences

    The rank and shape are inferred from how the input is nested:
    ``result[i][j]...`` is ``nesting[i][j]...``.  Any iterable other than
    strings, bytes and mappings is a level of nesting, generators and
    deques included; an ndarray is a level that contributes all of its
    axes at once; anything else is a leaf.  Leaves are never split up
    further, even when numpy could read them as sequences.  The top level
    may be a lazy iterator and is consumed once.

    Parameters
    ----------
    nesting : iterable, ndarray, or callable
        When an ndarray, its shape is the outer shape of the result.  When
        callable, it is mapped lazily over the zipped ``seqs``; if those are
        all ndarrays of the same shape, that shape is the outer shape.
    check_siblings : bool, optional
        Compare every element of a level against the first one.  Defaults
        to the ``nested.check-siblings`` configuration value.  Without it
        only the first element determines the shape of each level.

    Raises
    ------
    EmptyInputError
        If the top level has no elements
    InconsistentNestingError
        If siblings mix leaves and containers, or (when checking siblings)
        differ in shape
    DimensionMismatch
        If, without sibling checks, the number of leaves does not fit the
        shape read off the first elements
    TypeError
        If ``nesting`` is not iterable

    Examples
    --------
    >>> assemble_nested([[1, 2], [3, 4]])
    array([[1, 2],
           [3, 4]])
    >>> assemble_nested([[[1, 2], [3, 4]], [[5, 6], [7, 8]]]).shape
    (2, 2, 2)
    >>> assemble_nested(lambda n: [n, n ** 2], range(1, 4))
    array([[1, 1],
           [2, 4],
           [3, 9]])
    """
    if callable(nesting):
        level, outer_shape = flatmap(nesting, *seqs)
    elif seqs:
        raise TypeError(
            "assemble_nested() takes extra sequences only when the first "
            "argument is callable"
        )
    elif isinstance(nesting, Iterator):
        level, outer_shape = nesting, None
    else:
        top = nesting_lookup(nesting)
        if isinstance(top, Leaf):
            raise TypeError(
                "assemble_nested() expects an iterable, got {}".format(
                    type(nesting).__name__
                )
            )
        level, outer_shape = top.elements, top.shape

    check = config.get("nested.check-siblings", override_with=check_siblings)

    nodes = map(nesting_lookup, level)
    try:
        head, nodes = peek(nodes)
    except StopIteration:
        raise EmptyInputError("Cannot assemble an empty sequence") from None

    prefix = ()
    depth = 0
    while not isinstance(head, Leaf):
        prefix = prefix + head.shape
        if 0 in head.shape:
            # nothing below this level, count the siblings to size the result
            siblings = list(nodes)
            for _ in _splice(siblings, head, depth, check):
                pass
            if outer_shape is None:
                outer = len(siblings) // math.prod(prefix[: -len(head.shape)])
                outer_shape = (outer,)
            shape = outer_shape + prefix
            logger.debug("Nested input has an empty level, shape %s", shape)
            return np.empty(shape)

        level = _splice(nodes, head, depth, check)
        depth += 1
        head, nodes = peek(map(nesting_lookup, level))

    flat = _leaf_array(list(_leaves(nodes, depth)))
    shape = (outer_shape or (-1,)) + prefix
    try:
        result = flat.reshape(shape)
    except ValueError as e:
        raise DimensionMismatch(
            "Cannot arrange {} leaves into shape {}; siblings differ in "
            "shape".format(flat.size, shape)
        ) from e

    logger.debug("Assembled nested input of depth %d into shape %s", depth, result.shape)
    return result
